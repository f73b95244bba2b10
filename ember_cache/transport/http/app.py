from __future__ import annotations

import asyncio
import json
import logging
import time
import uuid
from typing import Any

from aiohttp import web

from ember_cache.application.request_context import request_id_var
from ember_cache.application.service import CacheApplicationService
from ember_cache.domain.errors import StateError

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "x-request-id"


@web.middleware
async def request_id_middleware(request: web.Request, handler):
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    token = request_id_var.set(request_id)
    try:
        response = await handler(request)
    finally:
        request_id_var.reset(token)

    response.headers[REQUEST_ID_HEADER] = request_id
    return response


def _json(payload: Any, status: int = 200) -> web.Response:
    return web.Response(text=json.dumps(payload, default=str), status=status, content_type="application/json")


def _error(message: str, status: int) -> web.Response:
    return _json({"status": "error", "message": message}, status=status)


class CacheHttpHandler:
    def __init__(self, app: CacheApplicationService):
        self._app = app
        self._start_time = time.monotonic()

    async def health_check(self, request: web.Request) -> web.Response:
        try:
            stats = await asyncio.to_thread(self._app.stats)
            return _json(
                {
                    "status": "healthy",
                    "uptime_seconds": round(time.monotonic() - self._start_time, 2),
                    "cache_size": stats.get("size", 0),
                    "cache_capacity": stats.get("capacity", 0),
                    "cache_hits": stats.get("hits", 0),
                    "cache_misses": stats.get("misses", 0),
                    "timestamp": time.time(),
                }
            )
        except Exception as exc:
            logger.exception("Health check error")
            return _error(str(exc), 503)

    async def liveness_check(self, request: web.Request) -> web.Response:
        return _json(
            {
                "status": "alive",
                "uptime_seconds": round(time.monotonic() - self._start_time, 2),
                "timestamp": time.time(),
            }
        )

    async def stats(self, request: web.Request) -> web.Response:
        try:
            stats = await asyncio.to_thread(self._app.stats)
        except Exception as exc:
            logger.exception("Stats error")
            return _error(str(exc), 503)
        stats["uptime_seconds"] = round(time.monotonic() - self._start_time, 2)
        return _json(stats)

    async def metrics(self, request: web.Request) -> web.Response:
        try:
            stats = await asyncio.to_thread(self._app.stats)
        except Exception:
            logger.exception("Metrics error")
            return web.Response(text="", status=503, content_type="text/plain")

        lines = [
            "# HELP ember_cache_hits_total Total cache hits",
            "# TYPE ember_cache_hits_total counter",
            f"ember_cache_hits_total {int(stats['hits'])}",
            "# HELP ember_cache_misses_total Total cache misses",
            "# TYPE ember_cache_misses_total counter",
            f"ember_cache_misses_total {int(stats['misses'])}",
            "# HELP ember_cache_evictions_total Total evictions (capacity and TTL)",
            "# TYPE ember_cache_evictions_total counter",
            f"ember_cache_evictions_total {int(stats['evictions'])}",
            "# HELP ember_cache_entries Current number of entries",
            "# TYPE ember_cache_entries gauge",
            f"ember_cache_entries {int(stats['size'])}",
            "# HELP ember_cache_capacity Maximum number of entries",
            "# TYPE ember_cache_capacity gauge",
            f"ember_cache_capacity {int(stats['capacity'])}",
            "# HELP ember_cache_hit_rate Hits per access",
            "# TYPE ember_cache_hit_rate gauge",
            f"ember_cache_hit_rate {stats['hit_rate']}",
            "",
        ]
        return web.Response(text="\n".join(lines), content_type="text/plain; version=0.0.4")

    async def list_items(self, request: web.Request) -> web.Response:
        items = await asyncio.to_thread(self._app.items)
        return _json({"items": [{"key": key, "value": value} for key, value in items.items()]})

    async def clear_items(self, request: web.Request) -> web.Response:
        await asyncio.to_thread(self._app.clear)
        return _json({"status": "ok"})

    async def get_item(self, request: web.Request) -> web.Response:
        key = request.match_info["key"]
        try:
            found, value = await asyncio.to_thread(self._app.lookup, key)
        except (TypeError, ValueError) as exc:
            return _error(str(exc), 400)
        if not found:
            return _json({"key": key, "found": False}, status=404)
        return _json({"key": key, "found": True, "value": value})

    async def put_item(self, request: web.Request) -> web.Response:
        key = request.match_info["key"]
        try:
            body = await request.json()
        except json.JSONDecodeError:
            return _error("Request body must be JSON", 400)
        if not isinstance(body, dict) or "value" not in body:
            return _error('Request body must be an object with a "value" field', 400)

        ttl = body.get("ttl")
        if ttl is not None and (isinstance(ttl, bool) or not isinstance(ttl, (int, float))):
            return _error("ttl must be a number of seconds", 400)

        try:
            await asyncio.to_thread(self._app.put, key, body["value"], ttl)
        except (TypeError, ValueError) as exc:
            return _error(str(exc), 400)
        return _json({"status": "ok"})

    async def delete_item(self, request: web.Request) -> web.Response:
        key = request.match_info["key"]
        try:
            deleted = await asyncio.to_thread(self._app.delete, key)
        except (TypeError, ValueError) as exc:
            return _error(str(exc), 400)
        return _json({"status": "ok", "deleted": deleted})

    async def persist(self, request: web.Request) -> web.Response:
        try:
            await asyncio.to_thread(self._app.persist)
        except StateError as exc:
            return _error(str(exc), 409)
        except Exception as exc:
            logger.exception("Persist error")
            return _error(str(exc), 500)
        return _json({"status": "ok"})

    async def restore(self, request: web.Request) -> web.Response:
        try:
            size = await asyncio.to_thread(self._app.restore)
        except StateError as exc:
            return _error(str(exc), 409)
        except Exception as exc:
            logger.exception("Restore error")
            return _error(str(exc), 500)
        return _json({"status": "ok", "size": size})


ENDPOINTS = ["/health", "/live", "/stats", "/metrics", "/items", "/persist", "/restore"]


def create_app(cache_app: CacheApplicationService) -> web.Application:
    handler = CacheHttpHandler(cache_app)

    app = web.Application(middlewares=[request_id_middleware])
    app.router.add_get("/health", handler.health_check)
    app.router.add_get("/live", handler.liveness_check)
    app.router.add_get("/stats", handler.stats)
    app.router.add_get("/metrics", handler.metrics)
    app.router.add_get("/items", handler.list_items)
    app.router.add_delete("/items", handler.clear_items)
    app.router.add_get("/items/{key}", handler.get_item)
    app.router.add_put("/items/{key}", handler.put_item)
    app.router.add_delete("/items/{key}", handler.delete_item)
    app.router.add_post("/persist", handler.persist)
    app.router.add_post("/restore", handler.restore)

    async def root_handler(request: web.Request) -> web.Response:
        return _json({"service": "ember-cache", "endpoints": ENDPOINTS})

    app.router.add_get("/", root_handler)
    return app
