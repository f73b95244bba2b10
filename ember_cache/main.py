from __future__ import annotations

import asyncio
import logging
import os
import signal

from aiohttp import web

from ember_cache.application.cache import Cache
from ember_cache.application.service import CacheApplicationService
from ember_cache.infrastructure.config import Settings, load_settings
from ember_cache.infrastructure.logging import configure_logging
from ember_cache.infrastructure.persistence import FileKeyValueStore, KeyValuePersistence
from ember_cache.transport.http.app import create_app

logger = logging.getLogger(__name__)


def build_cache(settings: Settings) -> Cache:
    adapter = None
    if settings.persistence_dir:
        adapter = KeyValuePersistence(
            key=settings.persistence_key,
            store=FileKeyValueStore(settings.persistence_dir),
        )

    cache: Cache = Cache(
        settings.capacity,
        ttl=settings.default_ttl,
        ttl_cleanup_interval=settings.ttl_cleanup_interval,
        eviction_policy=settings.eviction_policy,
        persistence_adapter=adapter,
        auto_persist=settings.auto_persist and adapter is not None,
    )
    if adapter is not None:
        cache.restore()
    return cache


async def shutdown_cache(cache: Cache) -> None:
    """Stop the TTL sweeper and write a final snapshot when an adapter is set."""
    cache.stop()
    if cache.persistence_adapter is None:
        return
    try:
        await asyncio.to_thread(cache.persist)
    except Exception:
        logger.exception("Failed to persist cache on shutdown")


async def serve(settings: Settings | None = None) -> None:
    settings = settings or load_settings()

    cache = build_cache(settings)
    cache_app = CacheApplicationService(cache)
    app = create_app(cache_app)

    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, settings.host, settings.port)
    await site.start()
    logger.info(
        "Cache service listening on %s:%s (capacity=%s, policy=%s)",
        settings.host,
        settings.port,
        settings.capacity,
        settings.eviction_policy,
    )

    stop_event = asyncio.Event()

    def _begin_shutdown() -> None:
        logger.info("Received shutdown signal, stopping cache service...")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, _begin_shutdown)

    try:
        await stop_event.wait()
    finally:
        try:
            await shutdown_cache(cache)
        finally:
            await runner.cleanup()


def main() -> None:
    configure_logging(
        os.getenv("CACHE_LOG_LEVEL", "INFO").upper(),
        os.getenv("CACHE_LOG_FORMAT", "text"),
    )
    try:
        settings = load_settings()
        asyncio.run(serve(settings))
    except Exception:
        logger.exception("Failed to start cache service")
        raise


if __name__ == "__main__":
    main()
