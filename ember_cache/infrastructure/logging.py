from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict

from ember_cache.application.request_context import request_id_var

# Attributes that cache code passes through ``extra=`` and that the JSON
# formatter lifts into the payload when present.
CACHE_FIELDS = ("cache_key", "reason", "entries")

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(threadName)s - %(request_id)s - %(message)s"


class RequestIdFilter(logging.Filter):
    """Stamps each record with the request id of the current context ("-" outside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get()
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "request_id": getattr(record, "request_id", "-"),
            "message": record.getMessage(),
        }
        for field in CACHE_FIELDS:
            if hasattr(record, field):
                payload[field] = getattr(record, field)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        # Cache keys and values are arbitrary objects.
        return json.dumps(payload, ensure_ascii=False, default=repr)


def configure_logging(log_level: str, log_format: str = "text") -> None:
    level = getattr(logging, log_level.upper(), logging.INFO)

    handler = logging.StreamHandler()
    handler.addFilter(RequestIdFilter())
    if log_format.lower() == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    logging.basicConfig(level=level, handlers=[handler], force=True)

    # Per-request access lines only at DEBUG.
    logging.getLogger("aiohttp.access").disabled = level > logging.DEBUG
