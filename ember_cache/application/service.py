from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from ember_cache.domain.validation import validate_key

from .cache import Cache


@dataclass(frozen=True)
class CacheApplicationService:
    """String-keyed facade over a ``Cache`` used by the transports."""

    cache: Cache

    def get(self, key: str) -> Optional[Any]:
        validate_key(key)
        return self.cache.get(key)

    def lookup(self, key: str) -> tuple[bool, Optional[Any]]:
        """Like ``get`` but tells a cached ``None`` apart from a miss."""
        validate_key(key)
        with self.cache.lock:
            found = self.cache.has(key)
            return found, self.cache.get(key)

    def put(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        validate_key(key)
        ttl = ttl_seconds if ttl_seconds is not None and ttl_seconds > 0 else None
        self.cache.put(key, value, ttl=ttl)

    def delete(self, key: str) -> bool:
        validate_key(key)
        return self.cache.remove(key)

    def clear(self) -> None:
        self.cache.clear()

    def items(self) -> dict[str, Any]:
        return self.cache.to_dict()

    def persist(self) -> None:
        self.cache.persist()

    def restore(self) -> int:
        self.cache.restore()
        return self.cache.size

    def stats(self) -> dict[str, Any]:
        with self.cache.lock:
            payload = self.cache.stats.as_dict()
            payload.update(
                {
                    "size": self.cache.size,
                    "capacity": self.cache.capacity,
                    "default_ttl": self.cache.ttl,
                    "ttl_cleanup_interval": self.cache.ttl_cleanup_interval,
                    "eviction_policy": type(self.cache.eviction_policy).__name__,
                    "auto_persist": self.cache.is_auto_persist,
                }
            )
            return payload
