from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Generic, Hashable, List, Optional, TypeVar

K = TypeVar("K", bound=Hashable)


@dataclass(frozen=True)
class TTLRecord:
    ttl: float
    expires_at: float


class TTLTracker(Generic[K]):
    """Per-key expiry bookkeeping. Times are readings of the cache clock."""

    def __init__(self) -> None:
        self._records: Dict[K, TTLRecord] = {}

    def track(self, key: K, ttl: float, now: float) -> TTLRecord:
        record = TTLRecord(ttl=ttl, expires_at=now + ttl)
        self._records[key] = record
        return record

    def refresh(self, key: K, now: float) -> Optional[TTLRecord]:
        """Restart the countdown of ``key`` from ``now`` using its own ttl."""
        record = self._records.get(key)
        if record is None:
            return None
        return self.track(key, record.ttl, now)

    def is_expired(self, key: K, now: float) -> bool:
        record = self._records.get(key)
        if record is None:
            return False
        return now > record.expires_at

    def expired_keys(self, now: float) -> List[K]:
        return [key for key, record in self._records.items() if now > record.expires_at]

    def get(self, key: K) -> Optional[TTLRecord]:
        return self._records.get(key)

    def discard(self, key: K) -> None:
        self._records.pop(key, None)

    def clear(self) -> None:
        self._records.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._records

    def __len__(self) -> int:
        return len(self._records)
