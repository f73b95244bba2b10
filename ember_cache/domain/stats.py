from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class CacheStats:
    hit: int = 0
    miss: int = 0
    eviction: int = 0
    access: int = 0

    @property
    def hit_rate(self) -> float:
        return self.hit / self.access if self.access else 0

    @property
    def miss_rate(self) -> float:
        return self.miss / self.access if self.access else 0

    @property
    def eviction_rate(self) -> float:
        return self.eviction / self.access if self.access else 0

    @property
    def effectiveness(self) -> float:
        """Evictions per hit, a proxy for policy pressure."""
        return self.eviction / self.hit if self.hit else 0

    def as_dict(self) -> Dict[str, Any]:
        return {
            "hits": self.hit,
            "misses": self.miss,
            "evictions": self.eviction,
            "accesses": self.access,
            "hit_rate": self.hit_rate,
            "miss_rate": self.miss_rate,
            "eviction_rate": self.eviction_rate,
            "effectiveness": self.effectiveness,
        }


class StatsTracker:
    def __init__(self) -> None:
        self.hits = 0
        self.misses = 0
        self.evictions = 0
        self.accesses = 0

    def record_hit(self) -> None:
        self.accesses += 1
        self.hits += 1

    def record_miss(self) -> None:
        self.accesses += 1
        self.misses += 1

    def record_eviction(self) -> None:
        self.evictions += 1

    def clear(self) -> None:
        self.hits = 0
        self.misses = 0
        self.evictions = 0
        self.accesses = 0

    def snapshot(self) -> CacheStats:
        return CacheStats(
            hit=self.hits,
            miss=self.misses,
            eviction=self.evictions,
            access=self.accesses,
        )
