from __future__ import annotations

import logging
import time
from threading import Lock, RLock
from typing import Any, Callable, Dict, Generic, Hashable, List, Optional, TypeVar, Union

from ember_cache.domain.errors import EvictionPolicyError, StateError
from ember_cache.domain.events import MISSING, CacheEvent, CacheEventHandler, EventBus, EventRegistration
from ember_cache.domain.eviction import EvictionPolicy, resolve_policy
from ember_cache.domain.recency import RecencyStore
from ember_cache.domain.stats import CacheStats, StatsTracker
from ember_cache.domain.ttl import TTLTracker
from ember_cache.domain.validation import validate_capacity, validate_cleanup_interval, validate_ttl

from .ports import PersistenceAdapter
from .sweeper import TTLSweeper

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

EvictionPolicyLike = Union[EvictionPolicy, Callable[[Any], Hashable], str, None]


class Cache(Generic[K, V]):
    """
    Bounded in-memory cache with pluggable eviction, TTL expiry, events,
    statistics and optional persistence.

    Every public operation runs under one re-entrant lock, which the optional
    TTL sweeper thread shares, so a sweep never interleaves with a foreground
    call. Event handlers run synchronously while that lock is held and should
    only read from the cache.

    Durations are in seconds and are measured with ``clock`` (``time.monotonic``
    unless one is injected).
    """

    def __init__(
        self,
        capacity: int,
        *,
        auto_persist: bool = False,
        ttl: Optional[float] = None,
        ttl_cleanup_interval: Optional[float] = None,
        eviction_policy: EvictionPolicyLike = None,
        persistence_adapter: Optional[PersistenceAdapter] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self._capacity = validate_capacity(capacity)
        self._ttl = validate_ttl(ttl)
        cleanup_interval = validate_cleanup_interval(ttl_cleanup_interval, allow_disable=False)

        self._store: RecencyStore[K, V] = RecencyStore()
        self._ttl_tracker: TTLTracker[K] = TTLTracker()
        self._stats = StatsTracker()
        self._events: EventBus[K, V] = EventBus()
        self._policy = resolve_policy(eviction_policy)
        self._persistence_adapter = persistence_adapter
        self._auto_persist = bool(auto_persist)
        self._clock = clock or time.monotonic

        self.lock = RLock()
        self._sweeper_lock = Lock()
        self._sweeper: Optional[TTLSweeper] = None
        if cleanup_interval:
            self._sweeper = TTLSweeper(self.evict_expired, cleanup_interval).start()

    # internal state transitions, callers hold self.lock

    def _discard(self, key: K) -> Any:
        value = self._store.remove(key, MISSING)
        self._ttl_tracker.discard(key)
        if value is not MISSING:
            self._policy.on_remove(key)
        return value

    def _evict(self, key: K, reason: str) -> None:
        value = self._discard(key)
        self._stats.record_eviction()
        logger.debug("Evicted key %r (%s)", key, reason, extra={"cache_key": key, "reason": reason})
        self._events.emit(CacheEvent.EVICTION, key, value)

    def _select_victim(self) -> K:
        victim = self._policy.select_victim(self)
        if victim not in self._store:
            raise EvictionPolicyError(
                f"{type(self._policy).__name__} selected {victim!r}, which is not in the cache"
            )
        return victim

    def _shrink_to(self, capacity: int) -> None:
        while len(self._store) > capacity:
            self._evict(self._select_victim(), "capacity")

    def _expire(self, key: K) -> bool:
        if not self._ttl_tracker.is_expired(key, self._clock()):
            return False
        self._evict(key, "expired")
        return True

    def _expire_if_needed(self, key: K) -> bool:
        if not self._expire(key):
            return False
        self._emit_empty_if_needed()
        return True

    def _emit_empty_if_needed(self) -> None:
        if not self._store:
            self._events.emit(CacheEvent.EMPTY)

    def _persist_if_enabled(self) -> None:
        if self._auto_persist:
            self.persist()

    def _require_adapter(self) -> PersistenceAdapter:
        if self._persistence_adapter is None:
            raise StateError("Persistence adapter is not set")
        return self._persistence_adapter

    # public operations

    def get(self, key: K, default: Optional[V] = None) -> Optional[V]:
        """Return the cached value and mark the key most recently used."""
        with self.lock:
            if self._expire_if_needed(key):
                self._stats.record_miss()
                self._persist_if_enabled()
                return default

            value = self._store.get(key, MISSING)
            if value is MISSING:
                self._stats.record_miss()
                return default

            self._ttl_tracker.refresh(key, self._clock())
            self._policy.on_access(key)
            self._stats.record_hit()
            self._persist_if_enabled()
            return value

    def put(self, key: K, value: V, ttl: Optional[float] = None) -> None:
        """
        Insert or overwrite ``key``.

        A positive ``ttl`` overrides the cache-wide default for this key only.
        Inserting a new key into a full cache first evicts the key chosen by
        the eviction policy.
        """
        with self.lock:
            # No Empty event: the key is re-inserted below.
            self._expire(key)

            if key in self._store:
                self._discard(key)
            elif len(self._store) >= self._capacity:
                self._evict(self._select_victim(), "capacity")

            self._store.put(key, value)
            self._policy.on_insert(key)

            effective_ttl = ttl if ttl is not None and ttl > 0 else self._ttl
            if effective_ttl:
                self._ttl_tracker.track(key, effective_ttl, self._clock())

            self._events.emit(CacheEvent.INSERTION, key, value)
            if len(self._store) == self._capacity:
                self._events.emit(CacheEvent.FULL)
            self._persist_if_enabled()

    def peek(self, key: K, default: Optional[V] = None) -> Optional[V]:
        with self.lock:
            if self._expire_if_needed(key):
                self._persist_if_enabled()
                return default
            return self._store.peek(key, default)

    def has(self, key: K) -> bool:
        with self.lock:
            if self._expire_if_needed(key):
                self._persist_if_enabled()
                return False
            return key in self._store

    def remove(self, key: K) -> bool:
        """
        Remove ``key`` and report whether it was cached.

        A Removal event fires on every call; its item is ``None`` when the key
        was not cached.
        """
        with self.lock:
            value = self._discard(key)
            if value is MISSING:
                self._events.emit(CacheEvent.REMOVAL)
            else:
                self._events.emit(CacheEvent.REMOVAL, key, value)
            self._emit_empty_if_needed()
            self._persist_if_enabled()
            return value is not MISSING

    def clear(self) -> None:
        with self.lock:
            if self._events.has_handlers(CacheEvent.REMOVAL):
                for key, value in list(self._store.items()):
                    self._events.emit(CacheEvent.REMOVAL, key, value)

            for key in list(self._store):
                self._policy.on_remove(key)
            self._store.clear()
            self._ttl_tracker.clear()

            self._events.emit(CacheEvent.EMPTY)
            self._persist_if_enabled()

    def clear_stats(self) -> None:
        with self.lock:
            self._stats.clear()

    def resize(self, capacity: int) -> None:
        capacity = validate_capacity(capacity)
        with self.lock:
            self._capacity = capacity
            self._shrink_to(capacity)
            self._persist_if_enabled()

    def evict_expired(self) -> int:
        """Evict every entry whose TTL has elapsed; return how many were evicted."""
        with self.lock:
            expired = self._ttl_tracker.expired_keys(self._clock())
            for key in expired:
                self._evict(key, "expired")
            if expired:
                self._emit_empty_if_needed()
                self._persist_if_enabled()
            return len(expired)

    def on(self, event: Union[CacheEvent, str], handler: CacheEventHandler) -> EventRegistration:
        with self.lock:
            return self._events.on(event, handler)

    def persist(self) -> None:
        with self.lock:
            self._require_adapter().persist(self.to_dict())

    def restore(self) -> None:
        """
        Replace the cache contents with the adapter's snapshot.

        Restored entries carry no TTL. Entries beyond the capacity are evicted
        through the eviction policy.
        """
        with self.lock:
            contents = self._require_adapter().restore() or {}

            for key in list(self._store):
                self._policy.on_remove(key)
            self._store.clear()
            self._ttl_tracker.clear()

            for key, value in contents.items():
                self._store.put(key, value)
                self._policy.on_insert(key)

            self._shrink_to(self._capacity)
            self._emit_empty_if_needed()
            logger.info("Restored %d cache entries", len(self._store), extra={"entries": len(self._store)})

    def to_dict(self) -> Dict[K, V]:
        """Copy of the contents, least recently used first."""
        with self.lock:
            return dict(self._store.items())

    def keys(self) -> List[K]:
        with self.lock:
            return list(self._store)

    # TTL sweeper

    def set_ttl_cleanup_interval(self, interval: Optional[float]) -> None:
        """Replace the proactive expiry sweep; ``0`` or ``None`` disables it."""
        interval = validate_cleanup_interval(interval)
        with self._sweeper_lock:
            previous, self._sweeper = self._sweeper, None
            if interval:
                self._sweeper = TTLSweeper(self.evict_expired, interval).start()
        if previous is not None:
            previous.stop()

    def clear_ttl_cleanup_interval(self) -> None:
        self.set_ttl_cleanup_interval(None)

    def stop(self) -> None:
        """Stop the background TTL sweeper, if any."""
        self.clear_ttl_cleanup_interval()

    @property
    def ttl_cleanup_interval(self) -> Optional[float]:
        sweeper = self._sweeper
        return sweeper.interval if sweeper is not None else None

    # accessors

    @property
    def first(self) -> Optional[K]:
        with self.lock:
            return self._store.first

    @property
    def last(self) -> Optional[K]:
        with self.lock:
            return self._store.last

    @property
    def size(self) -> int:
        with self.lock:
            return len(self._store)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def stats(self) -> CacheStats:
        with self.lock:
            return self._stats.snapshot()

    @property
    def ttl(self) -> Optional[float]:
        return self._ttl

    @ttl.setter
    def ttl(self, ttl: Optional[float]) -> None:
        self._ttl = validate_ttl(ttl)

    @property
    def auto_persist(self) -> bool:
        return self._auto_persist

    @auto_persist.setter
    def auto_persist(self, auto_persist: bool) -> None:
        self._auto_persist = bool(auto_persist)

    @property
    def is_auto_persist(self) -> bool:
        return self._auto_persist

    @property
    def persistence_adapter(self) -> Optional[PersistenceAdapter]:
        return self._persistence_adapter

    @persistence_adapter.setter
    def persistence_adapter(self, adapter: Optional[PersistenceAdapter]) -> None:
        self._persistence_adapter = adapter

    @property
    def eviction_policy(self) -> EvictionPolicy:
        return self._policy

    def __contains__(self, key: object) -> bool:
        return self.has(key)  # type: ignore[arg-type]

    def __len__(self) -> int:
        return self.size

    def __repr__(self) -> str:
        return f"{type(self).__name__}(size={len(self._store)}, capacity={self._capacity})"
