from __future__ import annotations

import random
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Any, Callable, Dict, Hashable, Iterable, List, Optional, Protocol, Union, runtime_checkable

from .errors import ConfigurationError


class CacheView(Protocol):
    """Read-only surface of the cache that eviction policies may inspect."""

    @property
    def first(self) -> Optional[Hashable]: ...

    @property
    def last(self) -> Optional[Hashable]: ...

    @property
    def size(self) -> int: ...

    @property
    def capacity(self) -> int: ...

    def keys(self) -> Iterable[Hashable]: ...


@runtime_checkable
class EvictionPolicy(Protocol):
    """
    Strategy deciding which key leaves a full cache.

    The cache calls the three hooks on every insertion, successful ``get`` and
    removal (of any kind), so a policy can keep whatever bookkeeping it needs.
    ``select_victim`` must return a key that is currently cached.
    """

    def on_insert(self, key: Hashable) -> None: ...

    def on_access(self, key: Hashable) -> None: ...

    def on_remove(self, key: Hashable) -> None: ...

    def select_victim(self, cache: CacheView) -> Hashable: ...


class BasePolicy(ABC):
    """No-op hooks; subclasses must implement ``select_victim``."""

    def on_insert(self, key: Hashable) -> None:
        pass

    def on_access(self, key: Hashable) -> None:
        pass

    def on_remove(self, key: Hashable) -> None:
        pass

    @abstractmethod
    def select_victim(self, cache: CacheView) -> Hashable:
        ...


class LRUPolicy(BasePolicy):
    """Evict the least recently touched key (the cache's own order)."""

    def select_victim(self, cache: CacheView) -> Hashable:
        return cache.first


class MRUPolicy(BasePolicy):
    def select_victim(self, cache: CacheView) -> Hashable:
        return cache.last


class FIFOPolicy(BasePolicy):
    """Evict in insertion order; reads do not affect it."""

    def __init__(self) -> None:
        self._order: "OrderedDict[Hashable, None]" = OrderedDict()

    def on_insert(self, key: Hashable) -> None:
        self._order[key] = None
        self._order.move_to_end(key)

    def on_remove(self, key: Hashable) -> None:
        self._order.pop(key, None)

    def select_victim(self, cache: CacheView) -> Hashable:
        return next(iter(self._order))


class LIFOPolicy(FIFOPolicy):
    def select_victim(self, cache: CacheView) -> Hashable:
        return next(reversed(self._order))


class RandomPolicy(BasePolicy):
    """Evict a uniformly random key. Pass ``seed`` or ``rng`` for repeatable runs."""

    def __init__(self, seed: Optional[int] = None, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or random.Random(seed)
        self._keys: List[Hashable] = []
        self._positions: Dict[Hashable, int] = {}

    def on_insert(self, key: Hashable) -> None:
        if key in self._positions:
            return
        self._positions[key] = len(self._keys)
        self._keys.append(key)

    def on_remove(self, key: Hashable) -> None:
        position = self._positions.pop(key, None)
        if position is None:
            return
        tail = self._keys.pop()
        if position < len(self._keys):
            self._keys[position] = tail
            self._positions[tail] = position

    def select_victim(self, cache: CacheView) -> Hashable:
        return self._rng.choice(self._keys)


class LFUPolicy(BasePolicy):
    """
    Evict the key with the fewest successful reads since it was inserted.

    Ties go to the key inserted earliest. Selection is a linear scan over the
    tracked keys.
    """

    def __init__(self) -> None:
        self._frequencies: Dict[Hashable, int] = {}

    def on_insert(self, key: Hashable) -> None:
        self._frequencies.pop(key, None)
        self._frequencies[key] = 0

    def on_access(self, key: Hashable) -> None:
        if key in self._frequencies:
            self._frequencies[key] += 1

    def on_remove(self, key: Hashable) -> None:
        self._frequencies.pop(key, None)

    def frequency(self, key: Hashable) -> int:
        return self._frequencies.get(key, 0)

    def select_victim(self, cache: CacheView) -> Hashable:
        return min(self._frequencies, key=self._frequencies.__getitem__)


class MFUPolicy(LFUPolicy):
    def select_victim(self, cache: CacheView) -> Hashable:
        return max(self._frequencies, key=self._frequencies.__getitem__)


class FunctionPolicy(BasePolicy):
    """Adapts a bare ``(cache) -> key`` callable to the policy interface."""

    def __init__(self, select: Callable[[Any], Hashable]) -> None:
        self._select = select

    def select_victim(self, cache: CacheView) -> Hashable:
        return self._select(cache)


POLICIES: Dict[str, Callable[[], EvictionPolicy]] = {
    "lru": LRUPolicy,
    "mru": MRUPolicy,
    "fifo": FIFOPolicy,
    "lifo": LIFOPolicy,
    "random": RandomPolicy,
    "lfu": LFUPolicy,
    "mfu": MFUPolicy,
}


def resolve_policy(policy: Union[EvictionPolicy, Callable[[Any], Hashable], str, None]) -> EvictionPolicy:
    if policy is None:
        return LRUPolicy()
    if isinstance(policy, type):
        policy = policy()
    if isinstance(policy, str):
        factory = POLICIES.get(policy.strip().lower())
        if factory is None:
            raise ConfigurationError(
                f"Unknown eviction policy {policy!r} (expected one of {', '.join(sorted(POLICIES))})"
            )
        return factory()
    if isinstance(policy, EvictionPolicy):
        return policy
    if callable(policy):
        return FunctionPolicy(policy)
    raise ConfigurationError(f"Eviction policy must be a policy object or callable, got {policy!r}")
