import random

import pytest

from ember_cache.application.cache import Cache
from ember_cache.domain.errors import ConfigurationError, EvictionPolicyError
from ember_cache.domain.eviction import (
    BasePolicy,
    EvictionPolicy,
    FIFOPolicy,
    FunctionPolicy,
    LFUPolicy,
    LIFOPolicy,
    LRUPolicy,
    MFUPolicy,
    MRUPolicy,
    RandomPolicy,
    resolve_policy,
)


pytestmark = [pytest.mark.unit]


def _fill_and_overflow(cache):
    """put a, put b, get a, put c: the scenario every policy is checked against."""
    cache.put("a", 1)
    cache.put("b", 2)
    cache.get("a")
    cache.put("c", 3)


@pytest.mark.parametrize(
    "policy, evicted, kept",
    [
        (None, "b", "a"),
        (LRUPolicy(), "b", "a"),
        (MRUPolicy(), "a", "b"),
        (lambda cache: cache.last, "a", "b"),
        (FIFOPolicy(), "a", "b"),
        (LIFOPolicy(), "b", "a"),
        (LFUPolicy(), "b", "a"),
        (MFUPolicy(), "a", "b"),
        ("fifo", "a", "b"),
        ("MFU", "a", "b"),
    ],
)
def test_policy_selects_expected_victim(policy, evicted, kept):
    cache = Cache(2, eviction_policy=policy)

    _fill_and_overflow(cache)

    assert cache.has(evicted) is False
    assert cache.has(kept) is True
    assert cache.has("c") is True
    assert cache.stats.eviction == 1


def test_random_policy_is_repeatable_with_a_seed():
    victims = []
    for _ in range(2):
        cache = Cache(2, eviction_policy=RandomPolicy(seed=42))
        cache.on("eviction", lambda event, item: victims.append(item.key))
        _fill_and_overflow(cache)
        assert cache.size == 2
        assert cache.has("c") is True

    assert victims[0] == victims[1]
    assert victims[0] in {"a", "b"}


def test_random_policy_bookkeeping_survives_removals():
    policy = RandomPolicy(rng=random.Random(0))
    cache = Cache(3, eviction_policy=policy)
    for key in "abc":
        cache.put(key, key)
    cache.remove("a")
    cache.remove("c")
    cache.put("d", "d")
    cache.put("e", "e")
    cache.put("f", "f")

    assert cache.size == 3
    assert sorted(policy._keys) == sorted(cache.keys())


def test_lfu_counts_only_successful_reads_and_resets_on_update():
    policy = LFUPolicy()
    cache = Cache(3, eviction_policy=policy)
    cache.put("a", 1)
    cache.put("b", 2)
    cache.get("a")
    cache.get("a")
    cache.get("missing")
    assert policy.frequency("a") == 2

    cache.put("a", 10)
    assert policy.frequency("a") == 0


def test_lfu_ties_go_to_earliest_inserted():
    cache = Cache(2, eviction_policy=LFUPolicy())
    cache.put("a", 1)
    cache.put("b", 2)
    cache.put("c", 3)

    assert cache.keys() == ["b", "c"]


class RecordingPolicy(BasePolicy):
    def __init__(self):
        self.calls = []

    def on_insert(self, key):
        self.calls.append(("insert", key))

    def on_access(self, key):
        self.calls.append(("access", key))

    def on_remove(self, key):
        self.calls.append(("remove", key))

    def select_victim(self, cache):
        self.calls.append(("select", cache.size))
        return cache.first


def test_policy_without_select_victim_fails_at_construction():
    class Forgetful(BasePolicy):
        def on_insert(self, key):
            pass

    with pytest.raises(TypeError, match="select_victim"):
        Forgetful()

    with pytest.raises(TypeError):
        BasePolicy()  # type: ignore[abstract]


def test_hooks_are_called_for_every_lifecycle_step():
    policy = RecordingPolicy()
    cache = Cache(2, eviction_policy=policy)

    cache.put("a", 1)
    cache.get("a")
    cache.get("missing")
    cache.put("a", 2)
    cache.put("b", 3)
    cache.put("c", 4)
    cache.remove("b")
    cache.remove("absent")
    cache.clear()

    assert policy.calls == [
        ("insert", "a"),
        ("access", "a"),
        ("remove", "a"),
        ("insert", "a"),
        ("insert", "b"),
        ("select", 2),
        ("remove", "a"),
        ("insert", "c"),
        ("remove", "b"),
        ("remove", "c"),
    ]


def test_policy_returning_absent_key_aborts_the_insert():
    cache = Cache(2, eviction_policy=lambda cache: "nope")
    cache.put("a", 1)
    cache.put("b", 2)

    with pytest.raises(EvictionPolicyError, match="'nope'"):
        cache.put("c", 3)

    assert cache.to_dict() == {"a": 1, "b": 2}
    assert cache.stats.eviction == 0


def test_resolve_policy_variants():
    assert isinstance(resolve_policy(None), LRUPolicy)
    assert isinstance(resolve_policy("lifo"), LIFOPolicy)
    assert isinstance(resolve_policy(MFUPolicy), MFUPolicy)
    assert isinstance(resolve_policy(lambda cache: cache.first), FunctionPolicy)

    custom = RecordingPolicy()
    assert resolve_policy(custom) is custom
    assert isinstance(custom, EvictionPolicy)

    with pytest.raises(ConfigurationError, match="Unknown eviction policy"):
        resolve_policy("clock")
    with pytest.raises(ConfigurationError):
        resolve_policy(42)
