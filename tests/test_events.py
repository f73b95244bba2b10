import gc
from unittest.mock import Mock, call

import pytest

from ember_cache.domain.errors import ConfigurationError
from ember_cache.domain.events import CacheEvent, CacheItem, EventBus


pytestmark = [pytest.mark.unit]


def test_on_rejects_unknown_event_kind():
    bus = EventBus()

    with pytest.raises(ConfigurationError, match="Invalid event: foo"):
        bus.on("foo", Mock())


def test_on_accepts_enum_and_string_kinds():
    bus = EventBus()
    by_enum = Mock()
    by_name = Mock()
    bus.on(CacheEvent.INSERTION, by_enum)
    bus.on("insertion", by_name)

    bus.emit(CacheEvent.INSERTION, "a", 1)

    by_enum.assert_called_once_with(CacheEvent.INSERTION, CacheItem("a", 1))
    by_name.assert_called_once_with(CacheEvent.INSERTION, CacheItem("a", 1))


def test_emit_without_handlers_is_a_no_op():
    EventBus().emit(CacheEvent.FULL)


def test_emit_calls_handlers_in_registration_order():
    bus = EventBus()
    calls = []
    bus.on(CacheEvent.EVICTION, lambda event, item: calls.append(("first", item)))
    bus.on(CacheEvent.EVICTION, lambda event, item: calls.append(("second", item)))

    bus.emit(CacheEvent.EVICTION, "k", "v")

    assert calls == [("first", ("k", "v")), ("second", ("k", "v"))]


def test_non_item_events_pass_none():
    bus = EventBus()
    handler = Mock()
    bus.on(CacheEvent.EMPTY, handler)

    bus.emit(CacheEvent.EMPTY)

    handler.assert_called_once_with(CacheEvent.EMPTY, None)


def test_falsy_keys_and_values_still_produce_an_item():
    bus = EventBus()
    handler = Mock()
    bus.on(CacheEvent.INSERTION, handler)

    bus.emit(CacheEvent.INSERTION, 0, None)

    handler.assert_called_once_with(CacheEvent.INSERTION, CacheItem(0, None))


def test_unregister_removes_only_that_registration_and_is_idempotent():
    bus = EventBus()
    handler = Mock()
    first = bus.on(CacheEvent.INSERTION, handler)
    second = bus.on(CacheEvent.INSERTION, handler)
    assert bus.handler_count(CacheEvent.INSERTION) == 2

    first.unregister()
    first.unregister()
    assert first.active is False
    assert second.active is True

    bus.emit(CacheEvent.INSERTION, "a", 1)
    handler.assert_called_once_with(CacheEvent.INSERTION, CacheItem("a", 1))


def test_unregister_during_emit_applies_to_next_emit():
    bus = EventBus()
    later = Mock()
    registrations = {}

    def unregister_later(event, item):
        registrations["later"].unregister()

    bus.on(CacheEvent.REMOVAL, unregister_later)
    registrations["later"] = bus.on(CacheEvent.REMOVAL, later)

    bus.emit(CacheEvent.REMOVAL, "a", 1)
    bus.emit(CacheEvent.REMOVAL, "b", 2)

    assert later.call_args_list == [call(CacheEvent.REMOVAL, CacheItem("a", 1))]


def test_registration_does_not_keep_bus_alive():
    bus = EventBus()
    registration = bus.on(CacheEvent.FULL, Mock())

    del bus
    gc.collect()

    assert registration.active is False
    registration.unregister()


def test_has_handlers():
    bus = EventBus()
    assert bus.has_handlers(CacheEvent.REMOVAL) is False

    registration = bus.on(CacheEvent.REMOVAL, Mock())
    assert bus.has_handlers("removal") is True

    registration.unregister()
    assert bus.has_handlers(CacheEvent.REMOVAL) is False
