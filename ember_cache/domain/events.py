from __future__ import annotations

import itertools
import weakref
from enum import Enum
from typing import Any, Callable, Dict, Generic, NamedTuple, Optional, TypeVar, Union

from .errors import ConfigurationError

K = TypeVar("K")
V = TypeVar("V")


class CacheEvent(str, Enum):
    INSERTION = "insertion"
    EVICTION = "eviction"
    REMOVAL = "removal"
    FULL = "full"
    EMPTY = "empty"


class CacheItem(NamedTuple):
    key: Any
    value: Any


CacheEventHandler = Callable[[CacheEvent, Optional[CacheItem]], None]

# Distinguishes "no key/value given" from a legitimate None value.
MISSING: Any = object()


def resolve_event(kind: Union[CacheEvent, str]) -> CacheEvent:
    try:
        return CacheEvent(kind)
    except ValueError:
        raise ConfigurationError(f"Invalid event: {kind}") from None


class EventRegistration:
    """
    Handle returned by ``EventBus.on``.

    The handle refers to its handler by a generation id rather than by the
    callable's identity, so registering the same function twice yields two
    independently removable registrations.

    Only the handle-to-bus link is weak: the handle does not keep the bus
    alive, while the bus holds its handlers strongly and keeps no reference
    to the handles it gives out.
    """

    __slots__ = ("event", "handler_id", "_bus", "__weakref__")

    def __init__(self, bus: "EventBus", event: CacheEvent, handler_id: int):
        self.event = event
        self.handler_id = handler_id
        self._bus = weakref.ref(bus)

    @property
    def active(self) -> bool:
        bus = self._bus()
        return bus is not None and bus.is_registered(self)

    def unregister(self) -> None:
        bus = self._bus()
        if bus is not None:
            bus.unregister(self)

    def __repr__(self) -> str:
        return f"EventRegistration(event={self.event.value!r}, handler_id={self.handler_id})"


class EventBus(Generic[K, V]):
    def __init__(self) -> None:
        self._handlers: Dict[CacheEvent, Dict[int, CacheEventHandler]] = {event: {} for event in CacheEvent}
        self._ids = itertools.count(1)

    def on(self, kind: Union[CacheEvent, str], handler: CacheEventHandler) -> EventRegistration:
        event = resolve_event(kind)
        if not callable(handler):
            raise ConfigurationError(f"Event handler must be callable, got {handler!r}")
        handler_id = next(self._ids)
        self._handlers[event][handler_id] = handler
        return EventRegistration(self, event, handler_id)

    def unregister(self, registration: EventRegistration) -> None:
        self._handlers[registration.event].pop(registration.handler_id, None)

    def is_registered(self, registration: EventRegistration) -> bool:
        return registration.handler_id in self._handlers[registration.event]

    def handler_count(self, kind: Union[CacheEvent, str]) -> int:
        return len(self._handlers[resolve_event(kind)])

    def has_handlers(self, kind: Union[CacheEvent, str]) -> bool:
        return self.handler_count(kind) > 0

    def emit(self, kind: CacheEvent, key: Any = MISSING, value: Any = MISSING) -> None:
        handlers = self._handlers[kind]
        if not handlers:
            return
        item = None if key is MISSING or value is MISSING else CacheItem(key, value)
        # Handlers registered or removed during emission apply to the next one.
        for handler in list(handlers.values()):
            handler(kind, item)

    def clear(self) -> None:
        for handlers in self._handlers.values():
            handlers.clear()
