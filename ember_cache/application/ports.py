from __future__ import annotations

from typing import Any, Hashable, Mapping, Protocol, runtime_checkable


@runtime_checkable
class PersistenceAdapter(Protocol):
    """Writes out and reads back the full contents of a cache, oldest entry first."""

    def persist(self, contents: Mapping[Hashable, Any]) -> None: ...

    def restore(self) -> Mapping[Hashable, Any]: ...

