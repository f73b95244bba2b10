from __future__ import annotations

import logging
import os
import tempfile
import uuid
from pathlib import Path
from typing import Any, Callable, Dict, Hashable, Mapping, Optional, Protocol

from pydantic import BaseModel, TypeAdapter, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_STORE_DIR = ".ember_cache"


class KeyValueStore(Protocol):
    """Durable byte store addressed by string names."""

    def get_item(self, name: str) -> Optional[bytes]: ...

    def set_item(self, name: str, data: bytes) -> None: ...

    def remove_item(self, name: str) -> None: ...


class MemoryKeyValueStore:
    def __init__(self) -> None:
        self._items: Dict[str, bytes] = {}

    def get_item(self, name: str) -> Optional[bytes]:
        return self._items.get(name)

    def set_item(self, name: str, data: bytes) -> None:
        self._items[name] = bytes(data)

    def remove_item(self, name: str) -> None:
        self._items.pop(name, None)

    def __contains__(self, name: object) -> bool:
        return name in self._items


class FileKeyValueStore:
    """
    One file per name inside ``directory``.

    Writes go to a temporary file in the same directory and are moved into
    place with ``os.replace``, so readers see either the old or the new
    snapshot, never a partial one.
    """

    def __init__(self, directory: str | os.PathLike[str] = DEFAULT_STORE_DIR):
        self.directory = Path(directory)

    def _path(self, name: str) -> Path:
        if not name or "/" in name or "\\" in name or name in {".", ".."}:
            raise ValueError(f"Invalid store item name: {name!r}")
        return self.directory / name

    def get_item(self, name: str) -> Optional[bytes]:
        try:
            return self._path(name).read_bytes()
        except FileNotFoundError:
            return None

    def set_item(self, name: str, data: bytes) -> None:
        path = self._path(name)
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def remove_item(self, name: str) -> None:
        self._path(name).unlink(missing_ok=True)


class PersistedRecord(BaseModel):
    key: Any
    value: Any


_records_adapter = TypeAdapter(list[PersistedRecord])

JSON_SCALAR_KEYS = (str, int, float, bool, type(None))


class KeyValuePersistence:
    """
    Stores a cache snapshot under one name of a ``KeyValueStore`` as a JSON
    list of ``{"key": ..., "value": ...}`` records.

    Keys must be JSON scalars (strings, numbers, booleans or null) and values
    JSON serialisable. ``persist`` rejects any other key with ``ValueError``
    before anything is written.
    """

    def __init__(self, key: Optional[str] = None, store: Optional[KeyValueStore] = None):
        self._key = key or uuid.uuid4().hex
        self.store: KeyValueStore = store if store is not None else FileKeyValueStore()

    @property
    def key(self) -> str:
        return self._key

    def persist(self, contents: Mapping[Hashable, Any]) -> None:
        for k in contents:
            if not isinstance(k, JSON_SCALAR_KEYS):
                raise ValueError(f"Cannot persist key {k!r}: keys must be JSON scalars, got {type(k).__name__}")
        records = [PersistedRecord(key=k, value=v) for k, v in contents.items()]
        self.store.set_item(self._key, _records_adapter.dump_json(records))
        logger.debug("Persisted %d entries under %s", len(records), self._key, extra={"entries": len(records)})

    def restore(self) -> Dict[Hashable, Any]:
        data = self.store.get_item(self._key)
        if not data:
            return {}
        try:
            records = _records_adapter.validate_json(data)
        except ValidationError as exc:
            raise ValueError(f"Stored snapshot {self._key!r} is not a list of key/value records") from exc
        try:
            return {record.key: record.value for record in records}
        except TypeError as exc:
            raise ValueError(f"Stored snapshot {self._key!r} has a key that is not a JSON scalar") from exc

    def delete(self) -> None:
        self.store.remove_item(self._key)


class CallbackPersistence:
    """Persistence adapter assembled from two plain callables."""

    def __init__(
        self,
        persist: Callable[[Mapping[Hashable, Any]], None],
        restore: Callable[[], Mapping[Hashable, Any]],
    ):
        self._persist = persist
        self._restore = restore

    def persist(self, contents: Mapping[Hashable, Any]) -> None:
        self._persist(contents)

    def restore(self) -> Mapping[Hashable, Any]:
        return self._restore()
