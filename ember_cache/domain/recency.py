from __future__ import annotations

from typing import Any, Dict, Generic, Hashable, Iterator, Optional, Tuple, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class _Node:
    __slots__ = ("key", "value", "prev", "next")

    def __init__(self, key: Any = None, value: Any = None):
        self.key = key
        self.value = value
        self.prev: "_Node" = self
        self.next: "_Node" = self


class RecencyStore(Generic[K, V]):
    """
    Ordered key-value container where order encodes recency.

    Keys are indexed by a dict pointing into a circular doubly linked list with
    a sentinel node. ``sentinel.next`` is the least recently touched entry and
    ``sentinel.prev`` the most recently touched one, so promotion, insertion
    and removal at either end are O(1).
    """

    def __init__(self) -> None:
        self._index: Dict[K, _Node] = {}
        self._sentinel = _Node()

    def _unlink(self, node: _Node) -> None:
        node.prev.next = node.next
        node.next.prev = node.prev

    def _append(self, node: _Node) -> None:
        tail = self._sentinel.prev
        node.prev = tail
        node.next = self._sentinel
        tail.next = node
        self._sentinel.prev = node

    def get(self, key: K, default: Optional[V] = None) -> Optional[V]:
        """Return the value for ``key`` and mark it most recently touched."""
        node = self._index.get(key)
        if node is None:
            return default
        self._unlink(node)
        self._append(node)
        return node.value

    def peek(self, key: K, default: Optional[V] = None) -> Optional[V]:
        node = self._index.get(key)
        if node is None:
            return default
        return node.value

    def put(self, key: K, value: V) -> None:
        node = self._index.get(key)
        if node is None:
            node = _Node(key, value)
            self._index[key] = node
        else:
            self._unlink(node)
            node.value = value
        self._append(node)

    def remove(self, key: K, default: Optional[V] = None) -> Optional[V]:
        node = self._index.pop(key, None)
        if node is None:
            return default
        self._unlink(node)
        return node.value

    def clear(self) -> None:
        self._index.clear()
        self._sentinel.prev = self._sentinel
        self._sentinel.next = self._sentinel

    @property
    def first(self) -> Optional[K]:
        if not self._index:
            return None
        return self._sentinel.next.key

    @property
    def last(self) -> Optional[K]:
        if not self._index:
            return None
        return self._sentinel.prev.key

    def items(self) -> Iterator[Tuple[K, V]]:
        node = self._sentinel.next
        while node is not self._sentinel:
            yield node.key, node.value
            node = node.next

    def __iter__(self) -> Iterator[K]:
        for key, _ in self.items():
            yield key

    def __contains__(self, key: object) -> bool:
        return key in self._index

    def __len__(self) -> int:
        return len(self._index)
