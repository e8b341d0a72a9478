"""Bounded keyed cache with at-most-once initialisation per key."""

from __future__ import annotations

from collections import OrderedDict
from collections.abc import Callable, Hashable
from threading import Lock
from typing import Generic, TypeVar


K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class _CacheEntry(Generic[V]):
    __slots__ = ("done", "lock", "value")

    def __init__(self) -> None:
        self.lock = Lock()
        self.done = False
        self.value: V | None = None


class OnceCache(Generic[K, V]):
    """Thread-safe cache where concurrent first requests share one computation.

    The first caller for a key runs the factory while holding the entry lock;
    concurrent callers for the same key block on that lock and reuse the
    result. A failing factory leaves no entry behind so a later call may retry.
    """

    def __init__(self, maxsize: int | None = 128) -> None:
        self.maxsize = maxsize
        self._entries: OrderedDict[K, _CacheEntry[V]] = OrderedDict()
        self._guard = Lock()
        self.hits = 0
        self.misses = 0

    def __contains__(self, key: object) -> bool:
        with self._guard:
            entry = self._entries.get(key)  # type: ignore[call-overload]
            return entry is not None and entry.done

    def __len__(self) -> int:
        with self._guard:
            return sum(1 for entry in self._entries.values() if entry.done)

    def get_or_create(self, key: K, factory: Callable[[], V]) -> V:
        """Return the cached value for ``key``, computing it at most once."""
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = _CacheEntry()
                self._entries[key] = entry
            else:
                self._entries.move_to_end(key)

        with entry.lock:
            if entry.done:
                with self._guard:
                    self.hits += 1
                return entry.value  # type: ignore[return-value]
            try:
                value = factory()
            except BaseException:
                with self._guard:
                    if self._entries.get(key) is entry:
                        del self._entries[key]
                raise
            entry.value = value
            entry.done = True
            with self._guard:
                self.misses += 1
                self._evict()
            return value

    def _evict(self) -> None:
        if self.maxsize is None:
            return
        # In-flight entries are never evicted.
        for candidate in list(self._entries):
            if len(self._entries) <= self.maxsize:
                break
            if self._entries[candidate].done:
                del self._entries[candidate]

    def clear(self) -> None:
        """Drop every cached value."""
        with self._guard:
            self._entries.clear()
            self.hits = 0
            self.misses = 0


__all__ = ["OnceCache"]
