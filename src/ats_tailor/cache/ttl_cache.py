"""In-process TTL cache owned by whoever constructs it."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable, Hashable
from typing import Generic, TypeVar

V = TypeVar("V")


class TTLCache(Generic[V]):
    """Key/value cache whose entries expire ``ttl_seconds`` after being loaded.

    Values are produced by a loader passed at lookup time, so the cache
    never needs to know how to build them. A TTL of 0 disables caching.
    """

    def __init__(self, ttl_seconds: float, *, clock: Callable[[], float] = time.monotonic):
        if ttl_seconds < 0:
            raise ValueError("ttl_seconds must be >= 0")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[Hashable, tuple[V, float]] = {}

    def _fresh(self, key: Hashable) -> tuple[bool, V | None]:
        entry = self._entries.get(key)
        if entry is None:
            return False, None
        value, loaded_at = entry
        if self._clock() - loaded_at >= self.ttl_seconds:
            del self._entries[key]
            return False, None
        return True, value

    def get(self, key: Hashable, loader: Callable[[], V]) -> V:
        """Return the cached value for ``key``, calling ``loader`` on a miss."""
        hit, value = self._fresh(key)
        if hit:
            return value
        value = loader()
        self._entries[key] = (value, self._clock())
        return value

    async def aget(self, key: Hashable, loader: Callable[[], Awaitable[V]]) -> V:
        """Async variant of :meth:`get` for coroutine loaders."""
        hit, value = self._fresh(key)
        if hit:
            return value
        value = await loader()
        self._entries[key] = (value, self._clock())
        return value

    def invalidate(self, key: Hashable) -> None:
        self._entries.pop(key, None)

    def clear(self) -> int:
        """Drop every entry. Returns how many were dropped."""
        count = len(self._entries)
        self._entries.clear()
        return count

    def stats(self) -> dict:
        now = self._clock()
        expired = sum(1 for _, at in self._entries.values() if now - at >= self.ttl_seconds)
        total = len(self._entries)
        return {"total": total, "expired": expired, "active": total - expired}
