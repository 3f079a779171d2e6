"""L1: byte-bounded LRU cache of decoded images."""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from typing import Any, Callable, Generic, TypeVar

LOGGER = logging.getLogger(__name__)

V = TypeVar("V")


class MemoryImageCache(Generic[V]):
    """L1: LRU memory cache whose capacity is a byte budget.

    Each entry is charged ``size_of(value)`` bytes.  After every ``put`` the
    least-recently-used entries are evicted until the accounted total fits in
    *max_size* again; the entry just inserted is never the one evicted, so a
    value larger than the whole budget is simply not retained.  All public
    methods take the internal lock, so the cache may be shared between the UI
    thread and the fetch workers.
    """

    def __init__(self, max_size: int, size_of: Callable[[V], int] | None = None):
        if max_size < 0:
            raise ValueError("max_size must be non-negative")
        self._cache: OrderedDict[str, tuple[V, int]] = OrderedDict()
        self._max_size = max_size
        self._size_of = size_of or _unit_size
        self._size = 0
        self._lock = threading.Lock()

    def get(self, key: str) -> V | None:
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None
            self._cache.move_to_end(key)
            return entry[0]

    def put(self, key: str, value: V) -> None:
        cost = self._safe_size(key, value)
        with self._lock:
            previous = self._cache.pop(key, None)
            if previous is not None:
                self._size -= previous[1]
            if cost > self._max_size:
                LOGGER.debug(
                    "Not caching %s: %d bytes exceeds budget of %d", key, cost, self._max_size
                )
                return
            self._cache[key] = (value, cost)
            self._size += cost
            self._trim_locked()

    def remove(self, key: str) -> V | None:
        with self._lock:
            entry = self._cache.pop(key, None)
            if entry is None:
                return None
            self._size -= entry[1]
            return entry[0]

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()
            self._size = 0

    @property
    def size(self) -> int:
        """Total accounted bytes of the cached entries."""
        with self._lock:
            return self._size

    @property
    def max_size(self) -> int:
        return self._max_size

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._cache

    def _trim_locked(self) -> None:
        # The newest entry sits at the end and is excluded from eviction.
        while self._size > self._max_size and len(self._cache) > 1:
            evicted_key, (_, evicted_cost) = self._cache.popitem(last=False)
            self._size -= evicted_cost
            LOGGER.debug("Evicted %s (%d bytes)", evicted_key, evicted_cost)

    def _safe_size(self, key: str, value: V) -> int:
        cost = int(self._size_of(value))
        if cost < 0:
            raise ValueError(f"Negative size {cost} for {key}")
        return cost


def _unit_size(_value: Any) -> int:
    return 1
