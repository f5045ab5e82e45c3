"""Process-local, time-bounded translation cache in front of the SQLite store."""

from __future__ import annotations

import sys
import threading
import time
from collections.abc import Callable, Hashable
from typing import Any, NamedTuple

from cachetools import TLRUCache

DEFAULT_TTL = 3600.0  # 1 hour
DEFAULT_MAXSIZE = 10_000


class _Entry(NamedTuple):
    value: Any
    ttl: float


def _entry_expiry(_key: Hashable, entry: _Entry, now: float) -> float:
    return now + entry.ttl


class MemoryTranslationCache:
    """Thread-safe TTL cache; each entry may carry its own TTL.

    Expired entries are dropped lazily on access or by :meth:`expire`.
    Losing the whole cache is always safe: it only saves round trips.
    """

    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL,
        maxsize: int = DEFAULT_MAXSIZE,
        *,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self.default_ttl = default_ttl
        self._cache: TLRUCache[Hashable, _Entry] = TLRUCache(
            maxsize=maxsize, ttu=_entry_expiry, timer=timer,
        )
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> Any | None:
        with self._lock:
            entry = self._cache.get(key)
        return entry.value if entry is not None else None

    def set(self, key: Hashable, value: Any, ttl: float | None = None) -> None:
        effective = self.default_ttl if ttl is None else ttl
        if effective <= 0:
            raise ValueError(f"ttl must be positive, got {effective}")
        with self._lock:
            self._cache[key] = _Entry(value, effective)

    def delete(self, key: Hashable) -> None:
        with self._lock:
            self._cache.pop(key, None)

    def expire(self) -> int:
        """Drop all expired entries now. Returns how many were removed."""
        with self._lock:
            return len(self._cache.expire())

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        with self._lock:
            self._cache.expire()
            return len(self._cache)

    def approximate_size(self) -> int:
        """Rough byte size of live keys and values."""
        with self._lock:
            self._cache.expire()
            return sum(
                _sizeof(key) + _sizeof(entry.value)
                for key, entry in self._cache.items()
            )


def _sizeof(obj: Any) -> int:
    if isinstance(obj, tuple):
        return sys.getsizeof(obj) + sum(_sizeof(o) for o in obj)
    return sys.getsizeof(obj)
