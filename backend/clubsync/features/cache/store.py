"""
In-memory TTL key/value store on top of cachetools.

Each namespace of the cache service is one TTLStore backed by a
cachetools.TLRUCache: entries carry their own expiry (default TTL of the
store, a per-entry override, or none at all) and the least recently used
entry is evicted once maxsize is reached. cachetools caches are not
thread-safe, so every access goes through a lock.

Expired entries are never returned; purge_expired() drops them in bulk and
is called periodically by the background sync loop. The timer is
injectable (monotonic seconds) so tests can move time.
"""

import math
import threading
import time
from typing import Any, Callable, NamedTuple, Optional

from cachetools import TLRUCache

_MISSING = object()

DEFAULT_MAXSIZE = 1024


class _Entry(NamedTuple):
    value: Any
    ttl: Optional[float]


def _time_to_use(key: str, entry: _Entry, now: float) -> float:
    """Expiry time of an entry; ttl=None lives until evicted."""
    return math.inf if entry.ttl is None else now + entry.ttl


class TTLStore:
    """
    Key/value store with per-entry expiry.

    Usage:
        store = TTLStore(default_ttl=300)
        store.set("events:all", events)
        store.get("events:all")  # None once 300s have passed
    """

    def __init__(
        self,
        default_ttl: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        maxsize: int = DEFAULT_MAXSIZE,
    ):
        """
        Args:
            default_ttl: Seconds an entry lives; None means no expiry
            clock: Monotonic seconds source
            maxsize: Entries kept before the least recently used is evicted
        """
        self.default_ttl = default_ttl
        self._cache = TLRUCache(maxsize=maxsize, ttu=_time_to_use, timer=clock)
        self._lock = threading.RLock()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            entry = self._cache.get(key, _MISSING)
        if entry is _MISSING:
            return default
        return entry.value

    def set(self, key: str, value: Any, ttl: Optional[float] = _MISSING) -> None:
        """Store a value. `ttl` overrides the default; ttl=None never expires."""
        if ttl is _MISSING:
            ttl = self.default_ttl
        with self._lock:
            self._cache[key] = _Entry(value, ttl)

    def delete(self, *keys: str) -> int:
        """Delete keys, returns how many were live."""
        with self._lock:
            return sum(1 for key in keys if self._cache.pop(key, _MISSING) is not _MISSING)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._cache

    def keys(self) -> list[str]:
        """Keys of live entries."""
        with self._lock:
            self._cache.expire()
            return list(self._cache.keys())

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def purge_expired(self) -> int:
        """Drop expired entries, returns how many were removed."""
        with self._lock:
            before = len(self._cache)
            self._cache.expire()
            return before - len(self._cache)

    def __len__(self) -> int:
        return len(self.keys())
