"""
Cache Backing Store

Storage for cached values with absolute expiry. Freshness policy lives in
CountCache; a backing store only keeps values until they expire, are
removed, or are evicted for space.
"""

import threading
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from datetime import timedelta
from typing import Any, Callable, Optional, Tuple


class CacheBackingStore(ABC):
    """
    Asynchronous key/value store with per-entry absolute expiry.

    Asynchronous so that a shared remote cache can stand in for the
    in-memory default.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Return the value, or None when absent or expired."""

    @abstractmethod
    async def set(self, key: str, value: Any, expire_after: timedelta) -> None:
        """Store ``value`` until ``expire_after`` has elapsed."""

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Remove ``key``. Removing an absent key is not an error."""


class InMemoryCacheStore(CacheBackingStore):
    """
    Process-local backing store.

    Holds at most ``max_entries`` values; inserting beyond that evicts the
    least recently written entry. Expired entries are dropped lazily on read
    and when space is needed.

    Args:
        max_entries: Capacity bound
        monotonic: Clock in seconds, injectable for tests
    """

    def __init__(self, max_entries: int = 10000, monotonic: Callable[[], float] = time.monotonic):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._max_entries = max_entries
        self._monotonic = monotonic
        self._entries: "OrderedDict[str, Tuple[Any, float]]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._monotonic() >= expires_at:
                del self._entries[key]
                return None
            return value

    async def set(self, key: str, value: Any, expire_after: timedelta) -> None:
        expires_at = self._monotonic() + expire_after.total_seconds()
        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = (value, expires_at)
            if len(self._entries) > self._max_entries:
                self._purge_expired()
            while len(self._entries) > self._max_entries:
                self._entries.popitem(last=False)

    async def remove(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def _purge_expired(self) -> None:
        now = self._monotonic()
        expired = [k for k, (_, expires_at) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
