"""
Memory Cache - In-process LRU cache with TTL support.
"""

import logging
import threading
import time
from collections import OrderedDict
from typing import Any

from .backend import CacheBackend, CacheEntry, CacheStats


class MemoryCache(CacheBackend):
    """
    Thread-safe in-memory cache.

    Expired entries are dropped when they are read. When max_size is
    exceeded the least recently used entry is evicted.
    """

    def __init__(self, max_size: int = 1000, default_ttl: float | None = 300.0):
        """
        Args:
            max_size: Maximum number of entries kept
            default_ttl: TTL used when set() is given none (None = never expire)
        """
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self.default_ttl = default_ttl
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        self._stats = CacheStats()
        self.logger = logging.getLogger("MemoryCache")

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._stats.record_miss()
                return None
            if entry.is_expired:
                del self._entries[key]
                self._stats.record_expiration()
                self._stats.record_miss()
                return None
            self._entries.move_to_end(key)
            entry.record_hit()
            self._stats.record_hit()
            return entry.value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        ttl = ttl if ttl is not None else self.default_ttl
        now = time.time()
        entry = CacheEntry(
            value=value,
            created_at=now,
            expires_at=now + ttl if ttl is not None else None,
        )
        with self._lock:
            self._entries[key] = entry
            self._entries.move_to_end(key)
            self._stats.record_set()
            while len(self._entries) > self.max_size:
                evicted, _ = self._entries.popitem(last=False)
                self._stats.record_eviction()
                self.logger.debug(f"Evicted {evicted}")

    def delete(self, key: str) -> bool:
        with self._lock:
            if self._entries.pop(key, None) is None:
                return False
            self._stats.record_delete()
            return True

    def clear(self) -> int:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            return count

    def cleanup_expired(self) -> int:
        """Drop every expired entry. Returns the number removed."""
        with self._lock:
            expired = [key for key, entry in self._entries.items() if entry.is_expired]
            for key in expired:
                del self._entries[key]
                self._stats.record_expiration()
            return len(expired)

    @property
    def size(self) -> int:
        return len(self._entries)

    def get_stats(self) -> CacheStats:
        return self._stats
