"""
Cache Manager - CachePort implementation over a CacheBackend.
"""

import logging
from collections.abc import Callable
from typing import Any, TypeVar

from tracktree.core.ports.cache import CachePort

from .backend import CacheBackend, CacheStats
from .memory import MemoryCache


T = TypeVar("T")


class CacheManager(CachePort):
    """
    High-level cache used by the application services.

    When disabled every read misses and writes are dropped, so callers
    always go to the remote service.
    """

    def __init__(
        self,
        backend: CacheBackend | None = None,
        enabled: bool = True,
        default_ttl: float | None = None,
    ):
        self.backend = backend or MemoryCache()
        self.enabled = enabled
        self.default_ttl = default_ttl
        self.logger = logging.getLogger("CacheManager")

    def get(self, key: str) -> Any | None:
        if not self.enabled:
            return None
        value = self.backend.get(key)
        self.logger.debug(f"Cache {'hit' if value is not None else 'miss'}: {key}")
        return value

    def put(self, key: str, value: T, ttl: float | None = None) -> T:
        if self.enabled:
            self.backend.set(key, value, ttl=ttl if ttl is not None else self.default_ttl)
        return value

    def clear(self, key: str) -> None:
        if self.backend.delete(key):
            self.logger.debug(f"Cleared cache key: {key}")

    def clear_all(self) -> int:
        count = self.backend.clear()
        self.logger.info(f"Cleared {count} cache entries")
        return count

    def get_or_fetch(self, key: str, fetch_fn: Callable[[], T], ttl: float | None = None) -> T:
        """Return the cached value for key, calling fetch_fn and storing its result on a miss."""
        cached = self.get(key)
        if cached is not None:
            return cached  # type: ignore[no-any-return]
        return self.put(key, fetch_fn(), ttl=ttl)

    @property
    def stats(self) -> CacheStats:
        return self.backend.get_stats()
