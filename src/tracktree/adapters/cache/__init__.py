"""
Cache Module - Persistence for the aggregated hierarchy and user lists.

- CacheBackend: Abstract interface for cache storage
- MemoryCache: In-memory LRU cache with TTL support
- FileCache: File-based persistent cache
- CacheManager: CachePort implementation used by the services

Example:
    >>> from tracktree.adapters.cache import CacheManager, FileCache
    >>>
    >>> cache = CacheManager(FileCache(cache_dir="~/.cache/tracktree"))
    >>> service = HierarchyService(aggregator, cache)
"""

from .backend import CacheBackend, CacheEntry, CacheStats
from .file_cache import FileCache
from .manager import CacheManager
from .memory import MemoryCache


__all__ = [
    "CacheBackend",
    "CacheEntry",
    "CacheManager",
    "CacheStats",
    "FileCache",
    "MemoryCache",
]
