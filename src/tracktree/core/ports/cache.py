"""
Cache Port - Abstract key/value store with expiry.

Implementations:
- CacheManager over MemoryCache or FileCache
"""

from abc import ABC, abstractmethod
from typing import Any, TypeVar


T = TypeVar("T")


class CachePort(ABC):
    """Read-through/write-through store addressed by key; TTLs are in seconds."""

    @abstractmethod
    def get(self, key: str) -> Any | None:
        """Return the stored value, or None if absent or expired."""
        ...

    @abstractmethod
    def put(self, key: str, value: T, ttl: float | None = None) -> T:
        """Store a value and return it."""
        ...

    @abstractmethod
    def clear(self, key: str) -> None:
        """Remove a key if present."""
        ...
