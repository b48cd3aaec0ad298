"""
Cache Backend - Abstract storage interface and shared bookkeeping types.
"""

import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar


T = TypeVar("T")


@dataclass
class CacheEntry:
    """A stored value with its expiry metadata. Times are epoch seconds."""

    value: Any
    created_at: float = field(default_factory=time.time)
    expires_at: float | None = None
    hit_count: int = 0

    @property
    def is_expired(self) -> bool:
        if self.expires_at is None:
            return False
        return time.time() >= self.expires_at

    @property
    def ttl_remaining(self) -> float | None:
        """Seconds until expiry, or None if the entry never expires."""
        if self.expires_at is None:
            return None
        return max(0.0, self.expires_at - time.time())

    @property
    def age(self) -> float:
        return time.time() - self.created_at

    def record_hit(self) -> None:
        self.hit_count += 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "value": self.value,
            "created_at": self.created_at,
            "expires_at": self.expires_at,
            "hit_count": self.hit_count,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CacheEntry":
        return cls(
            value=data["value"],
            created_at=float(data.get("created_at", time.time())),
            expires_at=data.get("expires_at"),
            hit_count=int(data.get("hit_count", 0)),
        )


@dataclass
class CacheStats:
    """Hit/miss counters for a cache backend."""

    hits: int = 0
    misses: int = 0
    sets: int = 0
    deletes: int = 0
    evictions: int = 0
    expirations: int = 0

    @property
    def total_requests(self) -> int:
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        total = self.total_requests
        return self.hits / total if total else 0.0

    @property
    def miss_rate(self) -> float:
        total = self.total_requests
        return self.misses / total if total else 0.0

    def record_hit(self) -> None:
        self.hits += 1

    def record_miss(self) -> None:
        self.misses += 1

    def record_set(self) -> None:
        self.sets += 1

    def record_delete(self) -> None:
        self.deletes += 1

    def record_eviction(self) -> None:
        self.evictions += 1

    def record_expiration(self) -> None:
        self.expirations += 1

    def reset(self) -> None:
        self.hits = 0
        self.misses = 0
        self.sets = 0
        self.deletes = 0
        self.evictions = 0
        self.expirations = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "sets": self.sets,
            "deletes": self.deletes,
            "evictions": self.evictions,
            "expirations": self.expirations,
            "total_requests": self.total_requests,
            "hit_rate": self.hit_rate,
        }


class CacheBackend(ABC):
    """
    Abstract storage for cache entries.

    TTLs are in seconds; a TTL of None means the entry never expires.
    """

    @abstractmethod
    def get(self, key: str) -> Any | None:
        """Return the value for key, or None if absent or expired."""
        ...

    @abstractmethod
    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store a value, replacing any existing entry."""
        ...

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove a key. Returns True if something was removed."""
        ...

    @abstractmethod
    def clear(self) -> int:
        """Remove every entry. Returns the number removed."""
        ...

    @property
    @abstractmethod
    def size(self) -> int:
        """Number of stored entries, expired ones included."""
        ...

    @abstractmethod
    def get_stats(self) -> CacheStats:
        ...

    def exists(self, key: str) -> bool:
        return self.get(key) is not None

    def get_or_set(self, key: str, factory: Callable[[], T], ttl: float | None = None) -> T:
        """Return the cached value, computing and storing it on a miss."""
        value = self.get(key)
        if value is not None:
            return value  # type: ignore[no-any-return]
        value = factory()
        self.set(key, value, ttl=ttl)
        return value
