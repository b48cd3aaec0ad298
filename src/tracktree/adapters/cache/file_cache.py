"""
File Cache - Persistent cache stored as JSON files on disk.

Each key is stored in its own file under ``<cache_dir>/entries``, named by
the SHA-256 of the key. Values must be JSON-serializable.
"""

import hashlib
import json
import logging
import threading
import time
from pathlib import Path
from typing import Any

from .backend import CacheBackend, CacheEntry, CacheStats


DEFAULT_CACHE_DIR = Path.home() / ".cache" / "tracktree"


class FileCache(CacheBackend):
    """
    Disk-backed cache that survives process restarts.

    Expired entries are removed when read. Corrupt or unreadable files are
    treated as misses and deleted.
    """

    def __init__(
        self,
        cache_dir: Path | str | None = None,
        default_ttl: float | None = None,
        cleanup_on_start: bool = True,
    ):
        """
        Args:
            cache_dir: Directory holding the cache (created if missing)
            default_ttl: TTL used when set() is given none (None = never expire)
            cleanup_on_start: Remove expired entries during construction
        """
        self.cache_dir = Path(cache_dir) if cache_dir else DEFAULT_CACHE_DIR
        self.entries_dir = self.cache_dir / "entries"
        self.entries_dir.mkdir(parents=True, exist_ok=True)
        self.default_ttl = default_ttl
        self._lock = threading.Lock()
        self._stats = CacheStats()
        self.logger = logging.getLogger("FileCache")

        if cleanup_on_start:
            removed = self.cleanup_expired()
            if removed:
                self.logger.debug(f"Removed {removed} expired entries")

    def _path_for(self, key: str) -> Path:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self.entries_dir / f"{digest}.json"

    def _read_entry(self, path: Path) -> CacheEntry | None:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return CacheEntry.from_dict(data)
        except FileNotFoundError:
            return None
        except (OSError, ValueError, KeyError, TypeError) as e:
            self.logger.warning(f"Discarding corrupt cache file {path.name}: {e}")
            path.unlink(missing_ok=True)
            return None

    def get(self, key: str) -> Any | None:
        path = self._path_for(key)
        with self._lock:
            entry = self._read_entry(path)
            if entry is None:
                self._stats.record_miss()
                return None
            if entry.is_expired:
                path.unlink(missing_ok=True)
                self._stats.record_expiration()
                self._stats.record_miss()
                return None
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
        path = self._path_for(key)
        tmp_path = path.with_suffix(".tmp")
        with self._lock:
            tmp_path.write_text(json.dumps(entry.to_dict()), encoding="utf-8")
            tmp_path.replace(path)
            self._stats.record_set()

    def delete(self, key: str) -> bool:
        path = self._path_for(key)
        with self._lock:
            if not path.exists():
                return False
            path.unlink(missing_ok=True)
            self._stats.record_delete()
            return True

    def clear(self) -> int:
        with self._lock:
            count = 0
            for path in self.entries_dir.glob("*.json"):
                path.unlink(missing_ok=True)
                count += 1
            return count

    def cleanup_expired(self) -> int:
        """Remove expired and corrupt entries. Returns the number removed."""
        removed = 0
        with self._lock:
            for path in self.entries_dir.glob("*.json"):
                entry = self._read_entry(path)
                if entry is None:
                    removed += 1
                elif entry.is_expired:
                    path.unlink(missing_ok=True)
                    self._stats.record_expiration()
                    removed += 1
        return removed

    @property
    def size(self) -> int:
        return sum(1 for _ in self.entries_dir.glob("*.json"))

    def get_stats(self) -> CacheStats:
        return self._stats
