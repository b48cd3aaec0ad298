"""
Hierarchy Service - Cached access to the aggregated hierarchy.

This is the surface offered to UI layers: it reads through the cache,
computes on a miss, and writes the whole tree back with a fixed TTL.
"""

from __future__ import annotations

import logging
from typing import Any

from tracktree.core.domain import HierarchyNode
from tracktree.core.exceptions import InvalidItemError, ModelError
from tracktree.core.ports.cache import CachePort

from .aggregator import HierarchyAggregator


HIERARCHY_CACHE_KEY = "hierarchy"
HIERARCHY_METADATA_CACHE_KEY = "hierarchy_metadata"


def serialize_forest(nodes: list[HierarchyNode]) -> list[dict[str, Any]]:
    return [node.to_dict() for node in nodes]


def deserialize_forest(data: Any) -> list[HierarchyNode]:
    """
    Rebuild a forest written by serialize_forest.

    Raises:
        InvalidItemError: If data is not a list of serialized nodes.
    """
    if not isinstance(data, list):
        raise InvalidItemError("Cached hierarchy is not a list")
    return [HierarchyNode.from_dict(item) for item in data]


class HierarchyService:
    """
    Read-through cache in front of a HierarchyAggregator.

    Trees are stored serialized so a cached value is always replaced as a
    whole, and so persistent backends can hold them.
    """

    def __init__(
        self,
        aggregator: HierarchyAggregator,
        cache: CachePort,
        cache_ttl: float | None = None,
    ):
        self.aggregator = aggregator
        self.cache = cache
        self.cache_ttl = cache_ttl if cache_ttl is not None else aggregator.config.cache_ttl
        self.logger = logging.getLogger("HierarchyService")

    # -------------------------------------------------------------------------
    # Uncached
    # -------------------------------------------------------------------------

    async def get_hierarchy(self) -> list[HierarchyNode]:
        return await self.aggregator.get_hierarchy()

    async def get_hierarchy_metadata(self) -> list[HierarchyNode]:
        return await self.aggregator.get_hierarchy_metadata()

    async def get_colors_by_space(self) -> dict[str, str | None]:
        return await self.aggregator.get_colors_by_space()

    # -------------------------------------------------------------------------
    # Cached
    # -------------------------------------------------------------------------

    async def get_cached_hierarchy(self) -> list[HierarchyNode]:
        """Return the cached hierarchy, fetching and caching it on a miss."""
        cached = self._read(HIERARCHY_CACHE_KEY)
        if cached is not None:
            self.logger.info("Got hierarchy from cache")
            return cached

        hierarchy = await self.aggregator.get_hierarchy()
        self._write(HIERARCHY_CACHE_KEY, hierarchy)
        return hierarchy

    async def get_cached_hierarchy_metadata(self) -> list[HierarchyNode]:
        """Return the cached spaces/folders/lists tree, fetching it on a miss."""
        cached = self._read(HIERARCHY_METADATA_CACHE_KEY)
        if cached is not None:
            self.logger.info("Got hierarchy metadata from cache")
            return cached

        metadata = await self.aggregator.get_hierarchy_metadata()
        self._write(HIERARCHY_METADATA_CACHE_KEY, metadata)
        return metadata

    def clear_cached_hierarchy(self) -> None:
        """Drop cached trees so the next cached read fetches fresh data."""
        self.cache.clear(HIERARCHY_CACHE_KEY)
        self.cache.clear(HIERARCHY_METADATA_CACHE_KEY)
        self.logger.debug("Cleared cached hierarchy")

    async def refresh_hierarchy(self) -> list[HierarchyNode]:
        """Clear the cache and fetch fresh, caching the new tree."""
        self.clear_cached_hierarchy()
        return await self.get_cached_hierarchy()

    def _read(self, key: str) -> list[HierarchyNode] | None:
        data = self.cache.get(key)
        if data is None:
            return None
        try:
            return deserialize_forest(data)
        except ModelError as e:
            self.logger.warning(f"Discarding unreadable cache entry '{key}': {e}")
            self.cache.clear(key)
            return None

    def _write(self, key: str, nodes: list[HierarchyNode]) -> None:
        self.cache.put(key, serialize_forest(nodes), self.cache_ttl)
