"""
Collection Client Port - Abstract interface for listing remote collections.

Implementations:
- AsyncClickUpApiClient: ClickUp REST API v2 over aiohttp
"""

from abc import ABC, abstractmethod
from typing import Any

from tracktree.core.domain.enums import CollectionKind


class CollectionClientPort(ABC):
    """
    Lists one remote collection per call.

    Implementations issue exactly one HTTP request per call and surface
    network and parsing failures as exceptions; retry and timeout policy
    belongs to the caller.
    """

    @abstractmethod
    async def fetch_collection(
        self,
        kind: CollectionKind,
        parent_id: str,
        page: int | None = None,
    ) -> list[dict[str, Any]]:
        """
        Fetch the raw records of a collection.

        Args:
            kind: Which collection to list
            parent_id: Team, space, folder or list id owning the collection
            page: Zero-based page number for paginated collections

        Returns:
            Raw records as returned by the service

        Raises:
            TrackerError: On any failure
        """
        ...

    async def close(self) -> None:
        """Release any held resources."""
        return None
