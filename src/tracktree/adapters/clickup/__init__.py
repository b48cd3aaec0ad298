"""
ClickUp Adapter - Integration with the ClickUp REST API v2.

- AsyncClickUpApiClient: aiohttp client implementing CollectionClientPort
- ClickUpApiClient: requests client for users, tasks and time entries
"""

from tracktree.adapters.clickup.async_client import AsyncClickUpApiClient
from tracktree.adapters.clickup.client import ClickUpApiClient


__all__ = ["AsyncClickUpApiClient", "ClickUpApiClient"]
