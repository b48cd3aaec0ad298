"""
Ports - Abstract interfaces for external dependencies.

Ports define the contracts that adapters must implement.
This enables dependency inversion and easy testing.
"""

from .cache import CachePort
from .collection_client import CollectionClientPort
from .settings import (
    ACCESS_TOKEN_KEY,
    FILTER_KEY,
    HIERARCHY_KEY,
    TEAM_ID_KEY,
    WEEK_SECONDS,
    ClickUpSettings,
    HierarchySettings,
    SettingsPort,
)


__all__ = [
    "ACCESS_TOKEN_KEY",
    "FILTER_KEY",
    "HIERARCHY_KEY",
    "TEAM_ID_KEY",
    "WEEK_SECONDS",
    "CachePort",
    "ClickUpSettings",
    "CollectionClientPort",
    "HierarchySettings",
    "SettingsPort",
]
