"""
Settings Port - Abstract interface for the settings store.

Implementations:
- FileSettingsProvider: YAML/TOML/JSON settings file
- EnvironmentSettingsProvider: environment variables
- DictSettingsProvider: in-memory mapping
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from tracktree.core.exceptions import ConfigError, MissingConfigError


ACCESS_TOKEN_KEY = "settings.clickup_access_token"
TEAM_ID_KEY = "settings.clickup_team_id"
FILTER_KEY = "settings.clickup_filter"
HIERARCHY_KEY = "settings.hierarchy"

WEEK_SECONDS = 7 * 24 * 3600


@dataclass
class ClickUpSettings:
    """Credentials and team for the ClickUp API."""

    access_token: str
    team_id: str
    base_url: str = "https://api.clickup.com/api/v2"

    def is_valid(self) -> bool:
        return bool(self.access_token and self.team_id)

    @classmethod
    def from_settings(cls, settings: SettingsPort) -> ClickUpSettings:
        """
        Read credentials from the settings store.

        Raises:
            MissingConfigError: If the token or team id is absent.
        """
        token = settings.get(ACCESS_TOKEN_KEY)
        if not token:
            raise MissingConfigError(ACCESS_TOKEN_KEY)
        team_id = settings.get(TEAM_ID_KEY)
        if not team_id:
            raise MissingConfigError(TEAM_ID_KEY)
        base_url = settings.get("settings.clickup_base_url") or cls.base_url
        return cls(access_token=str(token), team_id=str(team_id), base_url=str(base_url))


@dataclass
class HierarchySettings:
    """Tuning for hierarchy aggregation."""

    timeout: float = 30.0  # Per-attempt timeout in seconds
    attempts: int = 3  # Total attempts per collection fetch
    base_delay: float = 1.0  # Backoff is base_delay * attempt number
    page_size: int = 100  # Task page size used by the service
    max_concurrency: int | None = None  # None = unbounded fan-out
    cache_ttl: float = WEEK_SECONDS

    def validate(self) -> list[str]:
        errors = []
        if self.timeout <= 0:
            errors.append("hierarchy.timeout must be positive")
        if self.attempts < 1:
            errors.append("hierarchy.attempts must be at least 1")
        if self.base_delay < 0:
            errors.append("hierarchy.base_delay must not be negative")
        if self.page_size < 1:
            errors.append("hierarchy.page_size must be at least 1")
        if self.max_concurrency is not None and self.max_concurrency < 1:
            errors.append("hierarchy.max_concurrency must be at least 1")
        if self.cache_ttl <= 0:
            errors.append("hierarchy.cache_ttl must be positive")
        return errors

    @classmethod
    def from_settings(cls, settings: SettingsPort) -> HierarchySettings:
        """
        Read tuning values, falling back to defaults for absent keys.

        Raises:
            ConfigError: If a value has the wrong type or is out of range.
        """
        values = settings.get(HIERARCHY_KEY) or {}
        if not isinstance(values, dict):
            raise ConfigError(f"{HIERARCHY_KEY} must be a mapping")

        defaults = cls()
        try:
            max_concurrency = values.get("max_concurrency", defaults.max_concurrency)
            result = cls(
                timeout=float(values.get("timeout", defaults.timeout)),
                attempts=int(values.get("attempts", defaults.attempts)),
                base_delay=float(values.get("base_delay", defaults.base_delay)),
                page_size=int(values.get("page_size", defaults.page_size)),
                max_concurrency=int(max_concurrency) if max_concurrency is not None else None,
                cache_ttl=float(values.get("cache_ttl", defaults.cache_ttl)),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid value in {HIERARCHY_KEY}", cause=e) from e

        errors = result.validate()
        if errors:
            raise ConfigError("; ".join(errors))
        return result


class SettingsPort(ABC):
    """
    Read access to the settings store.

    Keys use dot notation, e.g. ``settings.clickup_team_id``.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Get the provider name."""
        ...

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: Configuration key (dot notation supported)
            default: Default value if not found
        """
        ...

    def validate(self) -> list[str]:
        """
        Validate the settings needed to talk to the service.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []
        if not self.get(ACCESS_TOKEN_KEY):
            errors.append(f"Missing access token ({ACCESS_TOKEN_KEY})")
        if not self.get(TEAM_ID_KEY):
            errors.append(f"Missing team id ({TEAM_ID_KEY})")
        try:
            HierarchySettings.from_settings(self)
        except ConfigError as e:
            errors.append(str(e))
        return errors
