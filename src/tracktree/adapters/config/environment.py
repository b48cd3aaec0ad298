"""
Environment Settings Provider - Load settings from environment variables.

Reads variables from the process environment and, when present, from a
``.env`` file in the working directory (process environment wins).

Variables:
- CLICKUP_ACCESS_TOKEN -> settings.clickup_access_token
- CLICKUP_TEAM_ID -> settings.clickup_team_id
- CLICKUP_BASE_URL -> settings.clickup_base_url
- TRACKTREE_FILTER (JSON object) -> settings.clickup_filter
- TRACKTREE_MAX_CONCURRENCY -> settings.hierarchy.max_concurrency
"""

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from tracktree.core.exceptions import ConfigError
from tracktree.core.ports.settings import (
    ACCESS_TOKEN_KEY,
    FILTER_KEY,
    HIERARCHY_KEY,
    TEAM_ID_KEY,
    SettingsPort,
)

from .file_provider import get_dotted, set_dotted


ENV_MAPPING = {
    "CLICKUP_ACCESS_TOKEN": ACCESS_TOKEN_KEY,
    "CLICKUP_TEAM_ID": TEAM_ID_KEY,
    "CLICKUP_BASE_URL": "settings.clickup_base_url",
}
FILTER_ENV = "TRACKTREE_FILTER"
MAX_CONCURRENCY_ENV = "TRACKTREE_MAX_CONCURRENCY"


def parse_env_file(path: Path) -> dict[str, str]:
    """Parse KEY=VALUE lines, skipping blanks and comments and stripping quotes."""
    values: dict[str, str] = {}
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        key = key.strip().removeprefix("export ").strip()
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
            value = value[1:-1]
        values[key] = value
    return values


class EnvironmentSettingsProvider(SettingsPort):
    """Settings sourced from environment variables."""

    def __init__(
        self,
        env: Mapping[str, str] | None = None,
        env_file: Path | str | None = None,
    ):
        """
        Args:
            env: Variables to read (defaults to os.environ)
            env_file: .env file to read (defaults to ./.env when it exists)
        """
        self.logger = logging.getLogger("EnvironmentSettingsProvider")
        variables: dict[str, str] = {}

        dotenv = Path(env_file) if env_file else Path.cwd() / ".env"
        if dotenv.is_file():
            variables.update(parse_env_file(dotenv))
            self.logger.debug(f"Loaded {dotenv}")

        variables.update(os.environ if env is None else env)
        self._data = self._map(variables)

    @property
    def name(self) -> str:
        return "Environment"

    def _map(self, variables: Mapping[str, str]) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for env_name, key in ENV_MAPPING.items():
            value = variables.get(env_name)
            if value:
                set_dotted(data, key, value)

        raw_filter = variables.get(FILTER_ENV)
        if raw_filter:
            try:
                set_dotted(data, FILTER_KEY, json.loads(raw_filter))
            except json.JSONDecodeError as e:
                raise ConfigError(f"{FILTER_ENV} is not valid JSON", cause=e) from e

        raw_concurrency = variables.get(MAX_CONCURRENCY_ENV)
        if raw_concurrency:
            try:
                set_dotted(data, f"{HIERARCHY_KEY}.max_concurrency", int(raw_concurrency))
            except ValueError as e:
                raise ConfigError(f"{MAX_CONCURRENCY_ENV} must be an integer", cause=e) from e
        return data

    def get(self, key: str, default: Any = None) -> Any:
        return get_dotted(self._data, key, default)
