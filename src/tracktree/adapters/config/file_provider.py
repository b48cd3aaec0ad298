"""
File Settings Provider - Load settings from YAML, TOML or JSON files.

Config file search order (first found wins):
1. Explicit path passed to the provider
2. .tracktree.yaml / .tracktree.yml / .tracktree.toml / .tracktree.json in cwd
3. ~/.config/tracktree/config.yaml (or .yml, .toml, .json)

Expected layout (YAML shown):

    settings:
      clickup_access_token: pk_123
      clickup_team_id: "9000"
      clickup_filter:
        enabled: true
        spaces: [...]
      hierarchy:
        timeout: 30
        max_concurrency: 8
"""

import json
import logging
import tomllib
from pathlib import Path
from typing import Any

import yaml

from tracktree.core.exceptions import ConfigFileError
from tracktree.core.ports.settings import SettingsPort


CONFIG_FILE_NAMES = (
    ".tracktree.yaml",
    ".tracktree.yml",
    ".tracktree.toml",
    ".tracktree.json",
)
USER_CONFIG_DIR = Path.home() / ".config" / "tracktree"
USER_CONFIG_NAMES = ("config.yaml", "config.yml", "config.toml", "config.json")


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Locate the first settings file in the working or user config directory."""
    cwd = start_dir or Path.cwd()
    for name in CONFIG_FILE_NAMES:
        candidate = cwd / name
        if candidate.is_file():
            return candidate
    for name in USER_CONFIG_NAMES:
        candidate = USER_CONFIG_DIR / name
        if candidate.is_file():
            return candidate
    return None


def load_config_file(path: Path) -> dict[str, Any]:
    """
    Parse a settings file by extension.

    Raises:
        ConfigFileError: If the file cannot be read or parsed, or its top
            level is not a mapping.
    """
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigFileError(f"Cannot read config file: {e}", path=str(path), cause=e) from e

    suffix = path.suffix.lower()
    try:
        if suffix in (".yaml", ".yml"):
            data = yaml.safe_load(content)
        elif suffix == ".toml":
            data = tomllib.loads(content)
        elif suffix == ".json":
            data = json.loads(content)
        else:
            raise ConfigFileError(f"Unsupported config format: {suffix or path.name}", path=str(path))
    except yaml.YAMLError as e:
        raise ConfigFileError(f"Invalid YAML: {e}", path=str(path), cause=e) from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigFileError(f"Invalid TOML: {e}", path=str(path), cause=e) from e
    except json.JSONDecodeError as e:
        raise ConfigFileError(f"Invalid JSON: {e}", path=str(path), cause=e) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigFileError("Config file must contain a mapping at the top level", path=str(path))
    return data


def get_dotted(data: dict[str, Any], key: str, default: Any = None) -> Any:
    """Look up ``a.b.c`` in nested mappings."""
    value: Any = data
    for part in key.split("."):
        if not isinstance(value, dict) or part not in value:
            return default
        value = value[part]
    return value


def set_dotted(data: dict[str, Any], key: str, value: Any) -> None:
    """Assign ``a.b.c`` in nested mappings, creating intermediate levels."""
    parts = key.split(".")
    target = data
    for part in parts[:-1]:
        child = target.get(part)
        if not isinstance(child, dict):
            child = {}
            target[part] = child
        target = child
    target[parts[-1]] = value


class FileSettingsProvider(SettingsPort):
    """
    Settings read from a YAML, TOML or JSON file.

    The file is parsed on first access. Values passed as cli_overrides (dotted
    keys) and values assigned with set() take precedence over file values;
    set() never writes to disk.
    """

    def __init__(
        self,
        config_path: Path | str | None = None,
        cli_overrides: dict[str, Any] | None = None,
    ):
        self._explicit_path = Path(config_path).expanduser() if config_path else None
        self._overrides: dict[str, Any] = {
            key: value for key, value in (cli_overrides or {}).items() if value is not None
        }
        self._data: dict[str, Any] | None = None
        self.config_file_path: Path | None = None
        self.logger = logging.getLogger("FileSettingsProvider")

    @property
    def name(self) -> str:
        self._ensure_loaded()
        if self.config_file_path:
            return f"File ({self.config_file_path})"
        return "File (none)"

    def _ensure_loaded(self) -> dict[str, Any]:
        if self._data is not None:
            return self._data

        if self._explicit_path is not None:
            if not self._explicit_path.is_file():
                raise ConfigFileError("Config file not found", path=str(self._explicit_path))
            path: Path | None = self._explicit_path
        else:
            path = find_config_file()

        if path is None:
            self.logger.debug("No config file found")
            self._data = {}
        else:
            self._data = load_config_file(path)
            self.config_file_path = path
            self.logger.debug(f"Loaded config from {path}")

        for key, value in self._overrides.items():
            set_dotted(self._data, key, value)
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        return get_dotted(self._ensure_loaded(), key, default)

    def set(self, key: str, value: Any) -> None:
        """Set a value for this process only."""
        self._overrides[key] = value
        if self._data is not None:
            set_dotted(self._data, key, value)
