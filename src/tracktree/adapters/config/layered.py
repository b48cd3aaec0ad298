"""
In-memory and layered settings providers.
"""

import copy
from collections.abc import Sequence
from typing import Any

from tracktree.core.ports.settings import SettingsPort

from .file_provider import get_dotted, set_dotted


_MISSING = object()


class DictSettingsProvider(SettingsPort):
    """Settings held in a nested dict."""

    def __init__(self, data: dict[str, Any] | None = None, name: str = "Dict"):
        self._data = copy.deepcopy(data) if data else {}
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    def get(self, key: str, default: Any = None) -> Any:
        return get_dotted(self._data, key, default)

    def set(self, key: str, value: Any) -> None:
        set_dotted(self._data, key, value)


class LayeredSettingsProvider(SettingsPort):
    """
    Combine providers; the first provider that has a key wins.

    Mapping values are merged across providers so a nested key set by an
    earlier provider does not hide its siblings from later ones. Typical
    order is CLI overrides, environment, then config file.
    """

    def __init__(self, providers: Sequence[SettingsPort]):
        self.providers = list(providers)

    @property
    def name(self) -> str:
        return " > ".join(provider.name for provider in self.providers)

    def get(self, key: str, default: Any = None) -> Any:
        merged: dict[str, Any] | None = None
        for provider in self.providers:
            value = provider.get(key, _MISSING)
            if value is _MISSING or value is None:
                continue
            if not isinstance(value, dict):
                return value if merged is None else merged
            merged = _merge(merged or {}, value)
        return merged if merged is not None else default


def _merge(preferred: dict[str, Any], fallback: dict[str, Any]) -> dict[str, Any]:
    """Deep-merge two mappings, preferring values from the first."""
    result = copy.deepcopy(fallback)
    for key, value in preferred.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _merge(value, result[key])
        else:
            result[key] = copy.deepcopy(value)
    return result
