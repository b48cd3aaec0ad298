"""
Selection Filter - User-chosen scope for a filtered hierarchy run.

The stored selection looks like::

    {
        "spaces": {
            "<spaceId>": {
                "selectAllFolders": false,
                "folders": {
                    "<folderId>": {"selectAllLists": false, "lists": {"<listId>": true}}
                },
                "selectAllLists": false,
                "lists": {"<listId>": true}
            }
        }
    }

A branch is descended into only if its select-all flag is set or its
explicit inclusion set is non-empty.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from tracktree.core.domain import HierarchyNode
from tracktree.core.exceptions import ConfigError


def should_process(select_all: bool, explicit: Mapping[str, Any]) -> bool:
    """Descend into a branch if everything is selected or something is listed."""
    return bool(select_all) or bool(explicit)


def filter_children(
    nodes: Sequence[HierarchyNode],
    select_all: bool,
    explicit: Mapping[str, Any],
) -> list[HierarchyNode]:
    """Keep all nodes under select-all, else only those whose id is listed."""
    if select_all:
        return list(nodes)
    return [node for node in nodes if node.id in explicit]


def _flag(data: Mapping[str, Any], camel: str, snake: str) -> bool:
    return bool(data.get(camel, data.get(snake, False)))


def _mapping(data: Mapping[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key) or {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"Selection field '{key}' must be a mapping")
    return {str(k): v for k, v in value.items()}


@dataclass
class FolderSelection:
    """Which lists of a folder to include."""

    select_all_lists: bool = False
    lists: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> FolderSelection:
        if not isinstance(data, Mapping):
            return cls()
        return cls(
            select_all_lists=_flag(data, "selectAllLists", "select_all_lists"),
            lists=_mapping(data, "lists"),
        )

    @property
    def should_process(self) -> bool:
        return should_process(self.select_all_lists, self.lists)

    def filter_lists(self, lists: Sequence[HierarchyNode]) -> list[HierarchyNode]:
        return filter_children(lists, self.select_all_lists, self.lists)


@dataclass
class SpaceSelection:
    """Which folders and folderless lists of a space to include."""

    select_all_folders: bool = False
    folders: dict[str, FolderSelection] = field(default_factory=dict)
    select_all_lists: bool = False
    lists: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> SpaceSelection:
        if not isinstance(data, Mapping):
            return cls()
        return cls(
            select_all_folders=_flag(data, "selectAllFolders", "select_all_folders"),
            folders={
                folder_id: FolderSelection.from_dict(value)
                for folder_id, value in _mapping(data, "folders").items()
            },
            select_all_lists=_flag(data, "selectAllLists", "select_all_lists"),
            lists=_mapping(data, "lists"),
        )

    @property
    def should_process_folders(self) -> bool:
        return should_process(self.select_all_folders, self.folders)

    @property
    def should_process_lists(self) -> bool:
        return should_process(self.select_all_lists, self.lists)

    def filter_folders(self, folders: Sequence[HierarchyNode]) -> list[HierarchyNode]:
        return filter_children(folders, self.select_all_folders, self.folders)

    def filter_lists(self, lists: Sequence[HierarchyNode]) -> list[HierarchyNode]:
        return filter_children(lists, self.select_all_lists, self.lists)

    def folder(self, folder_id: str) -> FolderSelection:
        """
        Selection for one folder.

        A folder admitted only through select-all-folders, with no entry of
        its own, takes all of its lists.
        """
        selection = self.folders.get(folder_id)
        if selection is not None:
            return selection
        return FolderSelection(select_all_lists=self.select_all_folders)


@dataclass
class Selection:
    """The full user-defined inclusion set."""

    spaces: dict[str, SpaceSelection] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> Selection:
        """
        Parse a stored selection.

        Raises:
            ConfigError: If the structure has the wrong shape.
        """
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise ConfigError("Selection must be a mapping")
        return cls(
            spaces={
                space_id: SpaceSelection.from_dict(value)
                for space_id, value in _mapping(data, "spaces").items()
            }
        )

    @property
    def is_empty(self) -> bool:
        return not self.spaces

    def filter_spaces(self, spaces: Sequence[HierarchyNode]) -> list[HierarchyNode]:
        return filter_children(spaces, False, self.spaces)

    def space(self, space_id: str) -> SpaceSelection:
        return self.spaces.get(space_id) or SpaceSelection()


@dataclass
class FilterConfig:
    """
    The stored filter setting: whether filtering is on, and its selection.

    Three states matter to the aggregator:
    - not configured (absent or empty): fetch everything
    - configured but disabled: fetch everything
    - configured and enabled: fetch only the selection, which may be empty
    """

    configured: bool = False
    enabled: bool = False
    selection: Selection = field(default_factory=Selection)

    @classmethod
    def from_settings(cls, value: Any) -> FilterConfig:
        """
        Parse the ``settings.clickup_filter`` value.

        Accepts ``{"enabled": bool, "selection": {...}}``, or a bare selection
        (``{"spaces": {...}}``) which counts as enabled.

        Raises:
            ConfigError: If the value has the wrong shape.
        """
        if value is None or value == {}:
            return cls()
        if not isinstance(value, Mapping):
            raise ConfigError("Filter configuration must be a mapping")

        if "selection" in value or "enabled" in value:
            return cls(
                configured=True,
                enabled=bool(value.get("enabled", True)),
                selection=Selection.from_dict(value.get("selection")),
            )
        return cls(configured=True, enabled=True, selection=Selection.from_dict(value))

    @property
    def active(self) -> bool:
        return self.configured and self.enabled
