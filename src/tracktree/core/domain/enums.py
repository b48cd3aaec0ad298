"""
Domain enums - Node kinds and remote collection kinds.
"""

from __future__ import annotations

from enum import Enum
from typing import assert_never

from tracktree.core.exceptions import InvalidKindError


class NodeKind(Enum):
    """Level of a node in the work hierarchy."""

    SPACE = "space"
    FOLDER = "folder"
    LIST = "list"
    TASK = "task"
    SUBTASK = "subtask"

    @classmethod
    def from_string(cls, value: str) -> NodeKind:
        """
        Parse a kind from its string form.

        Raises:
            InvalidKindError: If the value names no known kind.
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise InvalidKindError(f"Invalid kind: {value!r}")
        try:
            return cls(value.strip().lower())
        except ValueError as e:
            raise InvalidKindError(f"Invalid kind: {value!r}", cause=e) from e

    @property
    def selectable(self) -> bool:
        """Whether time can be tracked directly against nodes of this kind."""
        match self:
            case NodeKind.SPACE | NodeKind.FOLDER | NodeKind.LIST:
                return False
            case NodeKind.TASK | NodeKind.SUBTASK:
                return True
            case _:
                assert_never(self)

    @property
    def tracks_closure(self) -> bool:
        """Whether a closed-at timestamp is meaningful for this kind."""
        match self:
            case NodeKind.SPACE | NodeKind.FOLDER | NodeKind.LIST:
                return False
            case NodeKind.TASK | NodeKind.SUBTASK:
                return True
            case _:
                assert_never(self)

    @property
    def display_name(self) -> str:
        """Human-readable name."""
        return self.value.capitalize()


class CollectionKind(Enum):
    """
    A remote collection that can be listed under a parent id.

    Each member carries the endpoint template and the key that holds the
    records in the JSON response.
    """

    SPACES = ("team/{parent_id}/space", "spaces")
    FOLDERS = ("space/{parent_id}/folder", "folders")
    SPACE_LISTS = ("space/{parent_id}/list", "lists")
    FOLDER_LISTS = ("folder/{parent_id}/list", "lists")
    TASKS = ("list/{parent_id}/task", "tasks")

    def __init__(self, endpoint: str, response_key: str) -> None:
        self.endpoint = endpoint
        self.response_key = response_key

    def path(self, parent_id: str) -> str:
        """Build the endpoint path for the given parent."""
        return self.endpoint.format(parent_id=parent_id)

    @property
    def node_kind(self) -> NodeKind:
        """Kind of node built from records of this collection."""
        match self:
            case CollectionKind.SPACES:
                return NodeKind.SPACE
            case CollectionKind.FOLDERS:
                return NodeKind.FOLDER
            case CollectionKind.SPACE_LISTS | CollectionKind.FOLDER_LISTS:
                return NodeKind.LIST
            case CollectionKind.TASKS:
                return NodeKind.TASK
            case _:
                assert_never(self)

    @property
    def paginated(self) -> bool:
        """Only task listings are paged."""
        return self is CollectionKind.TASKS
