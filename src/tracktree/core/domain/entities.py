"""
Domain Entities - Objects with identity.

HierarchyNode is the single node type for every level of the work
hierarchy; its kind tag decides what it represents.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from tracktree.core.exceptions import InvalidChildError, InvalidItemError

from .enums import NodeKind
from .records import parse_epoch_millis, to_epoch_millis


def _label_key(node: HierarchyNode) -> str:
    return node.label.casefold()


@dataclass
class HierarchyNode:
    """
    A space, folder, list, task or subtask.

    Children are absent (None) until the first child is attached, and are
    kept sorted case-insensitively by label.
    """

    id: str
    label: str
    kind: NodeKind
    custom_id: str | None = None
    color: str | None = None
    closed_at: datetime | None = None
    children: list[HierarchyNode] | None = None

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "kind" and "kind" in self.__dict__:
            raise AttributeError("HierarchyNode.kind cannot be changed")
        super().__setattr__(name, value)

    @property
    def selectable(self) -> bool:
        """True for tasks and subtasks; structural levels are not trackable."""
        return self.kind.selectable

    @property
    def has_children(self) -> bool:
        return bool(self.children)

    def add_child(self, child: HierarchyNode) -> None:
        """
        Attach a single child and re-sort.

        Raises:
            InvalidChildError: If child is not a HierarchyNode.
        """
        if not isinstance(child, HierarchyNode):
            raise InvalidChildError(f"Child must be a HierarchyNode, got {type(child).__name__}")
        self.add_children([child])

    def add_children(self, children: Sequence[HierarchyNode]) -> None:
        """
        Attach a batch of children and re-sort once.

        An empty batch leaves the node untouched.

        Raises:
            InvalidChildError: If children is not a sequence of HierarchyNode.
        """
        if isinstance(children, (str, bytes, Mapping)) or not isinstance(children, Sequence):
            raise InvalidChildError(
                f"Children must be a sequence of HierarchyNode, got {type(children).__name__}"
            )
        for child in children:
            if not isinstance(child, HierarchyNode):
                raise InvalidChildError(
                    f"Child must be a HierarchyNode, got {type(child).__name__}"
                )
        if not children:
            return

        if self.children is None:
            self.children = []
        self.children.extend(children)
        self.children.sort(key=_label_key)

    def walk(self) -> Iterator[HierarchyNode]:
        """Yield this node and all descendants, depth-first."""
        yield self
        for child in self.children or ():
            yield from child.walk()

    def find(self, node_id: str) -> HierarchyNode | None:
        """Find this node or a descendant by id."""
        for node in self.walk():
            if node.id == node_id:
                return node
        return None

    def to_dict(self) -> dict[str, Any]:
        """
        Convert the subtree to plain data.

        `value` and `disable` mirror `id` and `not selectable` for tree-select
        widgets.
        """
        data: dict[str, Any] = {
            "id": self.id,
            "value": self.id,
            "label": self.label,
            "kind": self.kind.value,
            "custom_id": self.custom_id,
            "color": self.color,
            "selectable": self.selectable,
            "disable": not self.selectable,
            "closed_at": to_epoch_millis(self.closed_at) if self.closed_at else None,
        }
        if self.children is not None:
            data["children"] = [child.to_dict() for child in self.children]
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> HierarchyNode:
        """
        Rebuild a subtree produced by to_dict.

        Raises:
            InvalidItemError: If data is not a mapping or has no id.
            InvalidKindError: If the kind is not recognized.
        """
        if not isinstance(data, Mapping) or not data.get("id"):
            raise InvalidItemError("Invalid serialized node")
        node = cls(
            id=str(data["id"]),
            label=str(data.get("label") or ""),
            kind=NodeKind.from_string(data.get("kind", "")),
            custom_id=data.get("custom_id"),
            color=data.get("color"),
            closed_at=parse_epoch_millis(data.get("closed_at")),
        )
        children = data.get("children")
        if children is not None:
            node.children = [cls.from_dict(child) for child in children]
        return node

    def __str__(self) -> str:
        return f"{self.kind.display_name} {self.id}: {self.label}"


def count_nodes(nodes: Sequence[HierarchyNode]) -> dict[NodeKind, int]:
    """Count every node in a forest by kind."""
    counts = {kind: 0 for kind in NodeKind}
    for root in nodes:
        for node in root.walk():
            counts[node.kind] += 1
    return counts


@dataclass
class User:
    """A workspace member."""

    id: str
    username: str
    email: str | None = None
    color: str | None = None
    role: int | None = None

    GUEST_ROLE = 4

    @property
    def is_guest(self) -> bool:
        return self.role == self.GUEST_ROLE

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> User:
        return cls(
            id=str(data.get("id", "")),
            username=str(data.get("username") or ""),
            email=data.get("email"),
            color=data.get("color"),
            role=data.get("role"),
        )


@dataclass
class TimeEntry:
    """A tracked interval against a task."""

    id: str
    start: datetime
    end: datetime
    description: str = ""
    task_id: str | None = None
    task_name: str | None = None
    user_id: str | None = None

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> TimeEntry:
        """
        Parse a time entry record.

        Running timers have no end and a negative duration; they are treated
        as ending at their start.

        Raises:
            InvalidItemError: If the record has no id or no start.
        """
        if not isinstance(data, Mapping) or not data.get("id"):
            raise InvalidItemError("Invalid time entry: record has no id")
        start = parse_epoch_millis(data.get("start"))
        if start is None:
            raise InvalidItemError(f"Invalid time entry {data['id']}: no start")
        end = parse_epoch_millis(data.get("end")) or start

        task = data.get("task") if isinstance(data.get("task"), Mapping) else {}
        user = data.get("user") if isinstance(data.get("user"), Mapping) else {}
        return cls(
            id=str(data["id"]),
            start=start,
            end=end,
            description=str(data.get("description") or ""),
            task_id=str(task["id"]) if task.get("id") else None,
            task_name=task.get("name"),
            user_id=str(user["id"]) if user.get("id") else None,
        )
