"""
Node Factory - The only place raw records become HierarchyNodes.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from tracktree.core.exceptions import InvalidItemError

from .entities import HierarchyNode
from .enums import NodeKind
from .records import RawItem


class NodeFactory:
    """
    Builds hierarchy nodes and resolves color inheritance.

    The color map is keyed by space id and belongs to a single aggregation
    run. Items that carry their own color register it; items without one
    adopt the color of their owning space if that space has been seen.
    """

    def __init__(self, colors: dict[str, str] | None = None) -> None:
        self.colors: dict[str, str] = colors if colors is not None else {}

    def create_node(self, item: Any, kind: NodeKind | str) -> HierarchyNode:
        """
        Create a node of the given kind from a raw record.

        An already-built node is returned unchanged.

        Raises:
            InvalidKindError: If kind is not a recognized kind.
            InvalidItemError: If item is not a structured record.
        """
        if isinstance(item, HierarchyNode):
            return item

        node_kind = NodeKind.from_string(kind)
        if not isinstance(item, (Mapping, RawItem)):
            raise InvalidItemError(f"Invalid item: expected a record, got {type(item).__name__}")
        raw = RawItem.parse(item)

        color = raw.color
        if color:
            self.colors[raw.id] = color
        elif raw.space_id and raw.space_id in self.colors:
            color = self.colors[raw.space_id]

        return HierarchyNode(
            id=raw.id,
            label=raw.name,
            kind=node_kind,
            custom_id=raw.custom_id,
            color=color,
            closed_at=raw.date_closed if node_kind.tracks_closure else None,
        )

    def create_space(self, item: Any) -> HierarchyNode:
        return self.create_node(item, NodeKind.SPACE)

    def create_folder(self, item: Any) -> HierarchyNode:
        return self.create_node(item, NodeKind.FOLDER)

    def create_list(self, item: Any) -> HierarchyNode:
        return self.create_node(item, NodeKind.LIST)

    def create_task(self, item: Any) -> HierarchyNode:
        return self.create_node(item, NodeKind.TASK)

    def create_subtask(self, item: Any) -> HierarchyNode:
        return self.create_node(item, NodeKind.SUBTASK)
