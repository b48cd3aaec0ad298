"""
Domain Layer - Hierarchy nodes, raw records and time entries.
"""

from .entities import HierarchyNode, TimeEntry, User, count_nodes
from .enums import CollectionKind, NodeKind
from .factory import NodeFactory
from .records import RawItem, parse_epoch_millis, to_epoch_millis


__all__ = [
    "CollectionKind",
    "HierarchyNode",
    "NodeFactory",
    "NodeKind",
    "RawItem",
    "TimeEntry",
    "User",
    "count_nodes",
    "parse_epoch_millis",
    "to_epoch_millis",
]
