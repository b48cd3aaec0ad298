"""
Hierarchy - Aggregation of the remote work hierarchy into a local tree.

Components:
- RetryEnvelope: per-fetch timeout and bounded retry
- TaskReconciler: flat task listing -> task/subtask forest
- Selection / FilterConfig: user-defined scope
- HierarchyAggregator: top-down concurrent walk
- HierarchyService: cached surface for UI layers
"""

from .aggregator import HierarchyAggregator
from .context import AggregationContext
from .envelope import RetryEnvelope
from .reconciler import ReconcileResult, TaskReconciler, reconcile_tasks
from .selection import (
    FilterConfig,
    FolderSelection,
    Selection,
    SpaceSelection,
    filter_children,
    should_process,
)
from .service import (
    HIERARCHY_CACHE_KEY,
    HIERARCHY_METADATA_CACHE_KEY,
    HierarchyService,
    deserialize_forest,
    serialize_forest,
)


__all__ = [
    "HIERARCHY_CACHE_KEY",
    "HIERARCHY_METADATA_CACHE_KEY",
    "AggregationContext",
    "FilterConfig",
    "FolderSelection",
    "HierarchyAggregator",
    "HierarchyService",
    "ReconcileResult",
    "RetryEnvelope",
    "Selection",
    "SpaceSelection",
    "TaskReconciler",
    "deserialize_forest",
    "filter_children",
    "reconcile_tasks",
    "serialize_forest",
    "should_process",
]
