"""
Application Layer - Use cases over the core ports.

This layer contains:
- hierarchy/: Aggregation of the work hierarchy and its cached surface
- time_tracking: Time entries and workspace members
"""

from .hierarchy import HierarchyAggregator, HierarchyService
from .time_tracking import TimeTrackingService


__all__ = [
    "HierarchyAggregator",
    "HierarchyService",
    "TimeTrackingService",
]
