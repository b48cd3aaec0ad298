"""
Task Reconciler - Nest a flat task listing into a task/subtask forest.

The service returns a list's tasks and subtasks as one flat, unordered,
page-concatenated sequence where each record names its parent by id. The
reconciler builds every node first and links them second, so the result
does not depend on the order records arrive in.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from tracktree.core.domain import HierarchyNode, NodeFactory, NodeKind, RawItem
from tracktree.core.exceptions import InvalidItemError, OrphanSubtaskError


logger = logging.getLogger("TaskReconciler")


def _id_key(node: HierarchyNode) -> str:
    return node.id


@dataclass
class ReconcileResult:
    """Outcome of reconciling one list's tasks."""

    roots: list[HierarchyNode] = field(default_factory=list)
    orphans: list[OrphanSubtaskError] = field(default_factory=list)
    skipped: list[InvalidItemError] = field(default_factory=list)
    unreachable: list[str] = field(default_factory=list)
    duplicates: int = 0

    @property
    def task_count(self) -> int:
        return sum(1 for root in self.roots for _ in root.walk())


class TaskReconciler:
    """
    Two-pass reconciliation of raw task records.

    Pass 1 creates one node per record (Task when it has no parent, Subtask
    otherwise) in an id map. Pass 2 groups children by parent id and attaches
    each group in one batch. Subtasks whose parent is not in the batch are
    orphans and are left out of the forest.
    """

    def __init__(self, factory: NodeFactory | None = None):
        self.factory = factory or NodeFactory()

    def reconcile(self, records: Iterable[Any], list_id: str | None = None) -> ReconcileResult:
        result = ReconcileResult()
        nodes: dict[str, HierarchyNode] = {}
        parents: dict[str, str] = {}
        order: list[str] = []

        # Pass 1: build
        for record in records:
            try:
                raw = RawItem.parse(record)
            except InvalidItemError as e:
                result.skipped.append(e)
                logger.warning(f"Skipping malformed task record in list {list_id}: {e}")
                continue
            if raw.id in nodes:
                result.duplicates += 1
                continue

            kind = NodeKind.TASK if raw.parent is None else NodeKind.SUBTASK
            nodes[raw.id] = self.factory.create_node(raw, kind)
            order.append(raw.id)
            if raw.parent is not None:
                parents[raw.id] = raw.parent

        # Pass 2: link
        children_of: dict[str, list[HierarchyNode]] = {}
        for task_id in order:
            parent_id = parents.get(task_id)
            if parent_id is None:
                result.roots.append(nodes[task_id])
            elif parent_id in nodes:
                children_of.setdefault(parent_id, []).append(nodes[task_id])
            else:
                result.orphans.append(OrphanSubtaskError(task_id, parent_id))

        # Id order first so equal labels come out the same for any input order
        for parent_id, children in children_of.items():
            children.sort(key=_id_key)
            nodes[parent_id].add_children(children)

        result.roots.sort(key=_id_key)
        result.roots.sort(key=lambda node: node.label.casefold())

        # Descendants of orphans and members of parent cycles never hang off a root
        reachable = {node.id for root in result.roots for node in root.walk()}
        orphaned = {orphan.task_id for orphan in result.orphans}
        result.unreachable = [
            task_id for task_id in order if task_id not in reachable and task_id not in orphaned
        ]

        if result.orphans:
            logger.info(
                f"Dropped {len(result.orphans)} orphaned subtask(s) in list {list_id}: "
                + ", ".join(f"{o.task_id}->{o.parent_id}" for o in result.orphans)
            )
        if result.unreachable:
            logger.info(
                f"Dropped {len(result.unreachable)} task(s) in list {list_id} not reachable "
                "from a root task: " + ", ".join(result.unreachable)
            )
        if result.duplicates:
            logger.debug(f"Ignored {result.duplicates} duplicate task record(s) in list {list_id}")

        return result


def reconcile_tasks(
    records: Iterable[Any],
    factory: NodeFactory | None = None,
) -> list[HierarchyNode]:
    """Reconcile raw task records and return the root tasks."""
    return TaskReconciler(factory).reconcile(records).roots
