"""
Hierarchy Aggregator - Walk the remote hierarchy and assemble the local tree.

The walk is strictly top-down: spaces first, then every space's folders and
folderless lists, then every folder's lists, then every list's tasks. All
siblings at a level are fetched concurrently and each fetch is wrapped in
the retry envelope, so one failing branch only empties that branch. Results
are assembled bottom-up: a node's children are attached before the node is
attached to its own parent.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Mapping, Sequence
from typing import Any

from tracktree.core.domain import CollectionKind, HierarchyNode, NodeKind, count_nodes
from tracktree.core.exceptions import HierarchyFetchError, InvalidItemError, TransportError
from tracktree.core.ports.collection_client import CollectionClientPort
from tracktree.core.ports.settings import FILTER_KEY, HierarchySettings, SettingsPort

from .context import AggregationContext
from .envelope import RetryEnvelope
from .reconciler import TaskReconciler
from .selection import FilterConfig, FolderSelection, Selection, SpaceSelection


class HierarchyAggregator:
    """
    Builds the space → folder → list → task → subtask forest.

    Example:
        >>> async with AsyncClickUpApiClient(api_token=token) as client:
        ...     aggregator = HierarchyAggregator(client, team_id="123")
        ...     spaces = await aggregator.get_full_hierarchy()
    """

    def __init__(
        self,
        client: CollectionClientPort,
        team_id: str,
        config: HierarchySettings | None = None,
        settings: SettingsPort | None = None,
        envelope: RetryEnvelope | None = None,
    ):
        """
        Initialize the aggregator.

        Args:
            client: Collection client used for every fetch
            team_id: Team (workspace) whose spaces are listed
            config: Timeout, retry, paging and concurrency tuning
            settings: Settings store consulted for the filter configuration
            envelope: Override the retry envelope built from config
        """
        self.client = client
        self.team_id = team_id
        self.config = config or HierarchySettings()
        self.settings = settings
        self.envelope = envelope or RetryEnvelope(
            timeout=self.config.timeout,
            attempts=self.config.attempts,
            base_delay=self.config.base_delay,
        )
        self.logger = logging.getLogger("HierarchyAggregator")
        self.last_context: AggregationContext | None = None

    # -------------------------------------------------------------------------
    # Public Operations
    # -------------------------------------------------------------------------

    async def get_full_hierarchy(self) -> list[HierarchyNode]:
        """Fetch every space, folder, list, task and subtask."""
        return await self._aggregate(selection=None, include_tasks=True)

    async def get_filtered_hierarchy(
        self, selection: Selection | Mapping[str, Any] | None
    ) -> list[HierarchyNode]:
        """
        Fetch only what the selection includes.

        An absent or empty selection yields no spaces; only the space listing
        itself is requested.
        """
        if not isinstance(selection, Selection):
            selection = Selection.from_dict(selection)
        return await self._aggregate(selection=selection, include_tasks=True)

    async def get_hierarchy_metadata(self) -> list[HierarchyNode]:
        """Fetch spaces, folders and lists without any tasks."""
        return await self._aggregate(selection=None, include_tasks=False)

    async def get_hierarchy(self) -> list[HierarchyNode]:
        """
        Fetch the hierarchy the current settings ask for.

        Without a filter configuration (or with it disabled) everything is
        fetched; with an enabled filter only its selection is, even when that
        selection is empty.
        """
        filter_config = self.filter_config()
        if filter_config.active:
            self.logger.debug("Filter enabled, fetching selected hierarchy")
            return await self.get_filtered_hierarchy(filter_config.selection)
        return await self.get_full_hierarchy()

    async def get_colors_by_space(self) -> dict[str, str | None]:
        """Map each space id to its color."""
        context = AggregationContext.create(self.config.max_concurrency)
        spaces = await self._fetch_spaces(context)
        return {space.id: space.color for space in spaces}

    def filter_config(self) -> FilterConfig:
        if self.settings is None:
            return FilterConfig()
        return FilterConfig.from_settings(self.settings.get(FILTER_KEY))

    # -------------------------------------------------------------------------
    # Traversal
    # -------------------------------------------------------------------------

    async def _aggregate(
        self,
        selection: Selection | None,
        include_tasks: bool,
    ) -> list[HierarchyNode]:
        context = AggregationContext.create(self.config.max_concurrency)
        self.last_context = context

        spaces = await self._fetch_spaces(context)
        if selection is not None:
            spaces = selection.filter_spaces(spaces)
        spaces.sort(key=lambda space: space.label.casefold())

        await self._gather_branches(
            context,
            [
                self._build_space(
                    context,
                    space,
                    selection.space(space.id) if selection is not None else None,
                    include_tasks,
                )
                for space in spaces
            ],
            [f"space {space.id}" for space in spaces],
        )

        context.finish()
        self._log_summary(context, spaces)
        return spaces

    async def _build_space(
        self,
        context: AggregationContext,
        space: HierarchyNode,
        selection: SpaceSelection | None,
        include_tasks: bool,
    ) -> None:
        self.logger.debug(f"Building hierarchy for space {space.id} ({space.label})")

        folders, lists = await asyncio.gather(
            self._build_folders(context, space, selection, include_tasks),
            self._build_space_lists(context, space, selection, include_tasks),
        )
        space.add_children(folders)
        space.add_children(lists)

    async def _build_folders(
        self,
        context: AggregationContext,
        space: HierarchyNode,
        selection: SpaceSelection | None,
        include_tasks: bool,
    ) -> list[HierarchyNode]:
        if selection is not None and not selection.should_process_folders:
            return []

        folders = await self._fetch_nodes(context, CollectionKind.FOLDERS, space.id)
        if selection is not None:
            folders = selection.filter_folders(folders)

        await self._gather_branches(
            context,
            [
                self._build_folder(
                    context,
                    folder,
                    selection.folder(folder.id) if selection is not None else None,
                    include_tasks,
                )
                for folder in folders
            ],
            [f"folder {folder.id}" for folder in folders],
        )
        return folders

    async def _build_folder(
        self,
        context: AggregationContext,
        folder: HierarchyNode,
        selection: FolderSelection | None,
        include_tasks: bool,
    ) -> None:
        if selection is not None and not selection.should_process:
            return

        lists = await self._fetch_nodes(context, CollectionKind.FOLDER_LISTS, folder.id)
        if selection is not None:
            lists = selection.filter_lists(lists)

        if include_tasks:
            await self._build_lists(context, lists)
        folder.add_children(lists)

    async def _build_space_lists(
        self,
        context: AggregationContext,
        space: HierarchyNode,
        selection: SpaceSelection | None,
        include_tasks: bool,
    ) -> list[HierarchyNode]:
        if selection is not None and not selection.should_process_lists:
            return []

        lists = await self._fetch_nodes(context, CollectionKind.SPACE_LISTS, space.id)
        if selection is not None:
            lists = selection.filter_lists(lists)

        if include_tasks:
            await self._build_lists(context, lists)
        return lists

    async def _build_lists(self, context: AggregationContext, lists: Sequence[HierarchyNode]) -> None:
        await self._gather_branches(
            context,
            [self._build_list(context, list_node) for list_node in lists],
            [f"list {list_node.id}" for list_node in lists],
        )

    async def _build_list(self, context: AggregationContext, list_node: HierarchyNode) -> None:
        records = await self._fetch_tasks(context, list_node.id)
        if not records:
            return

        result = TaskReconciler(context.factory).reconcile(records, list_id=list_node.id)
        context.orphans += len(result.orphans)
        context.unreachable += len(result.unreachable)
        context.skipped_records += len(result.skipped)
        list_node.add_children(result.roots)

    # -------------------------------------------------------------------------
    # Fetching
    # -------------------------------------------------------------------------

    async def _request(
        self,
        context: AggregationContext,
        kind: CollectionKind,
        parent_id: str,
        page: int | None = None,
    ) -> list[dict[str, Any]]:
        context.requests += 1
        return await self.client.fetch_collection(kind, parent_id, page)

    async def _fetch_spaces(self, context: AggregationContext) -> list[HierarchyNode]:
        """
        List the team's spaces.

        Raises:
            HierarchyFetchError: If the listing fails after all attempts.
        """
        label = f"spaces of team {self.team_id}"
        try:
            records = await self.envelope.run(
                lambda: self._request(context, CollectionKind.SPACES, self.team_id),
                label=label,
                context=context,
            )
        except TransportError as e:
            self.logger.error(f"Could not fetch {label}: {e}")
            raise HierarchyFetchError(
                f"Could not fetch {label}", resource=self.team_id, cause=e.cause or e
            ) from e
        return self._build_nodes(context, records, NodeKind.SPACE, label)

    async def _fetch_nodes(
        self,
        context: AggregationContext,
        kind: CollectionKind,
        parent_id: str,
    ) -> list[HierarchyNode]:
        label = f"{kind.response_key} of {kind.endpoint.split('/')[0]} {parent_id}"
        records = await self.envelope.run_or_empty(
            lambda: self._request(context, kind, parent_id),
            label=label,
            context=context,
        )
        return self._build_nodes(context, records, kind.node_kind, label)

    async def _fetch_tasks(self, context: AggregationContext, list_id: str) -> list[dict[str, Any]]:
        """
        Request task pages until one comes back short, concatenating them.

        A page that fails after all attempts empties the whole list.
        """
        label = f"tasks of list {list_id}"
        records: list[dict[str, Any]] = []
        page = 0
        while True:
            try:
                batch = await self.envelope.run(
                    lambda page=page: self._request(context, CollectionKind.TASKS, list_id, page),
                    label=f"{label} (page {page})",
                    context=context,
                )
            except TransportError as e:
                self.logger.warning(f"Treating {label} as empty: {e}")
                context.record_failure(label)
                return []
            if not isinstance(batch, list):
                self.logger.warning(f"Unexpected payload for {label}: {type(batch).__name__}")
                context.record_failure(label)
                return []
            records.extend(batch)
            if len(batch) < self.config.page_size:
                return records
            page += 1

    def _build_nodes(
        self,
        context: AggregationContext,
        records: Any,
        kind: NodeKind,
        label: str,
    ) -> list[HierarchyNode]:
        if not isinstance(records, list):
            self.logger.warning(f"Unexpected payload for {label}: {type(records).__name__}")
            context.record_failure(label)
            return []

        nodes = []
        for record in records:
            try:
                nodes.append(context.factory.create_node(record, kind))
            except InvalidItemError as e:
                context.skipped_records += 1
                self.logger.warning(f"Skipping malformed record in {label}: {e}")
        return nodes

    async def _gather_branches(
        self,
        context: AggregationContext,
        branches: Sequence[Awaitable[None]],
        labels: Sequence[str],
    ) -> None:
        """Run sibling branches concurrently; a failing branch is logged and left empty."""
        if not branches:
            return
        results = await asyncio.gather(*branches, return_exceptions=True)
        for label, result in zip(labels, results, strict=True):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, Exception):
                self.logger.warning(f"Branch {label} failed, leaving it empty: {result}")
                context.record_failure(label)

    def _log_summary(self, context: AggregationContext, spaces: Sequence[HierarchyNode]) -> None:
        counts = count_nodes(spaces)
        self.logger.info(
            f"Aggregated {counts[NodeKind.SPACE]} spaces, {counts[NodeKind.FOLDER]} folders, "
            f"{counts[NodeKind.LIST]} lists, "
            f"{counts[NodeKind.TASK] + counts[NodeKind.SUBTASK]} tasks "
            f"in {context.elapsed:.2f}s ({context.requests} requests)"
        )
        if context.is_partial:
            self.logger.warning(
                f"{len(context.failed_branches)} branch(es) came back empty after retries; "
                "the hierarchy may be incomplete"
            )
