"""
Shared pytest fixtures for the tracktree test suite.

Fixture Categories:
- Remote: an in-memory collection client standing in for the ClickUp API
- Domain: record builders
- Configuration: settings stores
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Callable
from typing import Any

import pytest

from tracktree.adapters.cache import CacheManager, MemoryCache
from tracktree.adapters.config import DictSettingsProvider
from tracktree.application.hierarchy import RetryEnvelope
from tracktree.core.domain import CollectionKind
from tracktree.core.ports import CollectionClientPort


# =============================================================================
# Remote - Fake collection client
# =============================================================================


class FakeCollectionClient(CollectionClientPort):
    """
    Serves collections from a dict keyed by (kind, parent_id).

    Task collections are paged by page_size. Failures can be scripted per
    key: an exception instance is raised on every call, a callable is
    invoked with the call count and may raise or return records, directly
    or from a coroutine.
    """

    def __init__(self, page_size: int = 100):
        self.page_size = page_size
        self.collections: dict[tuple[CollectionKind, str], list[dict[str, Any]]] = {}
        self.failures: dict[tuple[CollectionKind, str], Any] = {}
        self.calls: list[tuple[CollectionKind, str, int | None]] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.delay = 0.0

    def add(self, kind: CollectionKind, parent_id: str, records: list[dict[str, Any]]) -> None:
        self.collections[(kind, parent_id)] = records

    def fail(self, kind: CollectionKind, parent_id: str, failure: Any) -> None:
        self.failures[(kind, parent_id)] = failure

    def calls_for(self, kind: CollectionKind) -> list[tuple[CollectionKind, str, int | None]]:
        return [call for call in self.calls if call[0] is kind]

    async def fetch_collection(
        self,
        kind: CollectionKind,
        parent_id: str,
        page: int | None = None,
    ) -> list[dict[str, Any]]:
        self.calls.append((kind, parent_id, page))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)

            failure = self.failures.get((kind, parent_id))
            if isinstance(failure, BaseException):
                raise failure
            if callable(failure):
                count = sum(1 for call in self.calls if call[:2] == (kind, parent_id))
                result = failure(count)
                if inspect.isawaitable(result):
                    result = await result
                if result is not None:
                    return result

            records = self.collections.get((kind, parent_id), [])
            if kind.paginated and page is not None:
                start = page * self.page_size
                return records[start : start + self.page_size]
            return records
        finally:
            self.in_flight -= 1


@pytest.fixture
def fake_client() -> FakeCollectionClient:
    """Create an empty fake collection client."""
    return FakeCollectionClient()


@pytest.fixture
def fast_envelope() -> RetryEnvelope:
    """Retry envelope with a short timeout and no backoff."""
    return RetryEnvelope(timeout=0.2, attempts=3, base_delay=0.0)


# =============================================================================
# Domain - Record builders
# =============================================================================


def make_record(
    item_id: str,
    name: str = "",
    parent: str | None = None,
    **fields: Any,
) -> dict[str, Any]:
    """Build a raw API record."""
    record: dict[str, Any] = {"id": item_id, "name": name or f"item {item_id}"}
    if parent is not None:
        record["parent"] = parent
    record.update(fields)
    return record


@pytest.fixture
def record() -> Callable[..., dict[str, Any]]:
    """Expose make_record to tests as a fixture."""
    return make_record


@pytest.fixture
def workspace(fake_client: FakeCollectionClient) -> FakeCollectionClient:
    """
    A small team:

    - space s1 (red): folder f1 (lists l1, l2), folder f2 (list l3), list l4
    - space s2 (no color): list l5
    """
    fake_client.add(
        CollectionKind.SPACES,
        "team",
        [make_record("s1", "Engineering", color="#ff0000"), make_record("s2", "admin")],
    )
    fake_client.add(
        CollectionKind.FOLDERS,
        "s1",
        [make_record("f1", "Backend"), make_record("f2", "Frontend")],
    )
    fake_client.add(
        CollectionKind.FOLDER_LISTS, "f1", [make_record("l1", "API"), make_record("l2", "Jobs")]
    )
    fake_client.add(CollectionKind.FOLDER_LISTS, "f2", [make_record("l3", "Web")])
    fake_client.add(CollectionKind.SPACE_LISTS, "s1", [make_record("l4", "Inbox")])
    fake_client.add(CollectionKind.SPACE_LISTS, "s2", [make_record("l5", "Hiring")])
    fake_client.add(
        CollectionKind.TASKS,
        "l1",
        [
            make_record("t1", "Write endpoint", space={"id": "s1"}),
            make_record("t2", "Add tests", parent="t1", space={"id": "s1"}),
        ],
    )
    fake_client.add(CollectionKind.TASKS, "l3", [make_record("t3", "Landing page")])
    fake_client.add(CollectionKind.TASKS, "l5", [make_record("t5", "Interview")])
    return fake_client


# =============================================================================
# Configuration
# =============================================================================


@pytest.fixture
def settings() -> DictSettingsProvider:
    """Settings with credentials and no filter."""
    return DictSettingsProvider(
        {
            "settings": {
                "clickup_access_token": "pk_test",
                "clickup_team_id": "team",
            }
        }
    )


@pytest.fixture
def cache() -> CacheManager:
    """In-memory cache manager."""
    return CacheManager(MemoryCache(max_size=100, default_ttl=None))
