"""
Tests for the CLI entry point.
"""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from tracktree.adapters.cache import CacheManager, MemoryCache
from tracktree.adapters.config import DictSettingsProvider
from tracktree.cli import ExitCode, create_parser, main
from tracktree.cli.app import fetch_colors, fetch_hierarchy
from tracktree.core.domain import CollectionKind, HierarchyNode, NodeKind
from tracktree.core.exceptions import (
    ApiResponseError,
    AuthenticationError,
    ConfigFileError,
    HierarchyFetchError,
)


class ManagedClient:
    """Gives a collection client the async context manager protocol."""

    def __init__(self, inner):
        self.inner = inner

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def fetch_collection(self, kind, parent_id, page=None):
        return await self.inner.fetch_collection(kind, parent_id, page)


@pytest.fixture(autouse=True)
def no_logging_setup():
    with patch("tracktree.cli.app.setup_logging"):
        yield


@pytest.fixture
def use_settings(settings):
    with patch("tracktree.cli.app.load_settings", return_value=settings):
        yield settings


@pytest.fixture
def use_cache(cache):
    with patch("tracktree.cli.app.create_cache", return_value=cache):
        yield cache


# =============================================================================
# Parser
# =============================================================================


class TestParser:
    """Tests for create_parser."""

    def test_command_required(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args([])

    def test_hierarchy_flags(self):
        args = create_parser().parse_args(["-v", "hierarchy", "--refresh", "--json"])
        assert args.verbose
        assert args.refresh
        assert args.json
        assert not args.metadata

    def test_entries_dates(self):
        args = create_parser().parse_args(
            ["entries", "--start", "2024-01-01", "--end", "2024-01-08T12:00:00+00:00"]
        )
        assert isinstance(args.start, datetime)
        assert args.start.tzinfo is not None
        assert args.end == datetime(2024, 1, 8, 12, tzinfo=UTC)

    def test_entries_bad_date(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["entries", "--start", "yesterday", "--end", "2024-01-01"])

    def test_log_format_choices(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["--log-format", "xml", "colors"])


# =============================================================================
# main
# =============================================================================


class TestMain:
    """Tests for main() dispatch and exit codes."""

    def test_hierarchy(self, use_settings, use_cache, capsys):
        nodes = [HierarchyNode(id="s1", label="Engineering", kind=NodeKind.SPACE)]
        with patch("tracktree.cli.app.fetch_hierarchy", new=AsyncMock(return_value=nodes)) as fetch:
            code = main(["--no-color", "hierarchy", "--refresh"])

        assert code == ExitCode.SUCCESS
        assert "Engineering" in capsys.readouterr().out
        assert fetch.await_args.kwargs == {"refresh": True, "metadata": False}

    def test_empty_hierarchy_warns(self, use_settings, use_cache, capsys):
        with patch("tracktree.cli.app.fetch_hierarchy", new=AsyncMock(return_value=[])):
            assert main(["--no-color", "hierarchy"]) == ExitCode.SUCCESS
        assert "No spaces found" in capsys.readouterr().out

    def test_missing_settings(self, capsys):
        with patch("tracktree.cli.app.load_settings", return_value=DictSettingsProvider()):
            assert main(["hierarchy"]) == ExitCode.CONFIG_ERROR
        assert "Missing access token" in capsys.readouterr().err

    def test_clear_cache_needs_no_credentials(self, use_cache, capsys):
        use_cache.put("hierarchy", [])
        with patch("tracktree.cli.app.load_settings", return_value=DictSettingsProvider()):
            assert main(["--no-color", "clear-cache"]) == ExitCode.SUCCESS
        assert use_cache.get("hierarchy") is None
        assert "Removed 1" in capsys.readouterr().out

    @pytest.mark.parametrize(
        ("error", "expected"),
        [
            (HierarchyFetchError("spaces failed"), ExitCode.CONNECTION_ERROR),
            (AuthenticationError("bad token"), ExitCode.CONNECTION_ERROR),
            (ConfigFileError("broken file"), ExitCode.CONFIG_ERROR),
            (ApiResponseError("weird payload"), ExitCode.ERROR),
            (RuntimeError("bug"), ExitCode.ERROR),
        ],
    )
    def test_exit_codes(self, use_settings, use_cache, error, expected):
        with patch("tracktree.cli.app.fetch_hierarchy", new=AsyncMock(side_effect=error)):
            assert main(["hierarchy"]) == expected

    def test_interrupted(self):
        with patch("tracktree.cli.app.load_settings", side_effect=KeyboardInterrupt):
            assert main(["hierarchy"]) == ExitCode.SIGINT

    def test_colors_json(self, use_settings, capsys):
        with patch(
            "tracktree.cli.app.fetch_colors", new=AsyncMock(return_value={"s1": "#fff"})
        ):
            assert main(["colors", "--json"]) == ExitCode.SUCCESS
        assert '"s1": "#fff"' in capsys.readouterr().out

    def test_entries(self, use_settings):
        service = MagicMock()
        service.get_time_entries.return_value = []
        with patch("tracktree.cli.app._time_tracking", return_value=service):
            code = main(
                ["entries", "--start", "2024-01-01", "--end", "2024-01-02", "--user", "7"]
            )

        assert code == ExitCode.SUCCESS
        assert service.get_time_entries.call_args.kwargs == {"user_id": "7"}
        service.client.close.assert_called_once()

    def test_entries_end_before_start(self, use_settings):
        with patch("tracktree.cli.app._time_tracking") as factory:
            code = main(["entries", "--start", "2024-01-02", "--end", "2024-01-01"])
        assert code == ExitCode.ERROR
        factory.assert_not_called()

    def test_users_closes_client_on_error(self, use_settings):
        service = MagicMock()
        service.get_cached_users.side_effect = AuthenticationError("401")
        with patch("tracktree.cli.app._time_tracking", return_value=service):
            assert main(["users"]) == ExitCode.CONNECTION_ERROR
        service.client.close.assert_called_once()


# =============================================================================
# Hierarchy wiring
# =============================================================================


@pytest.mark.asyncio
class TestFetchHierarchy:
    """fetch_hierarchy wires settings, client, aggregator and cache together."""

    @pytest.fixture
    def remote(self, workspace):
        with patch("tracktree.cli.app.AsyncClickUpApiClient", return_value=ManagedClient(workspace)):
            yield workspace

    async def test_cached_between_calls(self, remote, settings):
        cache = CacheManager(MemoryCache(default_ttl=None))

        first = await fetch_hierarchy(settings, cache)
        remote.calls.clear()
        second = await fetch_hierarchy(settings, cache)

        assert [n.id for n in second] == [n.id for n in first]
        assert remote.calls == []

    async def test_refresh_fetches_again(self, remote, settings):
        cache = CacheManager(MemoryCache(default_ttl=None))
        await fetch_hierarchy(settings, cache)
        remote.calls.clear()

        await fetch_hierarchy(settings, cache, refresh=True)

        assert remote.calls

    async def test_metadata_has_no_tasks(self, remote, settings):
        cache = CacheManager(MemoryCache(default_ttl=None))
        await fetch_hierarchy(settings, cache, metadata=True)
        assert remote.calls_for(CollectionKind.TASKS) == []

    async def test_filter_from_settings(self, remote, settings):
        settings.set("settings.clickup_filter", {"enabled": True, "selection": {}})
        cache = CacheManager(MemoryCache(default_ttl=None))

        assert await fetch_hierarchy(settings, cache) == []

    async def test_colors(self, remote, settings):
        assert await fetch_colors(settings) == {"s1": "#ff0000", "s2": None}
