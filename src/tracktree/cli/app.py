"""
CLI App - Main entry point for the tracktree command line tool.
"""

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

from tracktree.adapters.cache import CacheManager, FileCache
from tracktree.adapters.clickup import AsyncClickUpApiClient, ClickUpApiClient
from tracktree.adapters.config import (
    EnvironmentSettingsProvider,
    FileSettingsProvider,
    LayeredSettingsProvider,
)
from tracktree.application.hierarchy import HierarchyAggregator, HierarchyService
from tracktree.application.time_tracking import TimeTrackingService
from tracktree.core.domain import HierarchyNode
from tracktree.core.exceptions import (
    AuthenticationError,
    ConfigError,
    HierarchyFetchError,
    TrackTreeError,
    TransportError,
)
from tracktree.core.ports.settings import ClickUpSettings, HierarchySettings, SettingsPort

from .exit_codes import ExitCode
from .logging import setup_logging
from .output import Console


logger = logging.getLogger("tracktree.cli")


def _iso_datetime(value: str) -> datetime:
    """Parse an ISO 8601 date or datetime; naive values are local time."""
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid ISO date/time: {value!r}") from e
    return parsed.astimezone()


def create_parser() -> argparse.ArgumentParser:
    """
    Create the command-line argument parser for tracktree.

    Returns:
        Configured ArgumentParser instance.
    """
    parser = argparse.ArgumentParser(
        prog="tracktree",
        description="Browse a ClickUp workspace hierarchy and its time entries",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Print the hierarchy (cached for a week)
  tracktree hierarchy

  # Re-fetch everything, ignoring the cache
  tracktree hierarchy --refresh

  # Spaces, folders and lists only, as JSON
  tracktree hierarchy --metadata --json

  # Your time entries for a week
  tracktree entries --start 2024-01-01 --end 2024-01-08
        """,
    )

    parser.add_argument("--config", "-c", type=str, help="Path to a YAML/TOML/JSON settings file")
    parser.add_argument("--cache-dir", type=str, help="Directory for the persistent cache")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default="text",
        help="Log output format (default: text)",
    )
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    hierarchy = subparsers.add_parser("hierarchy", help="Print the workspace hierarchy")
    hierarchy.add_argument("--refresh", action="store_true", help="Bypass and rebuild the cache")
    hierarchy.add_argument(
        "--metadata", action="store_true", help="Spaces, folders and lists only (no tasks)"
    )
    hierarchy.add_argument("--json", action="store_true", help="Print JSON instead of a tree")

    colors = subparsers.add_parser("colors", help="Print the color of every space")
    colors.add_argument("--json", action="store_true", help="Print JSON")

    subparsers.add_parser("clear-cache", help="Remove the cached hierarchy")

    users = subparsers.add_parser("users", help="List workspace members (guests excluded)")
    users.add_argument("--json", action="store_true", help="Print JSON")

    entries = subparsers.add_parser("entries", help="List time entries in a range")
    entries.add_argument("--start", type=_iso_datetime, required=True, help="Range start (ISO 8601)")
    entries.add_argument("--end", type=_iso_datetime, required=True, help="Range end (ISO 8601)")
    entries.add_argument("--user", type=str, help="Member id (defaults to the token owner)")
    entries.add_argument("--json", action="store_true", help="Print JSON")

    return parser


# -------------------------------------------------------------------------
# Wiring
# -------------------------------------------------------------------------


def load_settings(args: argparse.Namespace) -> SettingsPort:
    """Environment variables take precedence over the settings file."""
    return LayeredSettingsProvider(
        [
            EnvironmentSettingsProvider(),
            FileSettingsProvider(config_path=args.config),
        ]
    )


def create_cache(args: argparse.Namespace) -> CacheManager:
    cache_dir = Path(args.cache_dir).expanduser() if args.cache_dir else None
    return CacheManager(FileCache(cache_dir=cache_dir))


def _hierarchy_client(
    settings: SettingsPort,
) -> tuple[AsyncClickUpApiClient, ClickUpSettings, HierarchySettings]:
    clickup = ClickUpSettings.from_settings(settings)
    config = HierarchySettings.from_settings(settings)
    client = AsyncClickUpApiClient(
        api_token=clickup.access_token, base_url=clickup.base_url, timeout=config.timeout
    )
    return client, clickup, config


async def fetch_hierarchy(
    settings: SettingsPort,
    cache: CacheManager,
    refresh: bool = False,
    metadata: bool = False,
) -> list[HierarchyNode]:
    """Read the hierarchy through the cache, rebuilding it when refresh is set."""
    client, clickup, config = _hierarchy_client(settings)
    async with client:
        aggregator = HierarchyAggregator(client, clickup.team_id, config=config, settings=settings)
        service = HierarchyService(aggregator, cache)

        if metadata:
            if refresh:
                service.clear_cached_hierarchy()
            return await service.get_cached_hierarchy_metadata()
        if refresh:
            return await service.refresh_hierarchy()
        return await service.get_cached_hierarchy()


async def fetch_colors(settings: SettingsPort) -> dict[str, str | None]:
    client, clickup, config = _hierarchy_client(settings)
    async with client:
        aggregator = HierarchyAggregator(client, clickup.team_id, config=config, settings=settings)
        return await aggregator.get_colors_by_space()


# -------------------------------------------------------------------------
# Commands
# -------------------------------------------------------------------------


def run_hierarchy(args: argparse.Namespace, settings: SettingsPort, console: Console) -> int:
    nodes = asyncio.run(
        fetch_hierarchy(settings, create_cache(args), refresh=args.refresh, metadata=args.metadata)
    )
    if not nodes:
        console.warning("No spaces found (check the filter in your settings)")
    console.tree(nodes)
    return ExitCode.SUCCESS


def run_colors(args: argparse.Namespace, settings: SettingsPort, console: Console) -> int:
    colors = asyncio.run(fetch_colors(settings))
    console.colors(colors)
    return ExitCode.SUCCESS


def run_clear_cache(args: argparse.Namespace, settings: SettingsPort, console: Console) -> int:
    count = create_cache(args).clear_all()
    console.success(f"Removed {count} cached entries")
    return ExitCode.SUCCESS


def _time_tracking(args: argparse.Namespace, settings: SettingsPort) -> TimeTrackingService:
    clickup = ClickUpSettings.from_settings(settings)
    client = ClickUpApiClient(
        api_token=clickup.access_token, team_id=clickup.team_id, base_url=clickup.base_url
    )
    return TimeTrackingService(client, create_cache(args))


def run_users(args: argparse.Namespace, settings: SettingsPort, console: Console) -> int:
    service = _time_tracking(args, settings)
    try:
        users = service.get_cached_users()
    finally:
        service.client.close()
    console.users(users)
    return ExitCode.SUCCESS


def run_entries(args: argparse.Namespace, settings: SettingsPort, console: Console) -> int:
    if args.end < args.start:
        console.error("--end must not be before --start")
        return ExitCode.ERROR

    service = _time_tracking(args, settings)
    try:
        entries = service.get_time_entries(args.start, args.end, user_id=args.user)
    finally:
        service.client.close()
    console.entries(entries)
    return ExitCode.SUCCESS


COMMANDS = {
    "hierarchy": run_hierarchy,
    "colors": run_colors,
    "clear-cache": run_clear_cache,
    "users": run_users,
    "entries": run_entries,
}


def main(argv: Sequence[str] | None = None) -> int:
    """
    Main entry point for the tracktree CLI.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    log_level = logging.DEBUG if args.verbose else logging.WARNING
    setup_logging(level=log_level, log_format=args.log_format)

    console = Console(
        color=not args.no_color,
        verbose=args.verbose,
        json_mode=getattr(args, "json", False),
    )

    try:
        settings = load_settings(args)
        if args.command != "clear-cache":
            errors = settings.validate()
            if errors:
                console.config_errors(errors)
                return ExitCode.CONFIG_ERROR
        return COMMANDS[args.command](args, settings, console)
    except KeyboardInterrupt:
        console.error("Interrupted")
        return ExitCode.SIGINT
    except ConfigError as e:
        console.error(str(e))
        return ExitCode.CONFIG_ERROR
    except (AuthenticationError, TransportError, HierarchyFetchError) as e:
        console.error(str(e))
        return ExitCode.CONNECTION_ERROR
    except TrackTreeError as e:
        console.error(str(e))
        return ExitCode.ERROR
    except Exception as e:
        logger.exception("Unexpected error")
        console.error(f"Unexpected error: {e}")
        return ExitCode.ERROR


def run() -> None:
    """Entry point for the console script."""
    sys.exit(main())


if __name__ == "__main__":
    run()
