"""
Time Tracking - Time entries and workspace members.

Wraps the synchronous ClickUp client with domain types and the cached
member list.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from tracktree.adapters.clickup.client import ClickUpApiClient
from tracktree.core.domain import TimeEntry, User, to_epoch_millis
from tracktree.core.exceptions import ApiResponseError, ModelError
from tracktree.core.ports.cache import CachePort


USERS_CACHE_KEY = "users"
USERS_CACHE_TTL = 6 * 3600


class TimeTrackingService:
    """Time entry CRUD and member lookup for one team."""

    def __init__(self, client: ClickUpApiClient, cache: CachePort | None = None):
        self.client = client
        self.cache = cache
        self.logger = logging.getLogger("TimeTrackingService")

    # -------------------------------------------------------------------------
    # Time Entries
    # -------------------------------------------------------------------------

    def get_time_entries(
        self,
        start: datetime | None,
        end: datetime | None,
        user_id: str | None = None,
    ) -> list[TimeEntry]:
        """
        Get the entries that fall within [start, end].

        Args:
            start: Range start; None returns no entries
            end: Range end; None returns no entries
            user_id: Entries of this member instead of the token owner

        Returns:
            Entries ordered by start. Records that cannot be parsed are
            skipped and logged.
        """
        if start is None or end is None:
            return []

        self.logger.info(f"Getting time entries for {start.isoformat()} - {end.isoformat()}")
        records = self.client.get_time_entries(
            to_epoch_millis(start), to_epoch_millis(end), assignee=user_id
        )

        entries = []
        for record in records:
            try:
                entries.append(TimeEntry.from_api(record))
            except ModelError as e:
                self.logger.warning(f"Skipping time entry: {e}")
        entries.sort(key=lambda entry: entry.start)
        return entries

    def create_time_entry(
        self,
        task_id: str,
        description: str,
        start: datetime,
        end: datetime,
    ) -> dict[str, Any]:
        """Track the interval [start, end] against a task."""
        _check_interval(start, end)
        start_ms = to_epoch_millis(start)
        self.logger.info(f"Creating time entry on task {task_id}")
        return self.client.create_time_entry(
            task_id, description, start_ms, to_epoch_millis(end) - start_ms
        )

    def update_time_entry(
        self,
        entry_id: str,
        description: str,
        start: datetime,
        end: datetime,
    ) -> dict[str, Any]:
        _check_interval(start, end)
        start_ms = to_epoch_millis(start)
        self.logger.info(f"Updating time entry {entry_id}")
        return self.client.update_time_entry(
            entry_id, description, start_ms, to_epoch_millis(end) - start_ms
        )

    def delete_time_entry(self, entry_id: str) -> dict[str, Any]:
        self.logger.info(f"Deleting time entry {entry_id}")
        return self.client.delete_time_entry(entry_id)

    # -------------------------------------------------------------------------
    # Members & Tasks
    # -------------------------------------------------------------------------

    def get_users(self) -> list[User]:
        """
        Get the members of every team the token can see.

        Guests are left out. A member of several teams appears once. The
        result is sorted by username.
        """
        users: dict[str, User] = {}
        for team in self.client.get_teams():
            for member in team.get("members") or []:
                data = member.get("user") if isinstance(member, dict) else None
                if not isinstance(data, dict) or not data.get("id"):
                    continue
                user = User.from_api(data)
                if user.is_guest:
                    continue
                users.setdefault(user.id, user)
        return sorted(users.values(), key=lambda user: user.username)

    def get_cached_users(self) -> list[User]:
        """Members from the cache, refreshed every six hours."""
        if self.cache is None:
            return self.get_users()

        cached = self.cache.get(USERS_CACHE_KEY)
        if cached is not None:
            try:
                return [User.from_api(data) for data in cached]
            except (TypeError, AttributeError) as e:
                self.logger.warning(f"Discarding unreadable cached users: {e}")
                self.cache.clear(USERS_CACHE_KEY)

        users = self.get_users()
        self.cache.put(USERS_CACHE_KEY, [_user_to_dict(user) for user in users], USERS_CACHE_TTL)
        return users

    def get_space_id_for_task(self, task_id: str) -> str:
        """
        Raises:
            ApiResponseError: If the task record carries no space.
        """
        task = self.client.get_task(task_id)
        space = task.get("space")
        if not isinstance(space, dict) or not space.get("id"):
            raise ApiResponseError(f"Task {task_id} has no space", resource=f"task/{task_id}")
        return str(space["id"])


def _check_interval(start: datetime, end: datetime) -> None:
    if end < start:
        raise ValueError(f"Time entry ends before it starts: {start.isoformat()} > {end.isoformat()}")


def _user_to_dict(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "color": user.color,
        "role": user.role,
    }
