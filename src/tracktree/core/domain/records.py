"""
Raw Records - Typed view of the remote service's JSON records.

Records are validated once, at the boundary, so node construction never
fails halfway through on a missing field.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from tracktree.core.exceptions import InvalidItemError


def parse_epoch_millis(value: Any) -> datetime | None:
    """
    Convert an epoch-milliseconds value (string or number) to an aware datetime.

    Returns None for null or empty values.

    Raises:
        InvalidItemError: If the value is not a number.
    """
    if value is None or value == "":
        return None
    try:
        millis = int(value)
    except (TypeError, ValueError) as e:
        raise InvalidItemError(f"Invalid timestamp: {value!r}", cause=e) from e
    return datetime.fromtimestamp(millis / 1000, tz=UTC)


def to_epoch_millis(value: datetime) -> int:
    """Convert a datetime to epoch milliseconds."""
    return int(value.timestamp() * 1000)


def _optional_str(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


@dataclass(frozen=True)
class RawItem:
    """
    A validated space, folder, list or task record.

    Only the fields the hierarchy needs are kept; everything else in the
    API payload is ignored.
    """

    id: str
    name: str = ""
    color: str | None = None
    custom_id: str | None = None
    parent: str | None = None
    space_id: str | None = None
    date_closed: datetime | None = None

    @classmethod
    def parse(cls, data: Any) -> RawItem:
        """
        Parse a raw API record.

        Raises:
            InvalidItemError: If data is not a mapping, has no id, or carries
                an unparseable close date.
        """
        if isinstance(data, RawItem):
            return data
        if not isinstance(data, Mapping):
            raise InvalidItemError(f"Invalid item: expected a record, got {type(data).__name__}")

        item_id = data.get("id")
        if item_id is None or item_id == "":
            raise InvalidItemError("Invalid item: record has no id")

        space = data.get("space")
        space_id = None
        if isinstance(space, Mapping):
            space_id = _optional_str(space.get("id"))

        return cls(
            id=str(item_id),
            name=str(data.get("name") or ""),
            color=_optional_str(data.get("color")),
            custom_id=_optional_str(data.get("custom_id")),
            parent=_optional_str(data.get("parent")),
            space_id=space_id,
            date_closed=parse_epoch_millis(data.get("date_closed")),
        )
