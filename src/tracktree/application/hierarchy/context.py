"""
Aggregation Context - State owned by a single aggregation run.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field

from tracktree.core.domain import NodeFactory


@dataclass
class AggregationContext:
    """
    Counters, color map and node factory for one run.

    A fresh context is created for every run and threaded through every
    call; nothing here outlives the run except as diagnostics.
    """

    colors: dict[str, str] = field(default_factory=dict)
    requests: int = 0
    attempts: int = 0
    failed_attempts: int = 0
    failed_branches: list[str] = field(default_factory=list)
    orphans: int = 0
    unreachable: int = 0
    skipped_records: int = 0
    started_at: float = field(default_factory=time.monotonic)
    finished_at: float | None = None
    semaphore: asyncio.Semaphore | None = None
    factory: NodeFactory = field(init=False)

    def __post_init__(self) -> None:
        self.factory = NodeFactory(self.colors)

    @classmethod
    def create(cls, max_concurrency: int | None = None) -> AggregationContext:
        semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency else None
        return cls(semaphore=semaphore)

    def record_failure(self, label: str) -> None:
        self.failed_branches.append(label)

    def finish(self) -> None:
        self.finished_at = time.monotonic()

    @property
    def elapsed(self) -> float:
        end = self.finished_at if self.finished_at is not None else time.monotonic()
        return end - self.started_at

    @property
    def is_partial(self) -> bool:
        """True if any branch degraded to empty after exhausting retries."""
        return bool(self.failed_branches)

    def summary(self) -> dict[str, object]:
        return {
            "requests": self.requests,
            "attempts": self.attempts,
            "failed_attempts": self.failed_attempts,
            "failed_branches": len(self.failed_branches),
            "orphans": self.orphans,
            "unreachable": self.unreachable,
            "skipped_records": self.skipped_records,
            "elapsed": round(self.elapsed, 3),
        }
