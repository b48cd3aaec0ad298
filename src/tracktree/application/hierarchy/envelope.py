"""
Retry Envelope - Timeout and bounded retry around a single collection fetch.

A fetch that does not settle within the timeout counts as a failed attempt.
After attempt n fails the envelope waits ``base_delay * n`` before the next
one. Once all attempts are spent, ``run_or_empty`` degrades to an empty
result while ``run`` raises.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, TypeVar

from tracktree.core.exceptions import TransportError, is_retryable


if TYPE_CHECKING:
    from .context import AggregationContext


T = TypeVar("T")

logger = logging.getLogger("RetryEnvelope")


class RetryEnvelope:
    """
    Bounded timeout/retry policy.

    Example:
        >>> envelope = RetryEnvelope(timeout=10.0, attempts=3, base_delay=1.0)
        >>> folders = await envelope.run_or_empty(
        ...     lambda: client.fetch_collection(CollectionKind.FOLDERS, space_id),
        ...     label=f"folders of space {space_id}",
        ... )
    """

    DEFAULT_TIMEOUT = 30.0
    DEFAULT_ATTEMPTS = 3
    DEFAULT_BASE_DELAY = 1.0

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        attempts: int = DEFAULT_ATTEMPTS,
        base_delay: float = DEFAULT_BASE_DELAY,
    ):
        """
        Initialize the envelope.

        Args:
            timeout: Seconds an attempt may take before it is abandoned
            attempts: Total attempts, including the first (at least 1)
            base_delay: Backoff unit in seconds; attempt n waits base_delay * n
        """
        if attempts < 1:
            raise ValueError("attempts must be at least 1")
        self.timeout = timeout
        self.attempts = attempts
        self.base_delay = base_delay

    def delay_for(self, attempt: int) -> float:
        """Backoff after the given (1-based) failed attempt."""
        return self.base_delay * attempt

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        label: str = "operation",
        context: AggregationContext | None = None,
    ) -> T:
        """
        Run the operation under the policy, raising once attempts are spent.

        Raises:
            TransportError: After the final attempt fails; the last error is
                attached as the cause.
        """
        last_error: BaseException | None = None

        for attempt in range(1, self.attempts + 1):
            if context is not None:
                context.attempts += 1
            try:
                return await self._attempt(operation, context)
            except asyncio.CancelledError:
                raise
            except TimeoutError as e:
                last_error = e
                logger.warning(
                    f"Timed out after {self.timeout:.1f}s fetching {label} "
                    f"(attempt {attempt}/{self.attempts})"
                )
            except Exception as e:
                last_error = e
                logger.warning(
                    f"Failed fetching {label} (attempt {attempt}/{self.attempts}): {e}"
                )

            if context is not None:
                context.failed_attempts += 1
            if not is_retryable(last_error):
                logger.debug(f"Not retrying {label}: {type(last_error).__name__}")
                break
            if attempt < self.attempts:
                await asyncio.sleep(self.delay_for(attempt))

        raise TransportError(f"Giving up on {label}", resource=label, cause=last_error)

    async def _attempt(
        self,
        operation: Callable[[], Awaitable[T]],
        context: AggregationContext | None,
    ) -> T:
        """One timed attempt; the timeout starts once a concurrency slot is held."""
        semaphore = context.semaphore if context is not None else None
        if semaphore is None:
            return await asyncio.wait_for(operation(), timeout=self.timeout)
        async with semaphore:
            return await asyncio.wait_for(operation(), timeout=self.timeout)

    async def run_or_empty(
        self,
        operation: Callable[[], Awaitable[list[Any]]],
        label: str = "operation",
        context: AggregationContext | None = None,
    ) -> list[Any]:
        """
        Run the operation under the policy, returning [] once attempts are spent.

        An empty result means "no data obtained", not "confirmed empty".
        """
        try:
            return await self.run(operation, label=label, context=context)
        except TransportError as e:
            logger.warning(f"Treating {label} as empty: {e}")
            if context is not None:
                context.record_failure(label)
            return []
