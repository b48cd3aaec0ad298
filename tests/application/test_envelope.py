"""
Tests for the retry envelope.
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from tracktree.application.hierarchy import AggregationContext, RetryEnvelope
from tracktree.core.exceptions import AuthenticationError, TransientError, TransportError


class Flaky:
    """Fails a fixed number of times, then returns a value."""

    def __init__(self, failures: int, error: Exception | None = None, value=None):
        self.failures = failures
        self.error = error or TransientError("503")
        self.value = value if value is not None else ["ok"]
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return self.value


class TestRetryEnvelopeConfig:
    """Tests for envelope construction."""

    def test_defaults(self):
        envelope = RetryEnvelope()
        assert envelope.timeout == 30.0
        assert envelope.attempts == 3
        assert envelope.base_delay == 1.0

    def test_rejects_zero_attempts(self):
        with pytest.raises(ValueError):
            RetryEnvelope(attempts=0)

    def test_linear_backoff(self):
        envelope = RetryEnvelope(base_delay=1.5)
        assert [envelope.delay_for(n) for n in (1, 2, 3)] == [1.5, 3.0, 4.5]


@pytest.mark.asyncio
class TestRetryEnvelopeRun:
    """Tests for RetryEnvelope.run and run_or_empty."""

    async def test_success_first_attempt(self, fast_envelope):
        operation = Flaky(0)
        assert await fast_envelope.run(operation) == ["ok"]
        assert operation.calls == 1

    async def test_retries_until_success(self, fast_envelope):
        operation = Flaky(2)
        context = AggregationContext.create()

        assert await fast_envelope.run(operation, context=context) == ["ok"]
        assert operation.calls == 3
        assert context.attempts == 3
        assert context.failed_attempts == 2

    async def test_raises_after_all_attempts(self, fast_envelope):
        operation = Flaky(5)
        with pytest.raises(TransportError) as exc_info:
            await fast_envelope.run(operation, label="folders of space 1")

        assert operation.calls == 3
        assert isinstance(exc_info.value.cause, TransientError)
        assert exc_info.value.resource == "folders of space 1"

    async def test_timeout_counts_as_failed_attempt(self):
        envelope = RetryEnvelope(timeout=0.01, attempts=2, base_delay=0.0)
        calls = 0

        async def hang():
            nonlocal calls
            calls += 1
            await asyncio.sleep(1)

        with pytest.raises(TransportError) as exc_info:
            await envelope.run(hang)

        assert calls == 2
        assert isinstance(exc_info.value.cause, TimeoutError)

    async def test_non_retryable_error_stops_immediately(self, fast_envelope):
        operation = Flaky(5, error=AuthenticationError("401"))
        with pytest.raises(TransportError) as exc_info:
            await fast_envelope.run(operation)

        assert operation.calls == 1
        assert isinstance(exc_info.value.cause, AuthenticationError)

    async def test_sleeps_base_delay_times_attempt(self):
        envelope = RetryEnvelope(timeout=1.0, attempts=3, base_delay=2.0)
        with patch(
            "tracktree.application.hierarchy.envelope.asyncio.sleep", new_callable=AsyncMock
        ) as mock_sleep:
            with pytest.raises(TransportError):
                await envelope.run(Flaky(5))

        assert [call.args[0] for call in mock_sleep.await_args_list] == [2.0, 4.0]

    async def test_cancellation_propagates(self, fast_envelope):
        async def cancelled():
            raise asyncio.CancelledError()

        with pytest.raises(asyncio.CancelledError):
            await fast_envelope.run(cancelled)

    async def test_run_or_empty_degrades_to_empty(self, fast_envelope):
        context = AggregationContext.create()
        result = await fast_envelope.run_or_empty(Flaky(5), label="lists of folder 2", context=context)

        assert result == []
        assert context.failed_branches == ["lists of folder 2"]
        assert context.is_partial

    async def test_run_or_empty_returns_value(self, fast_envelope):
        context = AggregationContext.create()
        assert await fast_envelope.run_or_empty(Flaky(1), context=context) == ["ok"]
        assert not context.is_partial

    async def test_timeout_starts_after_concurrency_slot_is_held(self):
        envelope = RetryEnvelope(timeout=0.15, attempts=1, base_delay=0.0)
        context = AggregationContext.create(max_concurrency=1)

        async def slow():
            await asyncio.sleep(0.1)
            return ["ok"]

        results = await asyncio.gather(
            *(envelope.run(slow, label=f"call {i}", context=context) for i in range(3))
        )

        assert results == [["ok"]] * 3
        assert context.failed_attempts == 0
