"""
HTTP helpers shared by the API clients: retryable status codes, backoff
delays and Retry-After parsing.
"""

import random
from collections.abc import Mapping


# HTTP status codes that should trigger retry
RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


def calculate_delay(
    attempt: int,
    initial_delay: float = 1.0,
    max_delay: float = 60.0,
    backoff_factor: float = 2.0,
    jitter: float = 0.1,
    retry_after: float | None = None,
) -> float:
    """
    Delay before the next retry.

    Args:
        attempt: Zero-based attempt that just failed
        initial_delay: Delay after the first failure
        max_delay: Upper bound on any delay
        backoff_factor: Multiplier per attempt
        jitter: Random variation as a fraction of the delay (0.1 = 10%)
        retry_after: Server-requested delay, used when larger

    Returns:
        Delay in seconds
    """
    delay = initial_delay * (backoff_factor**attempt)
    if retry_after is not None:
        delay = max(delay, retry_after)
    delay = min(delay, max_delay)
    if jitter > 0:
        delay += delay * jitter * random.uniform(-1, 1)
    return max(0.0, delay)


def get_retry_after(headers: Mapping[str, str]) -> float | None:
    """Seconds from a Retry-After header, if present and numeric."""
    value = headers.get("Retry-After")
    if value is None:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None
