"""Retry helpers for calls to the text-generation gateway.

The gateway is the only remote dependency that is retried. Every failure
counts the same toward the attempt cap: HTTP 4xx and 5xx responses,
connection errors and timeouts alike. Waits grow linearly, one base delay
per failed attempt.
"""

from storyboard_swarm.agents.base import RetryPolicy

MAX_DELAY_SECONDS = 60.0


def calculate_backoff_delay(attempt: int, base_delay: float, max_delay: float = MAX_DELAY_SECONDS) -> float:
    """Seconds to wait after failed attempt ``attempt`` (0-indexed).

    >>> calculate_backoff_delay(0, 1.0)
    1.0
    >>> calculate_backoff_delay(2, 1.0)
    3.0
    >>> calculate_backoff_delay(99, 1.0)
    60.0
    """
    return min(base_delay * (attempt + 1), max_delay)


def create_gateway_retry_policy(max_attempts: int = 3, base_delay_seconds: float = 1.0) -> RetryPolicy:
    """Build the policy the TextGenerationClient applies to each request.

    Raises:
        ValueError: If max_attempts is below 1 or the base delay is negative
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
    if base_delay_seconds < 0:
        raise ValueError(f"base_delay_seconds cannot be negative, got {base_delay_seconds}")

    return RetryPolicy(
        max_attempts=max_attempts,
        base_delay_seconds=base_delay_seconds,
        max_delay_seconds=MAX_DELAY_SECONDS
    )
