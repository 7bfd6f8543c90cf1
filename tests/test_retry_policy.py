"""Unit tests for retry policy helpers.

Tests cover:
- Linear backoff delay calculation and its cap
- The gateway retry policy
"""

import pytest
from hypothesis import given, strategies as st

from storyboard_swarm.agents.base import RetryPolicy
from storyboard_swarm.orchestrator.retry_policy import (
    MAX_DELAY_SECONDS,
    calculate_backoff_delay,
    create_gateway_retry_policy,
)


class TestBackoffDelayCalculation:
    def test_linear_backoff(self):
        """Test linear backoff: delay = base * (attempt + 1)."""
        # One second after the first failure, two after the second
        assert calculate_backoff_delay(0, 1.0) == 1.0
        assert calculate_backoff_delay(1, 1.0) == 2.0
        assert calculate_backoff_delay(2, 1.0) == 3.0

    def test_scaled_base(self):
        assert calculate_backoff_delay(3, 0.5) == 2.0

    def test_capped_at_max(self):
        assert calculate_backoff_delay(100, 1.0) == MAX_DELAY_SECONDS
        assert calculate_backoff_delay(4, 1.0, max_delay=2.5) == 2.5

    def test_zero_base_never_waits(self):
        assert calculate_backoff_delay(7, 0.0) == 0.0

    @given(
        attempt=st.integers(min_value=0, max_value=50),
        base=st.floats(min_value=0.0, max_value=10.0),
        cap=st.floats(min_value=0.0, max_value=120.0)
    )
    def test_delay_never_exceeds_cap(self, attempt, base, cap):
        delay = calculate_backoff_delay(attempt, base, cap)

        assert 0.0 <= delay <= cap

    @given(attempt=st.integers(min_value=0, max_value=30), base=st.floats(min_value=0.0, max_value=1.0))
    def test_delay_never_shrinks(self, attempt, base):
        assert calculate_backoff_delay(attempt + 1, base) >= calculate_backoff_delay(attempt, base)


class TestGatewayRetryPolicy:
    """Test the policy used by the text generation client."""

    def test_defaults(self):
        policy = create_gateway_retry_policy()

        assert isinstance(policy, RetryPolicy)
        assert policy.max_attempts == 3
        assert policy.base_delay_seconds == 1.0
        assert policy.max_delay_seconds == MAX_DELAY_SECONDS

    def test_custom_values(self):
        policy = create_gateway_retry_policy(max_attempts=5, base_delay_seconds=0.25)

        assert policy.max_attempts == 5
        assert policy.base_delay_seconds == 0.25

    def test_rejects_zero_attempts(self):
        with pytest.raises(ValueError, match="max_attempts"):
            create_gateway_retry_policy(max_attempts=0)

    def test_rejects_negative_delay(self):
        with pytest.raises(ValueError, match="base_delay_seconds"):
            create_gateway_retry_policy(base_delay_seconds=-1.0)
