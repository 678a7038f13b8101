"""Tests for schemas.core: invocation outcome and retry policy."""

import pytest
from pydantic import ValidationError

from schemas.core import InvocationResult, RetryPolicy, StreamMessage


class TestInvocationResult:
    @pytest.mark.parametrize("status_code", [200, 202, 204, 299])
    def test_2xx_is_ok(self, status_code):
        assert InvocationResult(status_code=status_code).ok is True

    @pytest.mark.parametrize("result", [
        InvocationResult(),
        InvocationResult(status_code=199),
        InvocationResult(status_code=300),
        InvocationResult(status_code=500),
        InvocationResult(status_code=200, function_error="Unhandled"),
        InvocationResult(status_code=200, error="connection reset"),
    ])
    def test_not_ok(self, result):
        assert result.ok is False


class TestRetryPolicy:
    def test_exponential_until_cap(self):
        policy = RetryPolicy(initial_delay_seconds=1, max_delay_seconds=10, multiplier=3, jitter=False)

        assert [policy.delay_for(a) for a in range(4)] == [1.0, 3.0, 9.0, 10.0]

    def test_zero_initial_delay_retries_immediately(self):
        policy = RetryPolicy(initial_delay_seconds=0, jitter=False)

        assert policy.delay_for(5) == 0.0

    def test_jitter_stays_within_half_to_full_delay(self):
        policy = RetryPolicy(initial_delay_seconds=2, max_delay_seconds=30, multiplier=2, jitter=True)

        for _ in range(50):
            assert 2.0 <= policy.delay_for(1) <= 4.0

    def test_huge_attempt_counts_stay_capped(self):
        policy = RetryPolicy(initial_delay_seconds=0.5, max_delay_seconds=30, jitter=False)

        assert policy.delay_for(5000) == 30.0


class TestStreamMessage:
    def test_is_immutable(self):
        message = StreamMessage(stream="orders", msg_id="1-0", fields={"a": "1"})

        with pytest.raises(ValidationError):
            message.msg_id = "2-0"
