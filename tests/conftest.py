"""
pytest configuration for the stream bridge tests.

Redis and Lambda are replaced with mocks; no server is needed.
"""

from unittest.mock import AsyncMock

import pytest

from runtime.dispatcher import Dispatcher
from schemas.core import BridgeSettings, InvocationResult, RetryPolicy


@pytest.fixture
def redis():
    return AsyncMock()


@pytest.fixture
def invoker():
    return AsyncMock(return_value=InvocationResult(status_code=200, payload='{"ok": true}'))


@pytest.fixture
def retry_policy():
    return RetryPolicy(initial_delay_seconds=0.5, max_delay_seconds=4.0, multiplier=2.0, jitter=False)


@pytest.fixture
def dispatcher(redis, invoker, retry_policy):
    return Dispatcher(
        redis=redis,
        invoker=invoker,
        streams=["orders", "payments"],
        group="g1",
        consumer_name="worker-1",
        retry_policy=retry_policy,
    )


@pytest.fixture
def settings(retry_policy):
    return BridgeSettings(
        redis_url="redis://localhost:6379/0",
        streams=["orders"],
        consumer_group="g1",
        lambda_name="process-order",
        consumer_name="worker-1",
        retry_policy=retry_policy,
    )
