"""Tests for redis_client.create_redis_client."""

import pytest
from redis.asyncio import Redis

from redis_client import create_redis_client


def test_builds_client_from_url_with_decoded_responses():
    client = create_redis_client("redis://:secret@redis.internal:6380/2")

    kwargs = client.connection_pool.connection_kwargs
    assert isinstance(client, Redis)
    assert kwargs["host"] == "redis.internal"
    assert kwargs["port"] == 6380
    assert kwargs["db"] == 2
    assert kwargs["decode_responses"] is True


def test_invalid_url_raises_value_error():
    with pytest.raises(ValueError):
        create_redis_client("not-a-url")


def test_undecodable_values_are_escaped_not_raised():
    client = create_redis_client("redis://localhost:6379/0")

    kwargs = client.connection_pool.connection_kwargs
    assert kwargs["encoding_errors"] == "backslashreplace"
    assert client.connection_pool.get_encoder().decode(b"\xff\xfe", force=True) == "\\xff\\xfe"
