"""Tests for runtime.groups: idempotent consumer group creation."""

import logging

import pytest
from redis.exceptions import ConnectionError, ResponseError

from errors import GroupInitializationError
from runtime.groups import ensure_consumer_group, ensure_consumer_groups


class TestEnsureConsumerGroup:
    @pytest.mark.asyncio
    async def test_creates_group_at_new_messages_only_with_mkstream(self, redis):
        created = await ensure_consumer_group(redis, "orders", "g1")

        assert created is True
        redis.xgroup_create.assert_awaited_once_with(
            name="orders", groupname="g1", id="$", mkstream=True
        )

    @pytest.mark.asyncio
    async def test_existing_group_is_not_an_error(self, redis, caplog):
        redis.xgroup_create.side_effect = ResponseError(
            "BUSYGROUP Consumer Group name already exists"
        )

        with caplog.at_level(logging.INFO, logger="runtime.groups"):
            created = await ensure_consumer_group(redis, "orders", "g1")

        assert created is False
        assert "already exists" in caplog.text

    @pytest.mark.asyncio
    async def test_second_call_is_a_noop_for_the_caller(self, redis):
        redis.xgroup_create.side_effect = [
            None,
            ResponseError("BUSYGROUP Consumer Group name already exists"),
        ]

        assert await ensure_consumer_group(redis, "orders", "g1") is True
        assert await ensure_consumer_group(redis, "orders", "g1") is False

    @pytest.mark.asyncio
    async def test_other_response_error_is_fatal(self, redis):
        redis.xgroup_create.side_effect = ResponseError(
            "WRONGTYPE Operation against a key holding the wrong kind of value"
        )

        with pytest.raises(GroupInitializationError) as exc_info:
            await ensure_consumer_group(redis, "orders", "g1")

        assert exc_info.value.stream == "orders"
        assert exc_info.value.group == "g1"
        assert "WRONGTYPE" in exc_info.value.reason

    @pytest.mark.asyncio
    async def test_connection_error_is_fatal(self, redis):
        redis.xgroup_create.side_effect = ConnectionError("Connection refused")

        with pytest.raises(GroupInitializationError):
            await ensure_consumer_group(redis, "orders", "g1")


class TestEnsureConsumerGroups:
    @pytest.mark.asyncio
    async def test_runs_once_per_stream_in_order(self, redis):
        await ensure_consumer_groups(redis, ["orders", "payments"], "g1")

        streams = [call.kwargs["name"] for call in redis.xgroup_create.await_args_list]
        assert streams == ["orders", "payments"]

    @pytest.mark.asyncio
    async def test_stops_at_first_failure(self, redis):
        redis.xgroup_create.side_effect = ResponseError("ERR no such key")

        with pytest.raises(GroupInitializationError):
            await ensure_consumer_groups(redis, ["orders", "payments"], "g1")

        assert redis.xgroup_create.await_count == 1
