import logging

from redis.asyncio import Redis
from redis.exceptions import RedisError, ResponseError

from errors import GroupInitializationError

logger = logging.getLogger(__name__)

# Position for a new group: only entries appended after the group exists
NEW_MESSAGES_ONLY = "$"


async def ensure_consumer_group(redis: Redis, stream: str, group: str, start_id: str = NEW_MESSAGES_ONLY) -> bool:
    """
    Ensure that the stream exists and that the consumer group exists on it.

    This function is idempotent: a group that already exists is left untouched.
    Returns True if the group was created by this call, False if it already existed.
    Raises GroupInitializationError on any other failure.
    """

    try:
        await redis.xgroup_create(
            name = stream,
            groupname = group,
            id = start_id,
            mkstream = True
        )
    except ResponseError as e:
        if str(e).startswith("BUSYGROUP"):
            logger.info(
                "Consumer group %s already exists for stream %s, skipping creation.",
                group,
                stream,
                extra={"stream": stream, "group": group},
            )
            return False
        raise GroupInitializationError(stream, group, str(e)) from e
    except RedisError as e:
        raise GroupInitializationError(stream, group, str(e)) from e

    logger.info(
        "Consumer group %s created for stream %s.",
        group,
        stream,
        extra={"stream": stream, "group": group},
    )
    return True


async def ensure_consumer_groups(redis: Redis, streams: list[str], group: str) -> None:
    """Create the group on every stream, stopping at the first failure."""
    for stream in streams:
        await ensure_consumer_group(redis, stream, group)
