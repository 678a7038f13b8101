import redis.asyncio as aioredis

# Stream values are binary: undecodable bytes decode to \xNN escapes
ENCODING_ERRORS = "backslashreplace"


def create_redis_client(redis_url: str) -> aioredis.Redis:
    """
    Create the asyncio Redis client used for group setup, claims and acknowledgements.
    Raises ValueError if the URL cannot be parsed.
    """

    return aioredis.from_url(
        redis_url,
        decode_responses=True,
        encoding_errors=ENCODING_ERRORS
    )
