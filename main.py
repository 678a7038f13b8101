# main.py
import asyncio
import contextlib
import logging
import signal
import sys
from collections.abc import Mapping

from botocore.exceptions import BotoCoreError

from config import load_settings
from errors import ConfigurationError, GroupInitializationError
from lambda_client import LambdaInvoker, create_lambda_client
from redis_client import create_redis_client
from runtime.dispatcher import Dispatcher, Invoker
from runtime.groups import ensure_consumer_groups
from schemas.core import BridgeSettings
from utils.log_setup import setup_logging

logger = logging.getLogger(__name__)


async def serve(settings: BridgeSettings, redis, invoker: Invoker) -> int:
    """
    Ensure every consumer group exists, then dispatch until SIGINT/SIGTERM.
    Returns the process exit code.
    """

    try:
        await ensure_consumer_groups(redis, settings.streams, settings.consumer_group)
    except GroupInitializationError as e:
        logger.critical(
            "Error creating consumer group: %s",
            e,
            extra={"stream": e.stream, "group": e.group, "error_message": e.reason},
        )
        return 1

    dispatcher = Dispatcher(
        redis=redis,
        invoker=invoker,
        streams=settings.streams,
        group=settings.consumer_group,
        consumer_name=settings.consumer_name,
        batch_size=settings.batch_size,
        block_ms=settings.block_ms,
        retry_policy=settings.retry_policy
    )

    task = asyncio.create_task(dispatcher.run())

    def shutdown() -> None:
        logger.info("Shutdown requested, unacknowledged messages stay pending")
        dispatcher.stop()
        # Interrupts a read that is blocked waiting for data
        task.cancel()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, shutdown)

    try:
        await task
    except asyncio.CancelledError:
        # Only a requested shutdown ends cleanly; cancelling serve() itself propagates
        if not dispatcher.stopping:
            raise
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError):
                loop.remove_signal_handler(sig)

    return 0


async def main(environ: Mapping[str, str] | None = None) -> int:
    setup_logging()

    try:
        settings = load_settings(environ)
    except ConfigurationError as e:
        logger.critical("%s", e)
        return 1

    setup_logging(settings.log_level, settings.log_format)

    try:
        redis = create_redis_client(settings.redis_url)
    except ValueError as e:
        logger.critical("Failed to parse Redis URL: %s", e)
        return 1

    try:
        try:
            lambda_client = create_lambda_client(
                settings.aws_region,
                read_timeout=settings.lambda_read_timeout_seconds,
                max_attempts=settings.lambda_max_attempts
            )
            invoker = LambdaInvoker(lambda_client, settings.lambda_name)
        except BotoCoreError as e:
            logger.critical("Failed to create Lambda client: %s", e)
            return 1

        return await serve(settings, redis, invoker)
    finally:
        await redis.aclose()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
