"""
A stream is an append-only log of events.  Each stream just stores data.

The bridge creates one consumer group per configured stream (the same group name on each) and reads
from all of them at once as a single consumer within that group.

Reading with '>' claims entries that were never delivered to any consumer of the group.  A claimed
entry stays in the group's pending list until it is acknowledged with XACK.

The bridge only acknowledges an entry after the Lambda invocation for it succeeded, so a crash or a
failed invocation leaves the entry pending rather than losing it.
"""
import os
import socket
from collections.abc import Mapping

from dotenv import load_dotenv
from pydantic import ValidationError

from errors import ConfigurationError
from schemas.core import BridgeSettings, RetryPolicy

DEFAULT_BATCH_SIZE = 10
DEFAULT_BLOCK_MS = 0

DEFAULT_READ_RETRY_INITIAL_SECONDS = 0.5
DEFAULT_READ_RETRY_MAX_SECONDS = 30.0
DEFAULT_READ_RETRY_MULTIPLIER = 2.0

DEFAULT_LAMBDA_READ_TIMEOUT_SECONDS = 900
DEFAULT_LAMBDA_MAX_ATTEMPTS = 1

REQUIRED_VARIABLES = ("REDIS_URL", "REDIS_STREAMS", "CONSUMER_GROUP", "LAMBDA_NAME")


def default_consumer_name() -> str:
    """Consumer identity unique to this process instance."""
    return f"{socket.gethostname()}-{os.getpid()}"


def split_streams(raw: str) -> list[str]:
    return [stream.strip() for stream in raw.split(",") if stream.strip()]


def load_settings(environ: Mapping[str, str] | None = None) -> BridgeSettings:
    """
    Build BridgeSettings from environment variables.

    When environ is None the process environment is used, after loading a local .env file.
    Raises ConfigurationError when a required variable is missing or a value is invalid.
    """

    if environ is None:
        load_dotenv()
        environ = os.environ

    missing = [name for name in REQUIRED_VARIABLES if not environ.get(name, "").strip()]
    if missing:
        raise ConfigurationError(f"Missing required environment variables: {', '.join(missing)}")

    streams = split_streams(environ["REDIS_STREAMS"])
    if not streams:
        raise ConfigurationError("REDIS_STREAMS does not name any stream")

    try:
        return BridgeSettings(
            redis_url=environ["REDIS_URL"].strip(),
            streams=streams,
            consumer_group=environ["CONSUMER_GROUP"].strip(),
            lambda_name=environ["LAMBDA_NAME"].strip(),
            consumer_name=environ.get("CONSUMER_NAME", "").strip() or default_consumer_name(),
            batch_size=environ.get("BATCH_SIZE", DEFAULT_BATCH_SIZE),
            block_ms=environ.get("BLOCK_MS", DEFAULT_BLOCK_MS),
            retry_policy=RetryPolicy(
                initial_delay_seconds=environ.get("READ_RETRY_INITIAL_SECONDS", DEFAULT_READ_RETRY_INITIAL_SECONDS),
                max_delay_seconds=environ.get("READ_RETRY_MAX_SECONDS", DEFAULT_READ_RETRY_MAX_SECONDS),
                multiplier=environ.get("READ_RETRY_MULTIPLIER", DEFAULT_READ_RETRY_MULTIPLIER),
            ),
            aws_region=environ.get("AWS_REGION") or None,
            lambda_read_timeout_seconds=environ.get("LAMBDA_READ_TIMEOUT_SECONDS", DEFAULT_LAMBDA_READ_TIMEOUT_SECONDS),
            lambda_max_attempts=environ.get("LAMBDA_MAX_ATTEMPTS", DEFAULT_LAMBDA_MAX_ATTEMPTS),
            log_level=environ.get("LOG_LEVEL", "INFO").upper(),
            log_format=environ.get("LOG_FORMAT", "console").lower(),
        )
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
