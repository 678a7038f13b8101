import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum

from redis.asyncio import Redis

from schemas.core import InvocationResult, RetryPolicy, StreamMessage
from utils.parse_redis import process_unread_messages
from utils.payload import serialize_fields

logger = logging.getLogger(__name__)

# Read cursor for entries never delivered to any consumer of the group
UNDELIVERED = ">"

Invoker = Callable[[bytes], Awaitable[InvocationResult]]


class MessageOutcome(Enum):
    ACKNOWLEDGED = "acknowledged"
    FAILED = "failed"
    ACK_FAILED = "ack_failed"


@dataclass
class DispatchStats:
    """Outcome counts for one dispatched batch."""
    succeeded: int = 0
    failed: int = 0
    ack_failed: int = 0


class Dispatcher:
    """
    At-least-once bridge between a consumer group and a compute target.

    Claims batches of undelivered entries from all configured streams at once, invokes the target
    once per entry and acknowledges an entry only after its invocation succeeded.  Failed entries
    stay in the group's pending list.
    """

    def __init__(
            self,
            redis: Redis,
            invoker: Invoker,
            streams: list[str],
            group: str,
            consumer_name: str,
            batch_size: int = 10,
            block_ms: int = 0,
            retry_policy: RetryPolicy | None = None
        ) -> None:

        self.redis = redis
        self.invoker = invoker
        self.streams: list[str] = list(streams)
        self.group: str = group
        self.consumer_name: str = consumer_name
        self.batch_size: int = batch_size
        self.block_ms: int = block_ms
        self.retry_policy: RetryPolicy = retry_policy if retry_policy else RetryPolicy()

        self._stop_event = asyncio.Event()

    def stop(self) -> None:
        """Ask the loop to exit at the next iteration boundary."""
        self._stop_event.set()

    @property
    def stopping(self) -> bool:
        return self._stop_event.is_set()

    async def claim_batch(self) -> list[StreamMessage]:
        """
        Claim up to batch_size undelivered entries across all streams, in the order the server returns them.
        """

        unread_messages = await self.redis.xreadgroup(
            groupname=self.group,
            consumername=self.consumer_name,
            streams={stream: UNDELIVERED for stream in self.streams},
            count=self.batch_size,
            block=self.block_ms
        )

        return process_unread_messages(unread_messages)

    async def handle_message(self, message: StreamMessage) -> MessageOutcome:
        """
        Invoke the compute target for one message and acknowledge it if the invocation succeeded.

        An acknowledgement is attempted if and only if the invocation succeeded.
        """

        log_extra = {"stream": message.stream, "msg_id": message.msg_id, "group": self.group}
        logger.info("Processing message ID: %s from stream: %s", message.msg_id, message.stream, extra=log_extra)

        try:
            result = await self.invoker(serialize_fields(message.fields))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            result = InvocationResult(error=f"{type(e).__name__}: {e}")

        if not result.ok:
            logger.error(
                "Error invoking function for message %s from stream %s, leaving it pending: %s",
                message.msg_id,
                message.stream,
                result.error or result.function_error or f"status {result.status_code}",
                extra={
                    **log_extra,
                    "status_code": result.status_code,
                    "function_error": result.function_error,
                    "error_message": result.error or result.payload[:200],
                },
            )
            return MessageOutcome.FAILED

        try:
            await self.redis.xack(message.stream, self.group, message.msg_id)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # Processed but still pending: it may be delivered again
            logger.error(
                "Failed to acknowledge message %s in consumer group %s: %s",
                message.msg_id,
                self.group,
                e,
                extra={**log_extra, "error_type": type(e).__name__, "error_message": str(e)[:200]},
            )
            return MessageOutcome.ACK_FAILED

        logger.info(
            "Message ID %s acknowledged in consumer group %s",
            message.msg_id,
            self.group,
            extra=log_extra,
        )
        return MessageOutcome.ACKNOWLEDGED

    async def dispatch_batch(self, batch: list[StreamMessage]) -> DispatchStats:
        """Process a claimed batch strictly in order, one message at a time."""
        stats = DispatchStats()

        for message in batch:
            outcome = await self.handle_message(message)
            if outcome is MessageOutcome.FAILED:
                stats.failed += 1
                continue
            stats.succeeded += 1
            if outcome is MessageOutcome.ACK_FAILED:
                stats.ack_failed += 1

        return stats

    async def run(self) -> None:
        """Main event loop: claim batches and dispatch them until stopped or cancelled."""

        logger.info(
            "Consuming streams %s as %s in group %s",
            ", ".join(self.streams),
            self.consumer_name,
            self.group,
            extra={"streams": self.streams, "group": self.group, "consumer": self.consumer_name},
        )

        failed_reads = 0

        while not self.stopping:
            try:
                batch = await self.claim_batch()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                delay = self.retry_policy.delay_for(failed_reads)
                failed_reads += 1
                logger.warning(
                    "Error reading from Redis stream, retrying in %.2fs: %s",
                    delay,
                    e,
                    extra={
                        "group": self.group,
                        "consumer": self.consumer_name,
                        "attempt": failed_reads,
                        "delay_seconds": round(delay, 2),
                        "error_type": type(e).__name__,
                        "error_message": str(e)[:200],
                    },
                )
                await asyncio.sleep(delay)
                continue

            failed_reads = 0

            if not batch:
                continue

            stats = await self.dispatch_batch(batch)
            logger.debug(
                "Dispatched batch of %d message(s)",
                len(batch),
                extra={
                    "batch_size": len(batch),
                    "succeeded": stats.succeeded,
                    "failed": stats.failed,
                    "ack_failed": stats.ack_failed,
                },
            )

        logger.info("Dispatcher stopped", extra={"group": self.group, "consumer": self.consumer_name})
