from typing import Any
from schemas.core import StreamMessage
from typeguard import typechecked


def _text(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="backslashreplace")
    return str(value)


@typechecked
def process_unread_messages(raw: Any) -> list[StreamMessage]:
    """
    This function takes redis messages in the format returned by XREADGROUP and
    converts them into StreamMessage objects, stream by stream, in the order the
    server returned them.

    Raw bytes are decoded per value, so one non UTF-8 field cannot fail the batch.
    Nothing is acknowledged here: a claimed message stays pending until the caller
    acks it explicitly.
    """

    parsed_batch: list[StreamMessage] = []

    if not raw:
        return parsed_batch

    # RESP3 replies arrive as a mapping of stream name to entries
    stream_entries = raw.items() if isinstance(raw, dict) else raw

    for stream_name, entries in stream_entries:
        for msg_id, fields in entries:
            message = StreamMessage(
                stream=_text(stream_name),
                msg_id=_text(msg_id),
                fields={_text(key): _text(value) for key, value in (fields or {}).items()}
            )

            parsed_batch.append(message)

    return parsed_batch
