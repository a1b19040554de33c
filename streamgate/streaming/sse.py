"""
Server-sent event framing.

Reads newline-delimited ``data: ...`` records and writes the gateway's own
records. Used by the Perplexity adapter (reading upstream), the chat route
(writing) and the client transport (reading the gateway).
"""

import json
from typing import Any, AsyncIterator, Dict, Optional

from streamgate.models.events import (
    CancelledEvent,
    ChunkEvent,
    DoneEvent,
    ErrorEvent,
    StreamEvent,
)
from streamgate.utils.logger import get_logger

logger = get_logger(__name__)

DATA_FIELD = "data:"
DONE_SENTINEL = "[DONE]"


def parse_data_line(line: str) -> Optional[str]:
    """
    Extract the payload of a data record.

    Args:
        line: One line of the stream (without the newline)

    Returns:
        Payload text, or None for blank, comment or non-data lines
    """
    line = line.rstrip("\r")
    if not line.startswith(DATA_FIELD):
        return None
    payload = line[len(DATA_FIELD):]
    if payload.startswith(" "):
        payload = payload[1:]
    return payload


async def iter_data_payloads(lines: AsyncIterator[str]) -> AsyncIterator[str]:
    """
    Yield data payloads until the end sentinel.

    Args:
        lines: Async iterator over stream lines

    Yields:
        Payload text of each data record
    """
    async for line in lines:
        payload = parse_data_line(line)
        if payload is None:
            continue
        if payload.strip() == DONE_SENTINEL:
            return
        yield payload


def decode_json_payload(payload: str) -> Optional[Dict[str, Any]]:
    """
    Parse a payload as a JSON object.

    Malformed records are dropped: the caller skips them and keeps reading.

    Args:
        payload: Payload text

    Returns:
        Parsed object, or None if the payload is not a JSON object
    """
    try:
        parsed = json.loads(payload)
    except json.JSONDecodeError:
        logger.debug("Skipping malformed stream record", payload=payload[:100])
        return None
    if not isinstance(parsed, dict):
        logger.debug("Skipping non-object stream record", payload=payload[:100])
        return None
    return parsed


def format_record(payload: Any) -> str:
    """
    Frame one outbound record.

    Args:
        payload: JSON-serializable object, or a raw string such as [DONE]

    Returns:
        ``data: ...`` record terminated by a blank line
    """
    if not isinstance(payload, str):
        payload = json.dumps(payload, ensure_ascii=False)
    return f"{DATA_FIELD} {payload}\n\n"


def encode_event(event: StreamEvent, model: str, provider: str) -> str:
    """
    Serialize a stream event as a gateway record.

    Args:
        event: Event to serialize
        model: Model that produced the stream
        provider: Provider that produced the stream

    Returns:
        Framed record
    """
    if isinstance(event, ChunkEvent):
        return format_record({"content": event.text, "model": model, "provider": provider})
    if isinstance(event, ErrorEvent):
        return format_record({"error": event.message})
    if isinstance(event, CancelledEvent):
        return format_record({"cancelled": event.reason})
    return format_record(DONE_SENTINEL)


def decode_event(payload: str) -> Optional[StreamEvent]:
    """
    Parse a gateway record payload back into a stream event.

    Args:
        payload: Payload text of one data record

    Returns:
        Stream event, or None for records that carry none
    """
    if payload.strip() == DONE_SENTINEL:
        return DoneEvent()
    parsed = decode_json_payload(payload)
    if parsed is None:
        return None
    if isinstance(parsed.get("content"), str):
        return ChunkEvent(text=parsed["content"])
    if isinstance(parsed.get("error"), str):
        return ErrorEvent(message=parsed["error"])
    if isinstance(parsed.get("cancelled"), str):
        return CancelledEvent(reason=parsed["cancelled"])
    return None
