"""
Stream control endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel, Field

from streamgate.api.deps import get_stream_registry
from streamgate.streaming.emitter import DEFAULT_CANCEL_REASON
from streamgate.streaming.registry import ActiveStreamRegistry

router = APIRouter()


class CancelRequest(BaseModel):
    """Optional body of a cancel request."""

    reason: str = Field(
        default=DEFAULT_CANCEL_REASON, max_length=200, description="Why the stream stops"
    )


class CancelResponse(BaseModel):
    """Result of a cancel request."""

    stream_id: str = Field(..., description="Stream the request named")
    cancelled: bool = Field(..., description="Whether a running stream was stopped")


@router.post("/streams/{stream_id}/cancel", response_model=CancelResponse)
async def cancel_stream(
    stream_id: str,
    body: Optional[CancelRequest] = Body(None),  # noqa: B008
    streams: ActiveStreamRegistry = Depends(get_stream_registry),  # noqa: B008
) -> CancelResponse:
    """
    Stop a stream in progress.

    Unknown or already finished streams are reported with cancelled=false.

    Args:
        stream_id: Stream id from the X-Stream-ID header
        body: Optional cancel reason
        streams: Active stream registry (injected)

    Returns:
        Cancel result
    """
    reason = body.reason if body else DEFAULT_CANCEL_REASON
    return CancelResponse(stream_id=stream_id, cancelled=streams.cancel(stream_id, reason))
