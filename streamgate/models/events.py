"""
Stream event models.

A stream is zero or more chunk events followed by exactly one terminal
event (done, error or cancelled).
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field


class ChunkEvent(BaseModel):
    """One fragment of answer text."""

    type: Literal["chunk"] = "chunk"
    text: str = Field(..., description="Fragment text")

    @property
    def is_terminal(self) -> bool:
        return False


class DoneEvent(BaseModel):
    """Normal end of the stream."""

    type: Literal["done"] = "done"

    @property
    def is_terminal(self) -> bool:
        return True


class ErrorEvent(BaseModel):
    """Stream ended by a failure."""

    type: Literal["error"] = "error"
    message: str = Field(..., description="Sanitized error message")

    @property
    def is_terminal(self) -> bool:
        return True


class CancelledEvent(BaseModel):
    """Stream stopped on request."""

    type: Literal["cancelled"] = "cancelled"
    reason: str = Field(default="Cancelled by client", description="Why it stopped")

    @property
    def is_terminal(self) -> bool:
        return True


StreamEvent = Annotated[
    Union[ChunkEvent, DoneEvent, ErrorEvent, CancelledEvent],
    Field(discriminator="type"),
]
