"""
Conversation history models.
"""

import time
import uuid
from typing import Literal

from pydantic import BaseModel, Field


class ConversationMessage(BaseModel):
    """One message of the conversation history."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    role: Literal["user", "assistant"] = Field(..., description="Message author")
    content: str = Field(..., description="Message text")
    timestamp: int = Field(
        default_factory=lambda: int(time.time()), description="Unix seconds"
    )
