"""
Models package for StreamGate.

Exports all model classes for easy imports throughout the application.
"""

# Chat models
from streamgate.models.chat import ChatRequest, Completion, HealthResponse, ModelInfo

# Conversation models
from streamgate.models.conversation import ConversationMessage

# Stream event models
from streamgate.models.events import (
    CancelledEvent,
    ChunkEvent,
    DoneEvent,
    ErrorEvent,
    StreamEvent,
)

# Quota models
from streamgate.models.quota import QuotaConfig, QuotaDecision

__all__ = [
    # Chat
    "ChatRequest",
    "Completion",
    "HealthResponse",
    "ModelInfo",
    # Conversation
    "ConversationMessage",
    # Events
    "CancelledEvent",
    "ChunkEvent",
    "DoneEvent",
    "ErrorEvent",
    "StreamEvent",
    # Quota
    "QuotaConfig",
    "QuotaDecision",
]
