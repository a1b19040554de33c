"""
In-memory conversation history.
"""

import threading
from collections import deque
from typing import Deque, List, Literal

from streamgate.models.conversation import ConversationMessage

DEFAULT_MAX_MESSAGES = 20


class ConversationStore:
    """
    Bounded, thread-safe list of conversation messages.

    The oldest messages are dropped once the limit is reached.
    """

    def __init__(self, max_messages: int = DEFAULT_MAX_MESSAGES):
        if max_messages < 1:
            raise ValueError("max_messages must be at least 1")
        self._messages: Deque[ConversationMessage] = deque(maxlen=max_messages)
        self._lock = threading.Lock()

    @property
    def max_messages(self) -> int:
        return self._messages.maxlen or 0

    def append(
        self, role: Literal["user", "assistant"], content: str
    ) -> ConversationMessage:
        """
        Record a message.

        Args:
            role: Message author
            content: Message text

        Returns:
            The stored message
        """
        message = ConversationMessage(role=role, content=content)
        with self._lock:
            self._messages.append(message)
        return message

    def snapshot(self) -> List[ConversationMessage]:
        """Get a copy of the messages, oldest first."""
        with self._lock:
            return list(self._messages)

    def clear(self) -> None:
        with self._lock:
            self._messages.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._messages)
