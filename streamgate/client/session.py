"""
Chat session facade for presentation layers.

Sandi Metz Principles:
- Single Responsibility: Tie a consumer to its conversation history
- Composition: Delegates streaming and storage to collaborators
"""

from typing import List, Optional

from streamgate.client.consumer import StreamConsumer, StreamState
from streamgate.client.history import ConversationStore
from streamgate.client.reconstruct import reconstruct
from streamgate.exceptions import StreamBusyError, ValidationError
from streamgate.models.conversation import ConversationMessage
from streamgate.streaming.emitter import DEFAULT_CANCEL_REASON


class ChatSession:
    """One user's chat: a stream consumer plus its history."""

    def __init__(
        self,
        consumer: StreamConsumer,
        store: Optional[ConversationStore] = None,
    ):
        self._consumer = consumer
        self._store = store or ConversationStore()

    @property
    def consumer(self) -> StreamConsumer:
        return self._consumer

    def get_conversation_history(self) -> List[ConversationMessage]:
        """Get the conversation, oldest message first."""
        return self._store.snapshot()

    def clear_conversation(self) -> None:
        self._store.clear()

    async def submit_prompt_and_stream(self, prompt: str, model: str) -> StreamState:
        """
        Record the prompt, stream the answer and record it on completion.

        Args:
            prompt: User prompt
            model: Model identifier

        Returns:
            Terminal state of the stream

        Raises:
            ValidationError: If the prompt is blank
            StreamBusyError: If a stream is already running
        """
        prompt = prompt.strip()
        if not prompt:
            raise ValidationError("Prompt must not be empty")
        if self._consumer.is_loading:
            raise StreamBusyError("A stream is already in progress")

        self._store.append("user", prompt)
        state = await self._consumer.submit(prompt, model)
        if state is StreamState.COMPLETED:
            self._store.append("assistant", self._consumer.buffer)
        return state

    def cancel_active_stream(self, reason: str = DEFAULT_CANCEL_REASON) -> bool:
        """Stop the running stream, if any."""
        return self._consumer.cancel(reason)

    def display_text(self) -> str:
        """Current answer, reconstructed for display."""
        return reconstruct(self._consumer.buffer)
