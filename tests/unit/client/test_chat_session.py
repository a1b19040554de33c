"""
Tests for chat session and conversation history.
"""

import asyncio
import json

import pytest

from streamgate.client.consumer import StreamConsumer, StreamState
from streamgate.client.history import ConversationStore
from streamgate.client.session import ChatSession
from streamgate.exceptions import StreamBusyError, ValidationError
from streamgate.models.events import ChunkEvent, DoneEvent, ErrorEvent


class TestConversationStore:
    """Test bounded history."""

    def test_keeps_latest_messages(self) -> None:
        """Test oldest messages drop beyond the limit."""
        store = ConversationStore()
        for index in range(25):
            store.append("user", f"m{index}")

        messages = store.snapshot()

        assert len(store) == 20
        assert messages[0].content == "m5"
        assert messages[-1].content == "m24"

    def test_snapshot_is_a_copy(self) -> None:
        store = ConversationStore(max_messages=2)
        snapshot = store.snapshot()
        store.append("assistant", "hi")

        assert snapshot == []

    def test_clear(self) -> None:
        store = ConversationStore()
        store.append("user", "hi")

        store.clear()

        assert len(store) == 0

    def test_invalid_limit(self) -> None:
        with pytest.raises(ValueError):
            ConversationStore(max_messages=0)


class TestChatSession:
    """Test session orchestration."""

    def _session(self, transport) -> ChatSession:
        return ChatSession(StreamConsumer(transport))

    @pytest.mark.asyncio
    async def test_records_prompt_and_answer(self, fake_client_class) -> None:
        """Test both sides of the exchange are kept."""
        session = self._session(
            fake_client_class([ChunkEvent(text="Paris"), DoneEvent()])
        )

        state = await session.submit_prompt_and_stream("  Capital of France?  ", "sonar")

        history = session.get_conversation_history()
        assert state is StreamState.COMPLETED
        assert [(m.role, m.content) for m in history] == [
            ("user", "Capital of France?"),
            ("assistant", "Paris"),
        ]

    @pytest.mark.asyncio
    async def test_failed_answer_not_recorded(self, fake_client_class) -> None:
        """Test only completed answers enter the history."""
        session = self._session(fake_client_class([ErrorEvent(message="Boom")]))

        await session.submit_prompt_and_stream("Hi", "sonar")

        assert [m.role for m in session.get_conversation_history()] == ["user"]

    @pytest.mark.asyncio
    async def test_blank_prompt_rejected(self, fake_client_class) -> None:
        session = self._session(fake_client_class())

        with pytest.raises(ValidationError):
            await session.submit_prompt_and_stream("   ", "sonar")

    @pytest.mark.asyncio
    async def test_busy_session_rejects_prompt(self, fake_client_class) -> None:
        """Test a rejected prompt is not recorded."""
        session = self._session(fake_client_class(block=True))
        task = asyncio.ensure_future(session.submit_prompt_and_stream("first", "sonar"))
        await asyncio.sleep(0.01)

        with pytest.raises(StreamBusyError):
            await session.submit_prompt_and_stream("second", "sonar")

        assert session.cancel_active_stream() is True
        assert await asyncio.wait_for(task, timeout=2) is StreamState.CANCELLED
        assert [m.content for m in session.get_conversation_history()] == ["first"]

    @pytest.mark.asyncio
    async def test_display_text_is_reconstructed(self, fake_client_class) -> None:
        """Test display text renders structured answers."""
        raw = json.dumps({"summary": "S", "details": "D", "key_points": ["A"]})
        session = self._session(fake_client_class([ChunkEvent(text=raw), DoneEvent()]))

        await session.submit_prompt_and_stream("Hi", "sonar")

        assert session.display_text() == "## S\n\nD\n\n### Key Points\n\n- A"

    @pytest.mark.asyncio
    async def test_clear_conversation(self, fake_client_class) -> None:
        session = self._session(fake_client_class([DoneEvent()]))
        await session.submit_prompt_and_stream("Hi", "sonar")

        session.clear_conversation()

        assert session.get_conversation_history() == []
