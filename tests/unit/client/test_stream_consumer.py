"""
Tests for the client stream consumer.
"""

import asyncio

import pytest

from streamgate.client.consumer import StreamConsumer, StreamState
from streamgate.client.signals import (
    CHUNK_RECEIVED,
    STREAM_CANCELLED,
    STREAM_DONE,
    STREAM_ERROR,
)
from streamgate.exceptions import StreamBusyError
from streamgate.models.events import CancelledEvent, ChunkEvent, DoneEvent, ErrorEvent


def _chunks(*texts: str) -> list:
    return [ChunkEvent(text=text) for text in texts]


class TestStreamConsumer:
    """Test consumer state machine."""

    @pytest.mark.asyncio
    async def test_completes_and_notifies(self, fake_client_class) -> None:
        """Test chunks accumulate and completion is signalled."""
        transport = fake_client_class(_chunks("Hello ", "world") + [DoneEvent()])
        order = []
        consumer = StreamConsumer(transport, on_done=lambda: order.append("on_done"))
        consumer.signals.connect(CHUNK_RECEIVED, lambda text: order.append(text))
        consumer.signals.connect(STREAM_DONE, lambda: order.append("done"))

        state = await consumer.submit("Hi", "sonar")

        assert state is StreamState.COMPLETED
        assert consumer.buffer == "Hello world"
        assert consumer.is_loading is False
        assert order == ["Hello ", "world", "done", "on_done"]
        assert transport.streams == [("Hi", "sonar", consumer.stream_id)]

    @pytest.mark.asyncio
    async def test_missing_terminal_event_counts_as_done(self, fake_client_class) -> None:
        """Test an ended transport completes the stream."""
        consumer = StreamConsumer(fake_client_class(_chunks("a")))

        assert await consumer.submit("Hi", "sonar") is StreamState.COMPLETED
        assert consumer.buffer == "a"

    @pytest.mark.asyncio
    async def test_error_keeps_partial_buffer(self, fake_client_class) -> None:
        """Test failure after partial output."""
        transport = fake_client_class(_chunks("par", "tial") + [ErrorEvent(message="Boom")])
        consumer = StreamConsumer(transport)
        errors = []
        consumer.signals.connect(STREAM_ERROR, errors.append)

        state = await consumer.submit("Hi", "sonar")

        assert state is StreamState.ERRORED
        assert consumer.buffer == "partial"
        assert consumer.error == "Boom"
        assert errors == ["Boom"]

    @pytest.mark.asyncio
    async def test_cancel_after_two_of_five_chunks(self, fake_client_class) -> None:
        """Test cancel from a chunk handler discards later events."""
        transport = fake_client_class(_chunks("1", "2", "3", "4", "5") + [DoneEvent()])
        consumer = StreamConsumer(transport)
        received, cancelled, done = [], [], []

        def on_chunk(text: str) -> None:
            received.append(text)
            if len(received) == 2:
                consumer.cancel("User stopped")

        consumer.signals.connect(CHUNK_RECEIVED, on_chunk)
        consumer.signals.connect(STREAM_CANCELLED, cancelled.append)
        consumer.signals.connect(STREAM_DONE, lambda: done.append(True))

        state = await consumer.submit("Hi", "sonar")
        await consumer.wait_for_stop_signals()

        assert state is StreamState.CANCELLED
        assert consumer.buffer == "12"
        assert received == ["1", "2"]
        assert cancelled == ["User stopped"]
        assert done == []
        assert transport.closed is True
        assert transport.cancelled == [(consumer.stream_id, "User stopped")]

    @pytest.mark.asyncio
    async def test_cancel_interrupts_blocked_transport(self, fake_client_class) -> None:
        """Test cancel while waiting for the next event."""
        transport = fake_client_class(_chunks("a"), block=True)
        consumer = StreamConsumer(transport)

        task = asyncio.ensure_future(consumer.submit("Hi", "sonar"))
        await asyncio.sleep(0.01)
        assert consumer.is_loading is True

        assert consumer.cancel() is True
        state = await asyncio.wait_for(task, timeout=2)
        await consumer.wait_for_stop_signals()

        assert state is StreamState.CANCELLED
        assert consumer.buffer == "a"
        assert transport.closed is True
        assert transport.cancelled == [(consumer.stream_id, "Cancelled by client")]

    @pytest.mark.asyncio
    async def test_submit_while_streaming_is_rejected(self, fake_client_class) -> None:
        """Test a second submit does not start another stream."""
        transport = fake_client_class(block=True)
        consumer = StreamConsumer(transport)
        task = asyncio.ensure_future(consumer.submit("first", "sonar"))
        await asyncio.sleep(0.01)

        with pytest.raises(StreamBusyError):
            await consumer.submit("second", "sonar")

        consumer.cancel()
        await asyncio.wait_for(task, timeout=2)
        assert len(transport.streams) == 1

    @pytest.mark.asyncio
    async def test_server_cancel_event(self, fake_client_class) -> None:
        """Test a gateway-side cancel ends the stream."""
        transport = fake_client_class(_chunks("a") + [CancelledEvent(reason="Shutdown")])
        consumer = StreamConsumer(transport)
        cancelled = []
        consumer.signals.connect(STREAM_CANCELLED, cancelled.append)

        assert await consumer.submit("Hi", "sonar") is StreamState.CANCELLED
        assert cancelled == ["Shutdown"]

    @pytest.mark.asyncio
    async def test_transport_failure_is_an_error(self) -> None:
        """Test an exception in the transport surfaces as an error state."""

        class ExplodingTransport:
            async def stream(self, prompt, model, stream_id=None):
                yield ChunkEvent(text="a")
                raise RuntimeError("socket gone")

        consumer = StreamConsumer(ExplodingTransport())

        assert await consumer.submit("Hi", "sonar") is StreamState.ERRORED
        assert consumer.error == "Stream failed: socket gone"
        assert consumer.buffer == "a"

    @pytest.mark.parametrize(
        "events,cancel_on_chunk,expected",
        [
            ([DoneEvent()], False, StreamState.COMPLETED),
            ([ChunkEvent(text="a"), ChunkEvent(text="b")], True, StreamState.CANCELLED),
        ],
    )
    @pytest.mark.asyncio
    async def test_cleanup_failure_keeps_terminal_state(
        self, events, cancel_on_chunk: bool, expected: StreamState
    ) -> None:
        """Test a transport failing on close does not turn a finished stream into an error."""

        class FailingCloseTransport:
            async def stream(self, prompt, model, stream_id=None):
                try:
                    for event in events:
                        yield event
                finally:
                    raise RuntimeError("close failed")

            async def cancel(self, stream_id, reason=None):
                return True

        consumer = StreamConsumer(FailingCloseTransport())
        if cancel_on_chunk:
            consumer.signals.connect(CHUNK_RECEIVED, lambda text: consumer.cancel())

        state = await consumer.submit("Hi", "sonar")
        await consumer.wait_for_stop_signals()

        assert state is expected
        assert consumer.error is None

    @pytest.mark.asyncio
    async def test_reset(self, fake_client_class) -> None:
        """Test reset returns a finished consumer to idle."""
        consumer = StreamConsumer(fake_client_class(_chunks("a") + [DoneEvent()]))
        await consumer.submit("Hi", "sonar")

        assert consumer.reset() is True
        assert consumer.state is StreamState.IDLE
        assert consumer.buffer == ""

    @pytest.mark.asyncio
    async def test_new_submit_clears_previous_output(self, fake_client_class) -> None:
        """Test each stream starts with an empty buffer."""
        transport = fake_client_class([ErrorEvent(message="Boom")])
        consumer = StreamConsumer(transport)
        await consumer.submit("Hi", "sonar")

        transport.events = _chunks("ok") + [DoneEvent()]
        await consumer.submit("Hi", "sonar")

        assert consumer.buffer == "ok"
        assert consumer.error is None

    def test_cancel_when_idle(self, fake_client_class) -> None:
        """Test cancel without a stream is a no-op."""
        consumer = StreamConsumer(fake_client_class())

        assert consumer.cancel() is False
        assert consumer.state is StreamState.IDLE
