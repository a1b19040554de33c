"""
Client-side stream consumer.

Sandi Metz Principles:
- Single Responsibility: Accumulate one stream at a time into a buffer
- Dependency Injection: Transport and signal bus injected
- Tell, Don't Ask: Listeners are told through signals

State machine:

    IDLE -> STREAMING -> COMPLETED | ERRORED | CANCELLED -> IDLE (reset)

A local cancel is final: events that arrive afterwards are discarded.
"""

import asyncio
import uuid
from contextlib import aclosing
from enum import Enum
from typing import Callable, List, Optional, Set

from streamgate.client.signals import (
    CHUNK_RECEIVED,
    STREAM_CANCELLED,
    STREAM_DONE,
    STREAM_ERROR,
    SignalBus,
)
from streamgate.client.transport import GatewayClient
from streamgate.exceptions import StreamBusyError
from streamgate.models.events import (
    CancelledEvent,
    ChunkEvent,
    DoneEvent,
    ErrorEvent,
    StreamEvent,
)
from streamgate.streaming.emitter import DEFAULT_CANCEL_REASON
from streamgate.utils.logger import get_logger

logger = get_logger(__name__)


class StreamState(str, Enum):
    """Lifecycle of a consumer."""

    IDLE = "idle"
    STREAMING = "streaming"
    COMPLETED = "completed"
    ERRORED = "errored"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (StreamState.COMPLETED, StreamState.ERRORED, StreamState.CANCELLED)


class StreamConsumer:
    """
    Drives one gateway stream and exposes its progress.

    Only one stream runs at a time; a submit while streaming is rejected.
    """

    def __init__(
        self,
        transport: GatewayClient,
        signals: Optional[SignalBus] = None,
        on_done: Optional[Callable[[], None]] = None,
    ):
        """
        Initialize consumer.

        Args:
            transport: Gateway client producing stream events
            signals: Signal bus (a private one if None)
            on_done: Called after a stream completes normally
        """
        self._transport = transport
        self._signals = signals or SignalBus()
        self._on_done = on_done
        self._state = StreamState.IDLE
        self._chunks: List[str] = []
        self._error: Optional[str] = None
        self._stream_id: Optional[str] = None
        self._pump_task: Optional[asyncio.Task] = None
        self._stop_tasks: Set[asyncio.Task] = set()

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def signals(self) -> SignalBus:
        return self._signals

    @property
    def buffer(self) -> str:
        """Text received so far."""
        return "".join(self._chunks)

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def is_loading(self) -> bool:
        return self._state is StreamState.STREAMING

    @property
    def stream_id(self) -> Optional[str]:
        return self._stream_id

    async def submit(self, prompt: str, model: str) -> StreamState:
        """
        Stream a prompt until a terminal state is reached.

        Args:
            prompt: User prompt
            model: Model identifier

        Returns:
            Terminal state of the stream

        Raises:
            StreamBusyError: If a stream is already running
        """
        if self._state is StreamState.STREAMING:
            raise StreamBusyError("A stream is already in progress")

        self._chunks = []
        self._error = None
        self._state = StreamState.STREAMING
        self._stream_id = uuid.uuid4().hex
        task = asyncio.ensure_future(self._pump(prompt, model, self._stream_id))
        self._pump_task = task
        try:
            await asyncio.wait({task})
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            self._pump_task = None

        failure = None if task.cancelled() else task.exception()
        if failure is not None and self._state is StreamState.STREAMING:
            self._fail(f"Stream failed: {failure}")
        elif self._state is StreamState.STREAMING:
            # The transport ended without a terminal event.
            self._complete()
        return self._state

    def cancel(self, reason: str = DEFAULT_CANCEL_REASON) -> bool:
        """
        Stop the running stream.

        Moves to CANCELLED at once, closes the HTTP stream and sends a
        best-effort stop signal to the gateway.

        Args:
            reason: Cancel reason

        Returns:
            True if a stream was running
        """
        if self._state is not StreamState.STREAMING:
            return False

        self._state = StreamState.CANCELLED
        logger.info("Stream cancelled locally", stream_id=self._stream_id, reason=reason)
        self._signals.emit(STREAM_CANCELLED, reason)

        task = self._pump_task
        if task is not None and task is not asyncio.current_task():
            task.cancel()
        self._send_stop_signal(reason)
        return True

    def reset(self) -> bool:
        """
        Return a finished consumer to IDLE.

        Returns:
            False if a stream is still running
        """
        if self._state is StreamState.STREAMING:
            return False
        self._state = StreamState.IDLE
        self._chunks = []
        self._error = None
        return True

    async def wait_for_stop_signals(self) -> None:
        """Wait until pending stop signals have been sent."""
        if self._stop_tasks:
            await asyncio.gather(*self._stop_tasks, return_exceptions=True)

    async def _pump(self, prompt: str, model: str, stream_id: str) -> None:
        events = self._transport.stream(prompt, model, stream_id)
        async with aclosing(events):
            async for event in events:
                if self._state is not StreamState.STREAMING:
                    return
                self._apply(event)
                if event.is_terminal:
                    return

    def _apply(self, event: StreamEvent) -> None:
        if isinstance(event, ChunkEvent):
            self._chunks.append(event.text)
            self._signals.emit(CHUNK_RECEIVED, event.text)
        elif isinstance(event, DoneEvent):
            self._complete()
        elif isinstance(event, ErrorEvent):
            self._fail(event.message)
        elif isinstance(event, CancelledEvent):
            self._state = StreamState.CANCELLED
            self._signals.emit(STREAM_CANCELLED, event.reason)

    def _complete(self) -> None:
        self._state = StreamState.COMPLETED
        self._signals.emit(STREAM_DONE)
        if self._on_done is None:
            return
        try:
            self._on_done()
        except Exception as e:
            logger.error("Done callback failed", stream_id=self._stream_id, error=str(e))

    def _fail(self, message: str) -> None:
        self._state = StreamState.ERRORED
        self._error = message
        logger.warning("Stream failed", stream_id=self._stream_id, error=message)
        self._signals.emit(STREAM_ERROR, message)

    def _send_stop_signal(self, reason: str) -> None:
        if self._stream_id is None:
            return
        try:
            task = asyncio.ensure_future(self._transport.cancel(self._stream_id, reason))
        except RuntimeError:
            logger.debug("No running loop for stop signal", stream_id=self._stream_id)
            return
        self._stop_tasks.add(task)
        task.add_done_callback(self._stop_tasks.discard)
