"""
Fragment-to-event stream emitter.

Sandi Metz Principles:
- Single Responsibility: Turn a fragment sequence into stream events
- Small methods: Pull, abandon and close isolated
- Clear naming: Self-documenting code
"""

import asyncio
from typing import Any, AsyncIterator, Optional

from streamgate.exceptions import TransportError, UpstreamError
from streamgate.models.events import (
    CancelledEvent,
    ChunkEvent,
    DoneEvent,
    ErrorEvent,
    StreamEvent,
)
from streamgate.utils.logger import get_logger, log_error

logger = get_logger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal server error"
DEFAULT_CANCEL_REASON = "Cancelled by client"

_EXHAUSTED = object()


class CancellationToken:
    """
    One-shot cancellation signal for a single stream.

    The first reason given wins; later calls are no-ops.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: Optional[str] = None

    def cancel(self, reason: str = DEFAULT_CANCEL_REASON) -> bool:
        """
        Request cancellation.

        Args:
            reason: Why the stream is stopped

        Returns:
            True if this call cancelled the token
        """
        if self._event.is_set():
            return False
        self._reason = reason
        self._event.set()
        return True

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str:
        return self._reason or DEFAULT_CANCEL_REASON

    async def wait(self) -> None:
        """Block until cancellation is requested."""
        await self._event.wait()


async def _pull(iterator: AsyncIterator[str]) -> Any:
    try:
        return await iterator.__anext__()
    except StopAsyncIteration:
        return _EXHAUSTED


class StreamEmitter:
    """
    Converts an adapter's fragments into the uniform event sequence.

    Emits one chunk event per fragment and exactly one terminal event.
    Every pull races the cancellation token, so a cancel interrupts a
    pending upstream read instead of waiting for the next fragment.
    """

    async def emit(
        self,
        fragments: AsyncIterator[str],
        token: Optional[CancellationToken] = None,
    ) -> AsyncIterator[StreamEvent]:
        """
        Emit stream events for a fragment sequence.

        The fragment source is closed on every exit path.

        Args:
            fragments: Adapter fragment sequence
            token: Cancellation token (a fresh one if None)

        Yields:
            Chunk events followed by one terminal event
        """
        token = token or CancellationToken()
        iterator = fragments.__aiter__()
        waiter = asyncio.ensure_future(token.wait())
        pending: Optional[asyncio.Future] = None
        try:
            while not token.is_cancelled:
                pending = asyncio.ensure_future(_pull(iterator))
                done, _ = await asyncio.wait(
                    {pending, waiter}, return_when=asyncio.FIRST_COMPLETED
                )
                if waiter in done:
                    break

                outcome = self._take_outcome(pending)
                pending = None
                if isinstance(outcome, ErrorEvent):
                    yield outcome
                    return
                if outcome is _EXHAUSTED:
                    if token.is_cancelled:
                        break
                    yield DoneEvent()
                    return
                yield ChunkEvent(text=outcome)

            if pending is not None:
                await self._abandon(pending)
                pending = None
            logger.info("Stream cancelled", reason=token.reason)
            yield CancelledEvent(reason=token.reason)
        finally:
            waiter.cancel()
            if pending is not None:
                pending.cancel()
                await self._abandon(pending)
            await self._close(iterator)

    def _take_outcome(self, pending: asyncio.Future) -> Any:
        """
        Read a finished pull.

        Args:
            pending: Completed pull future

        Returns:
            Fragment, the exhaustion marker, or an ErrorEvent
        """
        try:
            return pending.result()
        except (UpstreamError, TransportError) as e:
            logger.error("Upstream stream failed", error=str(e), detail=getattr(e, "detail", None))
            return ErrorEvent(message=str(e))
        except Exception as e:
            log_error(e, context="stream_emitter")
            return ErrorEvent(message=INTERNAL_ERROR_MESSAGE)

    @staticmethod
    async def _abandon(pending: asyncio.Future) -> None:
        """Cancel an in-flight pull and wait for it to unwind."""
        pending.cancel()
        await asyncio.gather(pending, return_exceptions=True)

    @staticmethod
    async def _close(iterator: AsyncIterator[str]) -> None:
        """Release the fragment source."""
        aclose = getattr(iterator, "aclose", None)
        if aclose is not None:
            await aclose()
