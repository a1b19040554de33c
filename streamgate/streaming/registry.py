"""
Registry of streams in progress.

Lets an explicit stop request from a client reach the emitter that is
driving the stream it names.
"""

import threading
import uuid
from typing import Dict, List, Optional, Tuple

from streamgate.exceptions import ValidationError
from streamgate.streaming.emitter import DEFAULT_CANCEL_REASON, CancellationToken
from streamgate.utils.logger import get_logger

logger = get_logger(__name__)


class ActiveStreamRegistry:
    """Maps stream ids to their cancellation tokens."""

    def __init__(self) -> None:
        self._tokens: Dict[str, CancellationToken] = {}
        self._lock = threading.Lock()

    def open(self, stream_id: Optional[str] = None) -> Tuple[str, CancellationToken]:
        """
        Register a new stream.

        Args:
            stream_id: Client-chosen id, or None to generate one

        Returns:
            Tuple of (stream_id, token)

        Raises:
            ValidationError: If the id is already in use
        """
        stream_id = stream_id or uuid.uuid4().hex
        token = CancellationToken()
        with self._lock:
            if stream_id in self._tokens:
                raise ValidationError(f"Stream id already in use: {stream_id}")
            self._tokens[stream_id] = token
        return stream_id, token

    def cancel(self, stream_id: str, reason: str = DEFAULT_CANCEL_REASON) -> bool:
        """
        Cancel a registered stream.

        Args:
            stream_id: Stream to cancel
            reason: Why it is stopped

        Returns:
            True if a running stream was cancelled by this call
        """
        with self._lock:
            token = self._tokens.get(stream_id)
        if token is None:
            return False
        cancelled = token.cancel(reason)
        if cancelled:
            logger.info("Stream cancel requested", stream_id=stream_id, reason=reason)
        return cancelled

    def close(self, stream_id: str) -> None:
        """Forget a finished stream."""
        with self._lock:
            self._tokens.pop(stream_id, None)

    def active_ids(self) -> List[str]:
        """Get ids of streams in progress."""
        with self._lock:
            return list(self._tokens.keys())

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)

    def __contains__(self, stream_id: str) -> bool:
        with self._lock:
            return stream_id in self._tokens
