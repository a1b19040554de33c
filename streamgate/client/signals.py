"""
Named signals for presentation layers.

Sandi Metz Principles:
- Single Responsibility: Fan-out of stream notifications
- Open/Closed: New listeners connect without touching the consumer
"""

import threading
from typing import Any, Callable, Dict, List

from streamgate.utils.logger import get_logger

logger = get_logger(__name__)

CHUNK_RECEIVED = "chunk-received"
STREAM_DONE = "stream-done"
STREAM_ERROR = "stream-error"
STREAM_CANCELLED = "stream-cancelled"

SIGNAL_NAMES = (CHUNK_RECEIVED, STREAM_DONE, STREAM_ERROR, STREAM_CANCELLED)

Handler = Callable[..., Any]


class SignalBus:
    """
    Dispatches named signals to connected handlers.

    A failing handler is logged and skipped; the remaining handlers still
    run and the stream is never interrupted.
    """

    def __init__(self) -> None:
        self._handlers: Dict[str, List[Handler]] = {name: [] for name in SIGNAL_NAMES}
        self._lock = threading.Lock()

    def connect(self, name: str, handler: Handler) -> None:
        """
        Connect handler to a signal.

        Args:
            name: Signal name
            handler: Callable receiving the signal arguments

        Raises:
            ValueError: If the signal name is unknown
        """
        with self._lock:
            self._handlers_for(name).append(handler)

    def disconnect(self, name: str, handler: Handler) -> bool:
        """
        Disconnect handler from a signal.

        Returns:
            True if the handler was connected
        """
        with self._lock:
            handlers = self._handlers_for(name)
            if handler not in handlers:
                return False
            handlers.remove(handler)
            return True

    def emit(self, name: str, *args: Any) -> int:
        """
        Call every handler connected to a signal.

        Args:
            name: Signal name
            *args: Signal arguments

        Returns:
            Number of handlers that ran without raising
        """
        with self._lock:
            handlers = list(self._handlers_for(name))

        delivered = 0
        for handler in handlers:
            try:
                handler(*args)
                delivered += 1
            except Exception as e:
                logger.error("Signal handler failed", signal=name, error=str(e))
        return delivered

    def _handlers_for(self, name: str) -> List[Handler]:
        if name not in self._handlers:
            raise ValueError(f"Unknown signal: {name}")
        return self._handlers[name]
