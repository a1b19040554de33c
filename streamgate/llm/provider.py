"""
Upstream provider adapter base class and interface.

Sandi Metz Principles:
- Single Responsibility: Provider abstraction
- Interface Segregation: Minimal provider interface
- Dependency Inversion: Depend on abstraction, not concrete classes
"""

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Optional

import httpx

from streamgate.exceptions import UpstreamError, UpstreamErrorKind
from streamgate.models.chat import ChatRequest, Completion


class BaseProviderAdapter(ABC):
    """
    Abstract base class for upstream provider adapters.

    Every adapter exposes its answer as a lazy sequence of text fragments,
    whether or not the upstream streams natively.
    """

    def __init__(
        self,
        api_key: str,
        timeout_seconds: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize adapter.

        Args:
            api_key: Upstream API key
            timeout_seconds: Bound on each upstream call
            transport: Optional httpx transport (tests inject a mock)
        """
        self._api_key = api_key
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    @abstractmethod
    def invoke(self, request: ChatRequest) -> AsyncIterator[str]:
        """
        Stream the answer as fragments.

        Args:
            request: Validated chat request

        Returns:
            Async iterator of fragments; closing it releases the upstream
            connection

        Raises:
            UpstreamError: If the upstream call fails
            TransportError: If an open upstream stream breaks down
        """

    @abstractmethod
    async def complete(self, request: ChatRequest) -> Completion:
        """
        Get the whole answer in one piece.

        Args:
            request: Validated chat request

        Returns:
            Completion

        Raises:
            UpstreamError: If the upstream call fails
        """

    @abstractmethod
    def get_name(self) -> str:
        """
        Get provider name.

        Returns:
            Provider name (e.g., "gemini", "perplexity")
        """

    @property
    def is_configured(self) -> bool:
        """Check if an API key is available."""
        return bool(self._api_key)

    def _new_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._timeout_seconds, transport=self._transport
        )

    def _classify_status(self, status_code: int, body: Any = None) -> UpstreamError:
        """
        Map an upstream HTTP error status to an upstream error.

        Args:
            status_code: Upstream status code
            body: Decoded error body, if any

        Returns:
            Upstream error (not raised)
        """
        if status_code == 429:
            return UpstreamError(UpstreamErrorKind.RATE_LIMITED, self.get_name())
        detail = self._extract_error_detail(body)
        if status_code == 400:
            return UpstreamError(
                UpstreamErrorKind.BAD_REQUEST, self.get_name(), detail or "Bad request"
            )
        return UpstreamError(
            UpstreamErrorKind.UNAVAILABLE,
            self.get_name(),
            detail or f"Upstream returned status {status_code}",
        )

    def _map_http_failure(self, error: httpx.HTTPError) -> UpstreamError:
        """
        Map an httpx failure raised before any response arrived.

        Args:
            error: httpx exception

        Returns:
            Upstream error (not raised)
        """
        if isinstance(error, httpx.TimeoutException):
            return UpstreamError(
                UpstreamErrorKind.TIMEOUT,
                self.get_name(),
                f"No response within {self._timeout_seconds} seconds",
            )
        return UpstreamError(
            UpstreamErrorKind.UNAVAILABLE,
            self.get_name(),
            f"Could not reach upstream ({type(error).__name__})",
        )

    @staticmethod
    def _extract_error_detail(body: Any) -> Optional[str]:
        if isinstance(body, dict):
            error = body.get("error")
            if isinstance(error, dict) and error.get("message"):
                return str(error["message"])
            if isinstance(error, str):
                return error
        return None

    def _build_error_message(self, error: Exception) -> str:
        """
        Build error message with context.

        Args:
            error: The exception that occurred

        Returns:
            Formatted error message
        """
        return f"{type(error).__name__} - {str(error)}"


def decode_json_body(response: httpx.Response) -> Any:
    """
    Decode an upstream response body if it is JSON.

    Args:
        response: Upstream response whose body has been read

    Returns:
        Parsed body, or None
    """
    try:
        return response.json()
    except ValueError:
        return None
