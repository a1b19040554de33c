"""
Custom exceptions for the application.
"""

from enum import Enum
from typing import Optional


class AppError(Exception):
    """Base exception for application errors."""

    pass


class ValidationError(AppError):
    """Raised when a request fails validation."""

    pass


class ConfigurationError(AppError):
    """Raised when configuration is invalid."""

    pass


class QuotaExceeded(AppError):
    """Raised when a quota window denies a request."""

    def __init__(self, scope: str, retry_after: int, limit: int):
        self.scope = scope
        self.retry_after = retry_after
        self.limit = limit
        super().__init__(
            f"{scope.capitalize()} API rate limit exceeded. "
            "Please try again later."
        )


class UpstreamErrorKind(str, Enum):
    """Classification of upstream provider failures."""

    EMPTY_RESPONSE = "empty_response"
    RATE_LIMITED = "rate_limited"
    BAD_REQUEST = "bad_request"
    TIMEOUT = "timeout"
    UNAVAILABLE = "unavailable"


class UpstreamError(AppError):
    """Raised when an upstream provider call fails."""

    def __init__(
        self,
        kind: UpstreamErrorKind,
        provider: str,
        detail: Optional[str] = None,
    ):
        self.kind = kind
        self.provider = provider
        self.detail = detail
        super().__init__(self._build_message())

    def _build_message(self) -> str:
        name = self.provider.capitalize()
        messages = {
            UpstreamErrorKind.EMPTY_RESPONSE: f"No response from {name} API",
            UpstreamErrorKind.RATE_LIMITED: f"{name} API rate limit exceeded",
            UpstreamErrorKind.BAD_REQUEST: f"Invalid request to {name} API",
            UpstreamErrorKind.TIMEOUT: f"{name} API request timed out",
            UpstreamErrorKind.UNAVAILABLE: f"{name} API request failed",
        }
        return messages[self.kind]


class TransportError(AppError):
    """Raised when an upstream stream breaks down as a whole."""

    pass


class StreamBusyError(AppError):
    """Raised when a consumer is asked to stream while already streaming."""

    pass
