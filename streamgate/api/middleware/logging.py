"""
API Request Logging Middleware.

Logs every request with its timing and status, and tags the response
with a request id.

Sandi Metz Principles:
- Single Responsibility: Request/response logging
- Non-intrusive: Never reads or rewrites bodies, so event streams pass
  through unbuffered
- Configurable: Excluded paths and slow threshold
"""

import time
import uuid
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from streamgate.utils.logger import log_request, log_response, get_logger

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


@dataclass
class LoggingConfig:
    """Logging configuration."""

    enabled: bool = True
    log_headers: bool = False
    excluded_paths: List[str] = field(default_factory=lambda: ["/health", "/ready"])
    slow_request_threshold_ms: float = 1000.0


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware logging request start, completion and failures.

    For event streams the reported duration covers the time until the
    response headers are sent, not the whole stream.
    """

    def __init__(self, app, config: Optional[LoggingConfig] = None):
        """
        Initialize middleware.

        Args:
            app: ASGI application
            config: Logging configuration
        """
        super().__init__(app)
        self._config = config or LoggingConfig()

    def _should_log(self, path: str) -> bool:
        if not self._config.enabled:
            return False
        return path not in self._config.excluded_paths

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """
        Process request with logging.

        Args:
            request: Incoming request
            call_next: Next middleware/handler

        Returns:
            Response
        """
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]

        if not self._should_log(request.url.path):
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            return response

        start_time = time.perf_counter()
        extra = {"headers": dict(request.headers)} if self._config.log_headers else {}
        log_request(
            request.method,
            request.url.path,
            request_id=request_id,
            client=request.client.host if request.client else "unknown",
            user_agent=request.headers.get("User-Agent", "unknown")[:100],
            **extra,
        )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request failed",
                request_id=request_id,
                duration_ms=self._elapsed_ms(start_time),
                error=str(e),
            )
            raise

        duration_ms = self._elapsed_ms(start_time)
        if duration_ms > self._config.slow_request_threshold_ms:
            logger.warning(
                "Slow request detected",
                request_id=request_id,
                path=request.url.path,
                duration_ms=duration_ms,
            )
        log_response(response.status_code, duration_ms, request_id=request_id)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    @staticmethod
    def _elapsed_ms(start_time: float) -> float:
        return round((time.perf_counter() - start_time) * 1000, 2)


default_logging_config = LoggingConfig()
