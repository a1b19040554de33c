"""
API Middleware module.
"""

from streamgate.api.middleware.logging import (
    LoggingConfig,
    RequestLoggingMiddleware,
    default_logging_config,
)

__all__ = [
    "LoggingConfig",
    "RequestLoggingMiddleware",
    "default_logging_config",
]
