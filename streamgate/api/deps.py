"""
API dependency injection.

Sandi Metz Principles:
- Single Responsibility: Dependency lookup and injection
- Dependency Inversion: Routes receive collaborators, never build them

Shared collaborators live on ``app.state.app_state`` and are created once
per application by ``create_application``; nothing here is a module global.
"""

from fastapi import Request

from streamgate.gateway.quota import QuotaLimiter
from streamgate.llm.registry import ProviderRegistry
from streamgate.streaming.emitter import StreamEmitter
from streamgate.streaming.registry import ActiveStreamRegistry


def _app_state(request: Request):
    return request.app.state.app_state


def get_quota_limiter(request: Request) -> QuotaLimiter:
    """
    Get the application's quota limiter.

    Args:
        request: FastAPI request

    Returns:
        Shared quota limiter
    """
    return _app_state(request).quota_limiter


def get_provider_registry(request: Request) -> ProviderRegistry:
    """
    Get the application's provider registry.

    Args:
        request: FastAPI request

    Returns:
        Provider registry
    """
    return _app_state(request).provider_registry


def get_stream_registry(request: Request) -> ActiveStreamRegistry:
    """
    Get the registry of streams in progress.

    Args:
        request: FastAPI request

    Returns:
        Active stream registry
    """
    return _app_state(request).stream_registry


def get_stream_emitter(request: Request) -> StreamEmitter:
    """Get the stream emitter."""
    return _app_state(request).stream_emitter
