"""
Health check endpoints.

Sandi Metz Principles:
- Single Responsibility: Health check logic only
- Small functions: Each check isolated
- Clear naming: Descriptive endpoint names
"""

from datetime import datetime, timezone
from typing import Dict, Literal, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from streamgate.api.deps import get_provider_registry, get_stream_registry
from streamgate.config import config
from streamgate.llm.registry import ProviderRegistry
from streamgate.models.chat import HealthResponse
from streamgate.streaming.registry import ActiveStreamRegistry

router = APIRouter()


class ComponentHealth(BaseModel):
    """Health status of a component."""

    status: Literal["healthy", "unhealthy", "degraded"] = Field(
        ..., description="Component status"
    )
    message: Optional[str] = Field(None, description="Status message")


class DetailedHealthResponse(BaseModel):
    """Detailed readiness response."""

    status: Literal["healthy", "unhealthy", "degraded"] = Field(
        ..., description="Overall status"
    )
    environment: str = Field(..., description="Environment name")
    components: Dict[str, ComponentHealth] = Field(
        default_factory=dict, description="Component health status"
    )
    active_streams: int = Field(0, ge=0, description="Streams in progress")


def check_provider_health(providers: ProviderRegistry, name: str) -> ComponentHealth:
    """Report whether a provider can be called."""
    if not providers.has_provider(name):
        return ComponentHealth(status="unhealthy", message="Provider not registered")
    if not providers.get(name).is_configured:
        return ComponentHealth(status="degraded", message="API key not configured")
    return ComponentHealth(status="healthy")


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Liveness check endpoint.

    Returns:
        Health status response
    """
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
        service=config.service_name,
    )


@router.get("/ready", response_model=DetailedHealthResponse)
async def readiness_check(
    providers: ProviderRegistry = Depends(get_provider_registry),  # noqa: B008
    streams: ActiveStreamRegistry = Depends(get_stream_registry),  # noqa: B008
) -> DetailedHealthResponse:
    """
    Readiness check endpoint.

    Reports which upstream providers can be called.

    Returns:
        Detailed health status response
    """
    components = {
        name: check_provider_health(providers, name)
        for name in providers.list_providers()
    }

    statuses = [c.status for c in components.values()]
    if statuses and all(s == "healthy" for s in statuses):
        overall_status = "healthy"
    elif not statuses or all(s == "unhealthy" for s in statuses):
        overall_status = "unhealthy"
    else:
        overall_status = "degraded"

    return DetailedHealthResponse(
        status=overall_status,
        environment=config.app_env,
        components=components,
        active_streams=len(streams),
    )
