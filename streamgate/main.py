"""
Main FastAPI application.

Following Sandi Metz:
- Single Responsibility: Application setup and configuration
- Small methods: Each lifecycle stage isolated
- Clear naming: Descriptive function names
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from streamgate import __version__
from streamgate.api.middleware import RequestLoggingMiddleware, default_logging_config
from streamgate.api.routes import chat, health, models, streams
from streamgate.config import AppConfig, config
from streamgate.exceptions import (
    ConfigurationError,
    QuotaExceeded,
    UpstreamError,
    UpstreamErrorKind,
    ValidationError,
)
from streamgate.gateway.quota import QuotaLimiter, build_quota_limiter
from streamgate.llm.factory import ProviderFactory
from streamgate.llm.registry import ProviderRegistry
from streamgate.streaming.emitter import StreamEmitter
from streamgate.streaming.registry import ActiveStreamRegistry
from streamgate.utils.logger import get_logger, log_error, setup_logging

setup_logging(config.log_level)
logger = get_logger(__name__)

AVAILABLE_ENDPOINTS = [
    "GET /health",
    "GET /api/models",
    "POST /api/gemini",
    "POST /api/perplexity",
    "POST /api/chat",
    "POST /api/streams/{stream_id}/cancel",
]

UPSTREAM_STATUS = {
    UpstreamErrorKind.RATE_LIMITED: 429,
    UpstreamErrorKind.BAD_REQUEST: 400,
    UpstreamErrorKind.TIMEOUT: 504,
    UpstreamErrorKind.EMPTY_RESPONSE: 500,
    UpstreamErrorKind.UNAVAILABLE: 500,
}


class ApplicationState:
    """
    Holds the collaborators shared by all requests.

    Single Responsibility: Ownership of the limiter and registries.
    """

    def __init__(
        self,
        quota_limiter: QuotaLimiter,
        provider_registry: ProviderRegistry,
        stream_registry: Optional[ActiveStreamRegistry] = None,
        stream_emitter: Optional[StreamEmitter] = None,
    ) -> None:
        self.quota_limiter = quota_limiter
        self.provider_registry = provider_registry
        self.stream_registry = stream_registry or ActiveStreamRegistry()
        self.stream_emitter = stream_emitter or StreamEmitter()

    @classmethod
    def from_config(cls, settings: AppConfig) -> "ApplicationState":
        """Build state from configuration."""
        limiter = build_quota_limiter(
            settings.quota_limits,
            settings.quota_window_seconds,
            enabled=settings.quota_enabled,
        )
        return cls(limiter, ProviderFactory.create_registry(settings))


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    state: ApplicationState = app.state.app_state
    logger.info(
        "Starting StreamGate",
        env=config.app_env,
        providers=state.provider_registry.list_providers(),
    )

    yield

    active = state.stream_registry.active_ids()
    for stream_id in active:
        state.stream_registry.cancel(stream_id, "Server shutting down")
    logger.info("StreamGate shut down", cancelled_streams=len(active))


def _error_response(status_code: int, body: dict, headers: Optional[dict] = None):
    return JSONResponse(status_code=status_code, content=body, headers=headers)


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Render a rejected request body."""
    return _error_response(400, {"error": str(exc)})


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render a malformed request body."""
    details = [
        {"field": ".".join(str(p) for p in err.get("loc", ())), "message": err.get("msg")}
        for err in exc.errors()
    ]
    return _error_response(400, {"error": "Invalid request body", "details": details})


async def quota_exceeded_handler(request: Request, exc: QuotaExceeded) -> JSONResponse:
    """Render a quota denial with retry hints."""
    headers = {
        "Retry-After": str(exc.retry_after),
        "X-RateLimit-Limit": str(exc.limit),
        "X-RateLimit-Remaining": "0",
    }
    return _error_response(
        429, {"error": str(exc), "retry_after": exc.retry_after}, headers
    )


async def configuration_error_handler(
    request: Request, exc: ConfigurationError
) -> JSONResponse:
    """Render a missing provider configuration."""
    log_error(exc, "configuration", path=request.url.path)
    return _error_response(500, {"error": str(exc)})


async def upstream_error_handler(request: Request, exc: UpstreamError) -> JSONResponse:
    """Render an upstream failure with a status mirroring its kind."""
    log_error(exc, "upstream", provider=exc.provider, kind=exc.kind.value)
    body = {"error": str(exc)}
    if exc.detail:
        body["details"] = exc.detail
    return _error_response(UPSTREAM_STATUS[exc.kind], body)


async def not_found_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Render HTTP errors, listing the endpoints on a 404."""
    if exc.status_code == 404:
        return _error_response(
            404,
            {"error": "Endpoint not found", "availableEndpoints": AVAILABLE_ENDPOINTS},
        )
    return _error_response(exc.status_code, {"error": str(exc.detail)})


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render any unexpected failure without leaking internals."""
    log_error(exc, "unhandled", path=request.url.path)
    return _error_response(
        500,
        {"error": "Internal server error", "message": "Something went wrong on our end"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach exception handlers to the application."""
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(QuotaExceeded, quota_exceeded_handler)
    app.add_exception_handler(ConfigurationError, configuration_error_handler)
    app.add_exception_handler(UpstreamError, upstream_error_handler)
    app.add_exception_handler(StarletteHTTPException, not_found_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)


def create_application(
    settings: AppConfig = config,
    state: Optional[ApplicationState] = None,
) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        settings: Application configuration
        state: Prebuilt shared state (built from settings if None)

    Returns:
        Configured FastAPI application instance.
    """
    app = FastAPI(
        title=settings.app_name,
        description="Streaming gateway in front of Gemini and Perplexity.",
        version=__version__,
        debug=settings.debug,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )
    app.state.app_state = state or ApplicationState.from_config(settings)

    # Add middleware (order matters - first added is last executed)

    app.add_middleware(RequestLoggingMiddleware, config=default_logging_config)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[
            "X-Request-ID",
            "X-Stream-ID",
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
            "Retry-After",
        ],
    )

    register_exception_handlers(app)

    app.include_router(health.router, tags=["health"])
    app.include_router(chat.router, prefix="/api", tags=["chat"])
    app.include_router(streams.router, prefix="/api", tags=["streams"])
    app.include_router(models.router, prefix="/api", tags=["models"])

    return app


app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "streamgate.main:app",
        host=config.api_host,
        port=config.api_port,
        reload=config.is_development,
    )
