"""
Chat gateway endpoints.

Sandi Metz Principles:
- Single Responsibility: HTTP request handling
- Small functions: Admission, streaming and completion isolated
- Dependency Injection: Limiter, registries and emitter injected

Every request is validated and admitted by the quota windows before any
upstream call is made.
"""

import uuid
from contextlib import aclosing
from typing import AsyncIterator, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.responses import Response

from streamgate.api.deps import (
    get_provider_registry,
    get_quota_limiter,
    get_stream_emitter,
    get_stream_registry,
)
from streamgate.exceptions import ConfigurationError, QuotaExceeded, ValidationError
from streamgate.gateway.quota import GLOBAL_SCOPE, QuotaLimiter, client_identity
from streamgate.llm.provider import BaseProviderAdapter
from streamgate.llm.registry import ProviderRegistry
from streamgate.models.chat import ChatRequest
from streamgate.models.events import ErrorEvent
from streamgate.models.quota import QuotaDecision
from streamgate.streaming.emitter import StreamEmitter
from streamgate.streaming.registry import ActiveStreamRegistry
from streamgate.streaming.sse import encode_event
from streamgate.utils.logger import get_logger, log_quota_denied

router = APIRouter()
logger = get_logger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
}


class ChatGateway:
    """
    Drives one chat request from admission to response.

    Selects the adapter by provider name or model family; never by
    branching on provider specifics.
    """

    def __init__(
        self,
        limiter: QuotaLimiter,
        providers: ProviderRegistry,
        streams: ActiveStreamRegistry,
        emitter: StreamEmitter,
    ):
        self._limiter = limiter
        self._providers = providers
        self._streams = streams
        self._emitter = emitter

    async def handle(
        self, request: Request, payload: ChatRequest, provider_name: Optional[str] = None
    ) -> Response:
        """
        Validate, admit and answer a chat request.

        Args:
            request: HTTP request (used for the client identity)
            payload: Chat request body
            provider_name: Provider fixed by the route, or None to resolve
                it from the model family

        Returns:
            Event stream or JSON response

        Raises:
            ValidationError: If model or prompt is missing or unsupported
            QuotaExceeded: If a quota window denies the request
            ConfigurationError: If the provider has no API key
            UpstreamError: If a non-streaming upstream call fails
        """
        payload.validate_required()
        if provider_name:
            adapter = self._providers.get(provider_name)
        else:
            adapter = self._providers.for_model(payload.model)
        name = adapter.get_name()
        decision = self._admit(client_identity(request), name)

        if not adapter.is_configured:
            raise ConfigurationError(f"{name.capitalize()} API key not configured")

        if payload.stream:
            return self._stream(adapter, payload, decision)
        completion = await adapter.complete(payload)
        return JSONResponse(completion.to_payload(), headers=decision.headers())

    def _admit(self, identity: str, provider_name: str) -> QuotaDecision:
        """
        Check the global window, then the provider's window.

        Args:
            identity: Client identity key
            provider_name: Provider scope

        Returns:
            The provider scope's decision

        Raises:
            QuotaExceeded: If either window denies the request
        """
        decision = None
        for scope in (GLOBAL_SCOPE, provider_name):
            decision = self._limiter.check(identity, scope)
            if not decision.allowed:
                log_quota_denied(scope, identity, decision.retry_after)
                raise QuotaExceeded(scope, decision.retry_after, decision.limit)
        return decision

    def _stream(
        self,
        adapter: BaseProviderAdapter,
        payload: ChatRequest,
        decision: QuotaDecision,
    ) -> StreamingResponse:
        """
        Build the event stream response.

        The stream is registered only once the body is iterated, so a
        response that is never sent leaves nothing behind.

        Raises:
            ValidationError: If the requested stream id is already in use
        """
        stream_id = payload.stream_id or uuid.uuid4().hex
        if stream_id in self._streams:
            raise ValidationError(f"Stream id already in use: {stream_id}")
        headers = {**SSE_HEADERS, **decision.headers(), "X-Stream-ID": stream_id}
        return StreamingResponse(
            self._event_records(adapter, payload, stream_id),
            media_type="text/event-stream",
            headers=headers,
        )

    async def _event_records(
        self,
        adapter: BaseProviderAdapter,
        payload: ChatRequest,
        stream_id: str,
    ) -> AsyncIterator[str]:
        """
        Serialize the emitter's events as SSE records.

        Args:
            adapter: Selected adapter
            payload: Chat request
            stream_id: Id to register the stream under

        Yields:
            Framed records in arrival order
        """
        try:
            _, token = self._streams.open(stream_id)
        except ValidationError as e:
            yield encode_event(ErrorEvent(message=str(e)), payload.model, adapter.get_name())
            return

        logger.info(
            "Stream opened",
            stream_id=stream_id,
            provider=adapter.get_name(),
            model=payload.model,
        )
        try:
            events = self._emitter.emit(adapter.invoke(payload), token)
            async with aclosing(events):
                async for event in events:
                    yield encode_event(event, payload.model, adapter.get_name())
        finally:
            self._streams.close(stream_id)
            logger.info("Stream closed", stream_id=stream_id)


def get_chat_gateway(
    limiter: QuotaLimiter = Depends(get_quota_limiter),  # noqa: B008
    providers: ProviderRegistry = Depends(get_provider_registry),  # noqa: B008
    streams: ActiveStreamRegistry = Depends(get_stream_registry),  # noqa: B008
    emitter: StreamEmitter = Depends(get_stream_emitter),  # noqa: B008
) -> ChatGateway:
    """
    Get chat gateway with dependencies.

    Returns:
        Chat gateway instance
    """
    return ChatGateway(limiter, providers, streams, emitter)


@router.post("/gemini")
async def chat_gemini(
    request: Request,
    payload: ChatRequest,
    gateway: ChatGateway = Depends(get_chat_gateway),  # noqa: B008
) -> Response:
    """Answer a prompt with a Gemini model."""
    return await gateway.handle(request, payload, "gemini")


@router.post("/perplexity")
async def chat_perplexity(
    request: Request,
    payload: ChatRequest,
    gateway: ChatGateway = Depends(get_chat_gateway),  # noqa: B008
) -> Response:
    """Answer a prompt with a Perplexity model."""
    return await gateway.handle(request, payload, "perplexity")


@router.post("/chat")
async def chat(
    request: Request,
    payload: ChatRequest,
    gateway: ChatGateway = Depends(get_chat_gateway),  # noqa: B008
) -> Response:
    """
    Answer a prompt with the provider serving the model's family.

    Args:
        request: HTTP request
        payload: Chat request
        gateway: Chat gateway (injected)

    Returns:
        Event stream when ``stream`` is true, JSON otherwise
    """
    return await gateway.handle(request, payload)
