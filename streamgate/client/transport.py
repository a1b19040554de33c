"""
HTTP client for the gateway.

Sandi Metz Principles:
- Single Responsibility: Gateway wire protocol on the client side
- Dependency Injection: Base URL and transport injected

Transport failures are reported as error events, never raised, so the
consumer has a single path for every way a stream can end.
"""

from typing import Any, AsyncIterator, Dict, List, Optional

import httpx

from streamgate.config import config
from streamgate.models.events import DoneEvent, ErrorEvent, StreamEvent
from streamgate.streaming.sse import decode_event, parse_data_line
from streamgate.utils.logger import get_logger

logger = get_logger(__name__)


class GatewayClient:
    """Talks to the gateway's HTTP surface."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout_seconds: float = 60.0,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize client.

        Args:
            base_url: Gateway URL (defaults to the configured gateway_url)
            timeout_seconds: Connect and read timeout
            temperature: Sampling temperature sent with each prompt
            max_tokens: Token limit sent with each prompt
            transport: Optional httpx transport (tests)
        """
        self._base_url = (base_url or config.gateway_url).rstrip("/")
        self._timeout = timeout_seconds
        self._temperature = config.default_temperature if temperature is None else temperature
        self._max_tokens = max_tokens or config.default_max_tokens
        self._transport = transport

    @property
    def base_url(self) -> str:
        return self._base_url

    def _new_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url, timeout=self._timeout, transport=self._transport
        )

    async def stream(
        self, prompt: str, model: str, stream_id: Optional[str] = None
    ) -> AsyncIterator[StreamEvent]:
        """
        Stream a prompt through the gateway.

        Args:
            prompt: User prompt
            model: Model identifier
            stream_id: Id used later to cancel the stream

        Yields:
            Stream events; the last one is always terminal
        """
        body: Dict[str, Any] = {
            "model": model,
            "prompt": prompt,
            "temperature": self._temperature,
            "maxTokens": self._max_tokens,
            "stream": True,
        }
        if stream_id:
            body["streamId"] = stream_id

        try:
            async with self._new_client() as client:
                async with client.stream("POST", "/api/chat", json=body) as response:
                    if response.is_error:
                        text = (await response.aread()).decode("utf-8", "replace")
                        yield ErrorEvent(
                            message=(
                                "Gateway returned error: "
                                f"{response.status_code} - {text}"
                            )
                        )
                        return

                    async for line in response.aiter_lines():
                        payload = parse_data_line(line)
                        if payload is None:
                            continue
                        event = decode_event(payload)
                        if event is None:
                            continue
                        yield event
                        if event.is_terminal:
                            return
        except httpx.HTTPError as e:
            logger.warning("Gateway request failed", error=str(e))
            yield ErrorEvent(message=f"Failed to connect to gateway: {e}")
            return

        # The connection closed without a terminal record.
        yield DoneEvent()

    async def cancel(self, stream_id: str, reason: Optional[str] = None) -> bool:
        """
        Ask the gateway to stop a stream.

        Args:
            stream_id: Stream to stop
            reason: Optional cancel reason

        Returns:
            True if the gateway stopped a running stream
        """
        body = {"reason": reason} if reason else None
        try:
            async with self._new_client() as client:
                response = await client.post(f"/api/streams/{stream_id}/cancel", json=body)
                response.raise_for_status()
                return bool(response.json().get("cancelled"))
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Stop signal failed", stream_id=stream_id, error=str(e))
            return False

    async def list_models(self) -> Dict[str, List[Dict[str, Any]]]:
        """
        Get the gateway's model catalog.

        Raises:
            httpx.HTTPError: If the request fails
        """
        async with self._new_client() as client:
            response = await client.get("/api/models")
            response.raise_for_status()
            return response.json()

    async def health(self) -> Dict[str, Any]:
        """
        Get the gateway's health report.

        Raises:
            httpx.HTTPError: If the request fails
        """
        async with self._new_client() as client:
            response = await client.get("/health")
            response.raise_for_status()
            return response.json()
