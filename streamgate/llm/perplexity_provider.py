"""
Perplexity provider adapter.

Sandi Metz Principles:
- Single Responsibility: Perplexity API interaction
- Small methods: Each method < 10 lines
- Dependency Injection: API key and transport injected

Perplexity streams natively: each ``data:`` record of the upstream
event stream carries one delta of the answer.
"""

from typing import Any, AsyncIterator, Dict, Optional

import httpx

from streamgate.exceptions import TransportError, UpstreamError, UpstreamErrorKind
from streamgate.llm.provider import BaseProviderAdapter, decode_json_body
from streamgate.models.chat import ChatRequest, Completion
from streamgate.streaming.sse import decode_json_payload, iter_data_payloads
from streamgate.utils.logger import get_logger, log_upstream_call

logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://api.perplexity.ai"


class PerplexityAdapter(BaseProviderAdapter):
    """
    Perplexity implementation of the provider adapter.

    Parses the upstream event stream incrementally; malformed records are
    skipped without ending the stream.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout_seconds: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Perplexity adapter.

        Args:
            api_key: Perplexity API key
            base_url: API base URL
            timeout_seconds: Bound on connecting and on each read
            transport: Optional httpx transport
        """
        super().__init__(api_key, timeout_seconds=timeout_seconds, transport=transport)
        self._base_url = base_url.rstrip("/")

    async def invoke(self, request: ChatRequest) -> AsyncIterator[str]:
        """
        Stream the Perplexity answer delta by delta.

        The upstream connection is closed on every exit path, including
        when the caller closes this iterator early.

        Args:
            request: Validated chat request

        Yields:
            Content deltas in arrival order

        Raises:
            UpstreamError: If the call fails or times out
            TransportError: If the open stream breaks down
        """
        started = False
        fragments = 0
        try:
            async with self._new_client() as client:
                async with client.stream(
                    "POST",
                    self._completions_url,
                    json=self._build_body(request, stream=True),
                    headers=self._headers,
                ) as response:
                    if response.is_error:
                        await response.aread()
                        raise self._classify_status(
                            response.status_code, decode_json_body(response)
                        )
                    started = True
                    async for payload in iter_data_payloads(response.aiter_lines()):
                        delta = self._extract_delta(decode_json_payload(payload))
                        if delta:
                            fragments += 1
                            yield delta
        except httpx.TimeoutException as e:
            logger.error("Perplexity call timed out", started=started)
            raise self._map_http_failure(e) from e
        except httpx.HTTPError as e:
            logger.error("Perplexity call failed", error=self._build_error_message(e))
            if started:
                raise TransportError("Streaming error occurred") from e
            raise self._map_http_failure(e) from e

        log_upstream_call(
            provider=self.get_name(),
            model=request.model,
            streaming=True,
            fragments=fragments,
        )

    async def complete(self, request: ChatRequest) -> Completion:
        """
        Get the Perplexity answer in one piece.

        Args:
            request: Validated chat request

        Returns:
            Completion including citations and search results

        Raises:
            UpstreamError: If the call fails or returns no content
        """
        try:
            async with self._new_client() as client:
                response = await client.post(
                    self._completions_url,
                    json=self._build_body(request, stream=False),
                    headers=self._headers,
                )
        except httpx.HTTPError as e:
            logger.error("Perplexity call failed", error=self._build_error_message(e))
            raise self._map_http_failure(e) from e

        if response.is_error:
            logger.error("Perplexity returned error", status=response.status_code)
            raise self._classify_status(response.status_code, decode_json_body(response))

        completion = self._build_completion(request, decode_json_body(response))
        log_upstream_call(
            provider=self.get_name(),
            model=request.model,
            streaming=False,
            chars=len(completion.content),
        )
        return completion

    def get_name(self) -> str:
        """
        Get provider name.

        Returns:
            Provider name
        """
        return "perplexity"

    @property
    def _completions_url(self) -> str:
        return f"{self._base_url}/chat/completions"

    @property
    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    def _build_body(self, request: ChatRequest, stream: bool) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "model": request.model,
            "messages": [{"role": "user", "content": request.prompt}],
            "stream": stream,
        }
        if request.temperature is not None:
            body["temperature"] = request.temperature
        if request.max_tokens is not None:
            body["max_tokens"] = request.max_tokens
        return body

    @staticmethod
    def _extract_delta(record: Optional[Dict[str, Any]]) -> Optional[str]:
        """
        Get the content delta of one stream record.

        Args:
            record: Parsed record, or None if it was malformed

        Returns:
            Delta text, or None if the record has none
        """
        if not record:
            return None
        choices = record.get("choices")
        if not isinstance(choices, list) or not choices:
            return None
        delta = choices[0].get("delta") if isinstance(choices[0], dict) else None
        content = delta.get("content") if isinstance(delta, dict) else None
        return content if isinstance(content, str) else None

    def _build_completion(self, request: ChatRequest, data: Any) -> Completion:
        """
        Build completion from a non-streamed response.

        Args:
            request: Original request
            data: Decoded response body

        Returns:
            Completion

        Raises:
            UpstreamError: If the response has no choices
        """
        choices = data.get("choices") if isinstance(data, dict) else None
        if not choices:
            raise UpstreamError(UpstreamErrorKind.EMPTY_RESPONSE, self.get_name())

        message = choices[0].get("message") or {}
        return Completion(
            content=message.get("content") or "",
            model=request.model,
            provider=self.get_name(),
            citations=data.get("citations") or [],
            search_results=data.get("search_results") or [],
        )
