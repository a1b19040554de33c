"""
Gemini provider adapter.

Sandi Metz Principles:
- Single Responsibility: Gemini API interaction
- Small methods: Each method < 10 lines
- Dependency Injection: API key, scheduler and transport injected

Gemini is called through the non-streaming generateContent endpoint; the
answer is replayed word by word to give clients the same incremental
delivery as natively streaming providers.
"""

from contextlib import aclosing
from typing import Any, AsyncIterator, Dict, Optional

import httpx

from streamgate.exceptions import UpstreamError, UpstreamErrorKind
from streamgate.llm.provider import BaseProviderAdapter, decode_json_body
from streamgate.llm.scheduler import FragmentScheduler, split_words
from streamgate.models.chat import ChatRequest, Completion
from streamgate.utils.logger import get_logger, log_upstream_call

logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class GeminiAdapter(BaseProviderAdapter):
    """
    Gemini implementation of the provider adapter.

    Makes one bounded blocking call and splits the answer into fragments.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout_seconds: float = 30.0,
        scheduler: Optional[FragmentScheduler] = None,
        default_temperature: float = 0.7,
        default_max_tokens: int = 2048,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Gemini adapter.

        Args:
            api_key: Gemini API key
            base_url: REST base URL
            timeout_seconds: Bound on the upstream call
            scheduler: Fragment scheduler (default: 50ms between words)
            default_temperature: Temperature when the request has none
            default_max_tokens: Output token cap when the request has none
            transport: Optional httpx transport
        """
        super().__init__(api_key, timeout_seconds=timeout_seconds, transport=transport)
        self._base_url = base_url.rstrip("/")
        self._scheduler = scheduler or FragmentScheduler()
        self._default_temperature = default_temperature
        self._default_max_tokens = default_max_tokens

    async def invoke(self, request: ChatRequest) -> AsyncIterator[str]:
        """
        Stream the Gemini answer word by word.

        Args:
            request: Validated chat request

        Yields:
            Word fragments whose concatenation is the full answer

        Raises:
            UpstreamError: If the call fails or returns no content
        """
        text = await self._generate(request)
        log_upstream_call(
            provider=self.get_name(), model=request.model, streaming=True, chars=len(text)
        )
        async with aclosing(self._scheduler.play(split_words(text))) as fragments:
            async for fragment in fragments:
                yield fragment

    async def complete(self, request: ChatRequest) -> Completion:
        """
        Get the Gemini answer in one piece.

        Args:
            request: Validated chat request

        Returns:
            Completion

        Raises:
            UpstreamError: If the call fails or returns no content
        """
        text = await self._generate(request)
        log_upstream_call(
            provider=self.get_name(), model=request.model, streaming=False, chars=len(text)
        )
        return Completion(content=text, model=request.model, provider=self.get_name())

    def get_name(self) -> str:
        """
        Get provider name.

        Returns:
            Provider name
        """
        return "gemini"

    async def _generate(self, request: ChatRequest) -> str:
        """
        Make the generateContent call.

        Args:
            request: Validated chat request

        Returns:
            Answer text
        """
        try:
            async with self._new_client() as client:
                response = await client.post(
                    f"{self._base_url}/models/{request.model}:generateContent",
                    params={"key": self._api_key},
                    json=self._build_body(request),
                )
        except httpx.HTTPError as e:
            logger.error("Gemini call failed", error=self._build_error_message(e))
            raise self._map_http_failure(e) from e

        if response.is_error:
            logger.error("Gemini returned error", status=response.status_code)
            raise self._classify_status(response.status_code, decode_json_body(response))

        return self._extract_text(decode_json_body(response))

    def _build_body(self, request: ChatRequest) -> Dict[str, Any]:
        return {
            "contents": [{"parts": [{"text": request.prompt}]}],
            "generationConfig": {
                "temperature": request.get_temperature(self._default_temperature),
                "maxOutputTokens": request.get_max_tokens(self._default_max_tokens),
            },
        }

    def _extract_text(self, data: Any) -> str:
        """
        Pull the answer text out of a generateContent response.

        Args:
            data: Decoded response body

        Returns:
            Answer text

        Raises:
            UpstreamError: If the response carries no content
        """
        candidates = data.get("candidates") if isinstance(data, dict) else None
        if candidates:
            parts = (candidates[0].get("content") or {}).get("parts") or []
            text = parts[0].get("text") if parts else None
            if text:
                return text
        raise UpstreamError(UpstreamErrorKind.EMPTY_RESPONSE, self.get_name())
