"""
Integration tests for the gateway with real adapters.

Upstream HTTP is simulated with httpx.MockTransport; everything between
the client request and the upstream wire runs for real.
"""

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from streamgate.client.consumer import StreamConsumer, StreamState
from streamgate.client.session import ChatSession
from streamgate.client.transport import GatewayClient
from streamgate.llm.gemini_provider import GeminiAdapter
from streamgate.llm.perplexity_provider import PerplexityAdapter
from streamgate.llm.registry import ProviderRegistry
from streamgate.llm.scheduler import FragmentScheduler

GEMINI_ANSWER = json.dumps(
    {
        "summary": "Paris",
        "details": "Paris has been the capital since 987.",
        "key_points": ["Population 2million", "On the Seine"],
    }
)


def _gemini_handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(
        200, json={"candidates": [{"content": {"parts": [{"text": GEMINI_ANSWER}]}}]}
    )


def _perplexity_handler(request: httpx.Request) -> httpx.Response:
    body = json.loads(request.content)
    if body["model"] == "sonar-limited":
        return httpx.Response(429, json={"error": {"message": "slow down"}})
    if not body["stream"]:
        return httpx.Response(
            200,
            json={
                "choices": [{"message": {"content": "Sunny"}}],
                "citations": ["https://weather.test"],
            },
        )
    records = [
        {"choices": [{"delta": {"content": "Sunny"}}]},
        {"choices": [{"delta": {"content": " and warm"}}]},
    ]
    text = "".join(f"data: {json.dumps(r)}\n\n" for r in records) + "data: [DONE]\n\n"
    return httpx.Response(200, content=text.encode())


def _records(body: str) -> list:
    return [
        chunk[len("data: "):]
        for chunk in body.split("\n\n")
        if chunk.startswith("data: ")
    ]


@pytest.fixture
def upstream_registry() -> ProviderRegistry:
    """Registry of real adapters on mocked upstream wires."""
    registry = ProviderRegistry()
    registry.register(
        GeminiAdapter(
            api_key="test-key",
            scheduler=FragmentScheduler(delay_seconds=0),
            transport=httpx.MockTransport(_gemini_handler),
        )
    )
    registry.register(
        PerplexityAdapter(
            api_key="test-key", transport=httpx.MockTransport(_perplexity_handler)
        )
    )
    return registry


@pytest.fixture
def app(app_factory, upstream_registry, quota_limiter):
    return app_factory(upstream_registry, quota_limiter)


class TestGatewayEndpoints:
    """Test the HTTP surface end to end."""

    def test_perplexity_stream(self, app) -> None:
        """Test native upstream stream is relayed."""
        response = TestClient(app).post(
            "/api/chat", json={"model": "sonar", "prompt": "Weather?", "stream": True}
        )

        records = _records(response.text)
        assert [json.loads(r)["content"] for r in records[:-1]] == ["Sunny", " and warm"]
        assert records[-1] == "[DONE]"

    def test_gemini_simulated_stream(self, app) -> None:
        """Test blocking upstream answer is replayed word by word."""
        response = TestClient(app).post(
            "/api/gemini",
            json={"model": "gemini-1.5-flash", "prompt": "Capital?", "stream": True},
        )

        records = _records(response.text)
        content = "".join(json.loads(r)["content"] for r in records[:-1])
        assert content == GEMINI_ANSWER
        assert len(records) - 1 == len(GEMINI_ANSWER.split(" "))
        assert records[-1] == "[DONE]"

    def test_upstream_rate_limit_in_stream(self, app) -> None:
        """Test upstream 429 becomes an error record."""
        response = TestClient(app).post(
            "/api/perplexity",
            json={"model": "sonar-limited", "prompt": "Hi", "stream": True},
        )

        assert response.status_code == 200
        assert _records(response.text) == [
            json.dumps({"error": "Perplexity API rate limit exceeded"})
        ]

    def test_upstream_rate_limit_without_stream(self, app) -> None:
        response = TestClient(app).post(
            "/api/perplexity", json={"model": "sonar-limited", "prompt": "Hi"}
        )

        assert response.status_code == 429
        assert response.json()["error"] == "Perplexity API rate limit exceeded"

    def test_non_stream_with_citations(self, app) -> None:
        response = TestClient(app).post(
            "/api/perplexity", json={"model": "sonar", "prompt": "Weather?"}
        )

        assert response.json() == {
            "success": True,
            "content": "Sunny",
            "model": "sonar",
            "provider": "perplexity",
            "citations": ["https://weather.test"],
            "searchResults": [],
        }


class TestClientRoundTrip:
    """Test the client stack against the gateway app."""

    @pytest.mark.asyncio
    async def test_session_streams_and_reconstructs(self, app) -> None:
        """Test prompt to rendered answer through the real gateway."""
        client = GatewayClient(
            base_url="http://gateway.test", transport=httpx.ASGITransport(app=app)
        )
        session = ChatSession(StreamConsumer(client))

        state = await session.submit_prompt_and_stream("Capital of France?", "gemini-1.5-flash")

        assert state is StreamState.COMPLETED
        assert session.consumer.buffer == GEMINI_ANSWER
        assert session.display_text() == (
            "## Paris\n\n"
            "Paris has been the capital since 987.\n\n"
            "### Key Points\n\n"
            "- Population 2 million\n"
            "- On the Seine"
        )
        assert [m.role for m in session.get_conversation_history()] == ["user", "assistant"]

    @pytest.mark.asyncio
    async def test_gateway_rejection_surfaces_as_error(self, app) -> None:
        """Test a 400 from the gateway reaches the consumer as an error."""
        client = GatewayClient(
            base_url="http://gateway.test", transport=httpx.ASGITransport(app=app)
        )
        consumer = StreamConsumer(client)

        state = await consumer.submit("Hi", "gpt-4")

        assert state is StreamState.ERRORED
        assert consumer.error.startswith("Gateway returned error: 400 - ")
        assert "Unsupported model: gpt-4" in consumer.error
