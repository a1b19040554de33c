"""
Pytest configuration and fixtures.

Provides common fixtures for testing.
"""

import asyncio
from typing import AsyncIterator, Callable, Iterable, List, Optional

import pytest

from streamgate.config import AppConfig
from streamgate.gateway.quota import QuotaLimiter, build_quota_limiter
from streamgate.llm.provider import BaseProviderAdapter
from streamgate.llm.registry import ProviderRegistry
from streamgate.llm.scheduler import FragmentScheduler
from streamgate.models.chat import ChatRequest, Completion
from streamgate.models.events import StreamEvent


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeAdapter(BaseProviderAdapter):
    """Adapter answering from a fixed fragment list."""

    def __init__(
        self,
        name: str,
        fragments: Iterable[str] = ("Hello ", "world"),
        error: Optional[Exception] = None,
        block: bool = False,
        api_key: str = "test-key",
    ):
        super().__init__(api_key)
        self.name = name
        self.fragments = list(fragments)
        self.error = error
        self.block = block
        self.calls = 0
        self.closed = False
        self.requests: List[ChatRequest] = []

    async def invoke(self, request: ChatRequest) -> AsyncIterator[str]:
        self.calls += 1
        self.requests.append(request)
        try:
            for fragment in self.fragments:
                yield fragment
                await asyncio.sleep(0)
            if self.error is not None:
                raise self.error
            if self.block:
                await asyncio.Event().wait()
        finally:
            self.closed = True

    async def complete(self, request: ChatRequest) -> Completion:
        self.calls += 1
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return Completion(
            content="".join(self.fragments), model=request.model, provider=self.name
        )

    def get_name(self) -> str:
        return self.name


class FakeGatewayClient:
    """Client transport replaying a fixed event list."""

    def __init__(self, events: Iterable[StreamEvent] = (), block: bool = False):
        self.events = list(events)
        self.block = block
        self.closed = False
        self.streams: List[tuple] = []
        self.cancelled: List[tuple] = []

    async def stream(
        self, prompt: str, model: str, stream_id: Optional[str] = None
    ) -> AsyncIterator[StreamEvent]:
        self.streams.append((prompt, model, stream_id))
        try:
            for event in self.events:
                yield event
                await asyncio.sleep(0)
            if self.block:
                await asyncio.Event().wait()
        finally:
            self.closed = True

    async def cancel(self, stream_id: str, reason: Optional[str] = None) -> bool:
        self.cancelled.append((stream_id, reason))
        return True


@pytest.fixture
def test_config() -> AppConfig:
    """
    Create test configuration.

    Returns:
        Test configuration instance
    """
    return AppConfig(
        _env_file=None,
        app_env="development",
        gemini_api_key="test-key",
        perplexity_api_key="test-key",
        stream_chunk_delay_ms=0,
    )


@pytest.fixture
def clock() -> FakeClock:
    """Clock starting at t=1000s."""
    return FakeClock()


@pytest.fixture
def fake_adapter_class():
    """Fake adapter class for building custom adapters."""
    return FakeAdapter


@pytest.fixture
def fake_client_class():
    """Fake gateway client class for building custom transports."""
    return FakeGatewayClient


@pytest.fixture
def gemini_adapter() -> FakeAdapter:
    """Fake Gemini adapter."""
    return FakeAdapter("gemini", fragments=["Hello ", "from ", "Gemini"])


@pytest.fixture
def perplexity_adapter() -> FakeAdapter:
    """Fake Perplexity adapter."""
    return FakeAdapter("perplexity", fragments=["Hello ", "from ", "Sonar"])


@pytest.fixture
def provider_registry(
    gemini_adapter: FakeAdapter, perplexity_adapter: FakeAdapter
) -> ProviderRegistry:
    """
    Registry holding both fake adapters.

    Returns:
        Provider registry
    """
    registry = ProviderRegistry()
    registry.register(gemini_adapter)
    registry.register(perplexity_adapter)
    return registry


@pytest.fixture
def quota_limits() -> dict:
    """Default quota limits per scope."""
    return {"global": 100, "gemini": 50, "perplexity": 30}


@pytest.fixture
def quota_limiter(quota_limits: dict, clock: FakeClock) -> QuotaLimiter:
    """Quota limiter on the fake clock."""
    return build_quota_limiter(quota_limits, 900, clock=clock)


@pytest.fixture
def zero_delay_scheduler() -> FragmentScheduler:
    """Scheduler that never pauses."""
    return FragmentScheduler(delay_seconds=0)


@pytest.fixture
def app_factory(test_config: AppConfig) -> Callable:
    """
    Build applications around injected collaborators.

    Returns:
        Function (registry, limiter) -> FastAPI app
    """
    from streamgate.main import ApplicationState, create_application

    def _build(registry: ProviderRegistry, limiter: QuotaLimiter):
        state = ApplicationState(quota_limiter=limiter, provider_registry=registry)
        return create_application(settings=test_config, state=state)

    return _build


@pytest.fixture
def chat_request() -> ChatRequest:
    """Sample chat request."""
    return ChatRequest(model="gemini-1.5-flash", prompt="What is the capital of France?")
