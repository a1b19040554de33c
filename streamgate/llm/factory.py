"""
Provider adapter factory.

Sandi Metz Principles:
- Single Responsibility: Create adapter instances
- Open/Closed: Easy to add new providers
- Dependency Inversion: Returns interface, not concrete class
"""

from streamgate.config import AppConfig
from streamgate.llm.gemini_provider import GeminiAdapter
from streamgate.llm.perplexity_provider import PerplexityAdapter
from streamgate.llm.registry import ProviderRegistry
from streamgate.llm.scheduler import FragmentScheduler
from streamgate.utils.logger import get_logger

logger = get_logger(__name__)


class ProviderFactory:
    """
    Factory for creating provider adapters from configuration.

    Adapters are created even without an API key; the router refuses to
    call an unconfigured adapter.
    """

    @staticmethod
    def create_gemini(settings: AppConfig) -> GeminiAdapter:
        """
        Create Gemini adapter.

        Args:
            settings: Application configuration

        Returns:
            Gemini adapter
        """
        return GeminiAdapter(
            api_key=settings.gemini_api_key,
            base_url=settings.gemini_base_url,
            timeout_seconds=settings.upstream_timeout_seconds,
            scheduler=FragmentScheduler(settings.stream_chunk_delay_seconds),
            default_temperature=settings.default_temperature,
            default_max_tokens=settings.default_max_tokens,
        )

    @staticmethod
    def create_perplexity(settings: AppConfig) -> PerplexityAdapter:
        """
        Create Perplexity adapter.

        Args:
            settings: Application configuration

        Returns:
            Perplexity adapter
        """
        return PerplexityAdapter(
            api_key=settings.perplexity_api_key,
            base_url=settings.perplexity_base_url,
            timeout_seconds=settings.upstream_timeout_seconds,
        )

    @staticmethod
    def create_registry(settings: AppConfig) -> ProviderRegistry:
        """
        Create registry holding every supported adapter.

        Args:
            settings: Application configuration

        Returns:
            Populated provider registry
        """
        registry = ProviderRegistry()
        registry.register(ProviderFactory.create_gemini(settings))
        registry.register(ProviderFactory.create_perplexity(settings))

        for name in registry.list_providers():
            if not registry.get(name).is_configured:
                logger.warning("Provider API key not configured", provider=name)
        return registry
