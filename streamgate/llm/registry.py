"""
Provider adapter registry.

Sandi Metz Principles:
- Single Responsibility: Manage adapter instances
- Open/Closed: Easy to add/remove providers
- Dependency Inversion: Depends on adapter interface
"""

from typing import Dict, List, Tuple

from streamgate.exceptions import ConfigurationError, ValidationError
from streamgate.llm.provider import BaseProviderAdapter
from streamgate.models.chat import ModelInfo
from streamgate.utils.logger import get_logger

logger = get_logger(__name__)

MODEL_CATALOG: Dict[str, List[ModelInfo]] = {
    "gemini": [
        ModelInfo(
            id="gemini-1.5-flash",
            name="Gemini 1.5 Flash",
            provider="Google",
            description="Fast and efficient for quick responses",
        ),
        ModelInfo(
            id="gemini-1.5-pro",
            name="Gemini 1.5 Pro",
            provider="Google",
            description="Most capable model for complex tasks",
        ),
    ],
    "perplexity": [
        ModelInfo(
            id="sonar",
            name="Sonar",
            provider="Perplexity",
            description="Fast answers with reliable search results",
        ),
    ],
}

# Model id prefix -> provider name
MODEL_FAMILIES: Tuple[Tuple[str, str], ...] = (
    ("gemini", "gemini"),
    ("sonar", "perplexity"),
)


class ProviderRegistry:
    """
    Registry for managing provider adapters.

    Maps provider names and model families to adapter instances.
    """

    def __init__(self):
        """Initialize empty provider registry."""
        self._providers: Dict[str, BaseProviderAdapter] = {}

    def register(self, provider: BaseProviderAdapter) -> None:
        """
        Register an adapter instance.

        Args:
            provider: Adapter instance to register

        Raises:
            ConfigurationError: If provider with same name already registered
        """
        name = provider.get_name()
        if name in self._providers:
            raise ConfigurationError(f"Provider '{name}' is already registered")

        self._providers[name] = provider
        logger.info(f"Registered provider: {name}")

    def get(self, name: str) -> BaseProviderAdapter:
        """
        Get adapter by provider name.

        Args:
            name: Provider name

        Returns:
            Adapter instance

        Raises:
            ConfigurationError: If provider not found
        """
        provider = self._providers.get(name)
        if not provider:
            available = ", ".join(self.list_providers())
            raise ConfigurationError(
                f"Provider '{name}' not found. " f"Available providers: {available}"
            )

        return provider

    def resolve_provider_name(self, model: str) -> str:
        """
        Find the provider serving a model family.

        Args:
            model: Model id

        Returns:
            Provider name

        Raises:
            ValidationError: If no registered provider serves the model
        """
        normalized = model.strip().lower()
        for prefix, name in MODEL_FAMILIES:
            if normalized.startswith(prefix) and name in self._providers:
                return name
        raise ValidationError(f"Unsupported model: {model}")

    def for_model(self, model: str) -> BaseProviderAdapter:
        """
        Get the adapter serving a model family.

        Args:
            model: Model id

        Returns:
            Adapter instance
        """
        return self.get(self.resolve_provider_name(model))

    def list_providers(self) -> List[str]:
        """
        List all registered provider names.

        Returns:
            List of provider names
        """
        return list(self._providers.keys())

    def has_provider(self, name: str) -> bool:
        """
        Check if provider is registered.

        Args:
            name: Provider name

        Returns:
            True if provider is registered
        """
        return name in self._providers

    def catalog(self) -> Dict[str, List[ModelInfo]]:
        """
        Get the model catalog of registered providers.

        Returns:
            Provider name to model list
        """
        return {
            name: models
            for name, models in MODEL_CATALOG.items()
            if name in self._providers
        }
