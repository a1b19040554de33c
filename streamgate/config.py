"""
Application configuration management.

Following Sandi Metz principles:
- Single Responsibility: Configuration loading and validation
- Small class: < 100 lines
- Clear naming: Descriptive property names
"""

from typing import Dict, List, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppConfig(BaseSettings):
    """
    Application configuration with validation.

    Loads from environment variables with fallback to .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # Application settings
    app_name: str = Field(default="StreamGate", description="Application name")
    service_name: str = Field(
        default="StreamGate Proxy Server", description="Name reported by /health"
    )
    app_env: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    log_level: str = Field(default="INFO", description="Logging level")
    debug: bool = Field(default=False, description="Debug mode")

    # API settings
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=3000, ge=1, le=65535, description="API port")
    allowed_origins: str = Field(default="*", description="CORS allowed origins")

    # Upstream provider settings
    gemini_api_key: str = Field(default="", description="Gemini API key")
    perplexity_api_key: str = Field(default="", description="Perplexity API key")
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Gemini REST base URL",
    )
    perplexity_base_url: str = Field(
        default="https://api.perplexity.ai", description="Perplexity base URL"
    )
    upstream_timeout_seconds: float = Field(
        default=30.0, gt=0, description="Upstream request timeout"
    )
    stream_chunk_delay_ms: int = Field(
        default=50, ge=0, description="Delay between simulated stream chunks"
    )

    # Default generation settings
    default_max_tokens: int = Field(default=2048, ge=1, description="Max tokens")
    default_temperature: float = Field(
        default=0.7, ge=0.0, le=2.0, description="Temperature"
    )

    # Quota settings (fixed windows per client identity)
    quota_enabled: bool = Field(default=True, description="Enable request quotas")
    quota_window_seconds: int = Field(
        default=15 * 60, ge=1, description="Quota window length"
    )
    quota_global_limit: int = Field(default=100, ge=1, description="Global quota")
    quota_gemini_limit: int = Field(default=50, ge=1, description="Gemini quota")
    quota_perplexity_limit: int = Field(
        default=30, ge=1, description="Perplexity quota"
    )

    # Client settings
    gateway_url: str = Field(
        default="http://localhost:3000", description="Gateway URL used by the client"
    )

    @property
    def allowed_origins_list(self) -> List[str]:
        """Get allowed origins as list."""
        return [origin.strip() for origin in self.allowed_origins.split(",")]

    @property
    def quota_limits(self) -> Dict[str, int]:
        """Get request limit per quota scope."""
        return {
            "global": self.quota_global_limit,
            "gemini": self.quota_gemini_limit,
            "perplexity": self.quota_perplexity_limit,
        }

    @property
    def stream_chunk_delay_seconds(self) -> float:
        """Get simulated stream delay in seconds."""
        return self.stream_chunk_delay_ms / 1000

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env == "development"


# Global configuration instance
config = AppConfig()
