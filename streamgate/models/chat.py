"""
Chat request and completion models.

Sandi Metz Principles:
- Small classes focused on data validation
- Clear property names
- Single responsibility per model
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from streamgate.exceptions import ValidationError

MISSING_FIELDS_MESSAGE = "Missing required fields: model and prompt are required"


class ChatRequest(BaseModel):
    """
    Incoming chat request.

    Required fields are checked by validate_required() instead of by
    pydantic so that a missing model or prompt surfaces as the gateway's
    own structured 400 response.
    """

    model_config = ConfigDict(populate_by_name=True)

    model: str = Field(default="", description="Upstream model id")
    prompt: str = Field(default="", description="User prompt text")
    temperature: Optional[float] = Field(
        None, ge=0.0, le=2.0, description="Sampling temperature"
    )
    max_tokens: Optional[int] = Field(
        None, ge=1, alias="maxTokens", description="Maximum output tokens"
    )
    stream: bool = Field(default=False, description="Stream the answer as SSE")
    stream_id: Optional[str] = Field(
        None,
        alias="streamId",
        max_length=128,
        description="Client-chosen id used to cancel the stream",
    )

    def validate_required(self) -> "ChatRequest":
        """
        Check that model and prompt are present.

        Returns:
            The request itself

        Raises:
            ValidationError: If model or prompt is empty
        """
        if not self.model.strip() or not self.prompt.strip():
            raise ValidationError(MISSING_FIELDS_MESSAGE)
        return self

    def get_max_tokens(self, default: int) -> int:
        """Get max_tokens with fallback to default."""
        return self.max_tokens or default

    def get_temperature(self, default: float) -> float:
        """Get temperature with fallback to default."""
        return self.temperature if self.temperature is not None else default


class Completion(BaseModel):
    """Complete, non-streamed answer from an upstream provider."""

    content: str = Field(..., description="Answer text")
    model: str = Field(..., description="Model used")
    provider: str = Field(..., description="Provider name")
    citations: List[str] = Field(default_factory=list, description="Source URLs")
    search_results: List[Dict[str, Any]] = Field(
        default_factory=list, description="Provider search results"
    )

    def to_payload(self) -> Dict[str, Any]:
        """
        Build the gateway's non-streaming response body.

        Returns:
            JSON-ready dict
        """
        payload: Dict[str, Any] = {
            "success": True,
            "content": self.content,
            "model": self.model,
            "provider": self.provider,
        }
        if self.citations or self.search_results:
            payload["citations"] = self.citations
            payload["searchResults"] = self.search_results
        return payload


class ModelInfo(BaseModel):
    """Entry of the static model catalog."""

    id: str = Field(..., description="Model id sent upstream")
    name: str = Field(..., description="Display name")
    provider: str = Field(..., description="Vendor display name")
    description: str = Field(..., description="Short description")


class HealthResponse(BaseModel):
    """Liveness response."""

    status: str = Field(..., description="Service status")
    timestamp: str = Field(..., description="Current time (ISO 8601)")
    service: str = Field(..., description="Service name")
