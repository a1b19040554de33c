"""
Quota models.

Sandi Metz Principles:
- Small classes with clear purpose
- Immutable quota data
- Clear naming conventions
"""

from pydantic import BaseModel, Field


class QuotaConfig(BaseModel):
    """Quota configuration for one scope."""

    limit: int = Field(..., ge=1, description="Requests allowed per window")
    window_seconds: int = Field(..., ge=1, description="Time window in seconds")
    enabled: bool = Field(default=True, description="Whether the quota is enforced")


class QuotaDecision(BaseModel):
    """Outcome of one admission check."""

    allowed: bool = Field(..., description="Whether the request may proceed")
    scope: str = Field(..., description="Scope that was checked")
    limit: int = Field(..., ge=1, description="Requests allowed per window")
    remaining: int = Field(..., ge=0, description="Requests left in the window")
    retry_after: int = Field(
        default=0, ge=0, description="Seconds until the window resets"
    )

    def headers(self) -> dict:
        """
        Build rate limit response headers.

        Returns:
            Header name to value mapping
        """
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
        }
        if not self.allowed:
            headers["Retry-After"] = str(self.retry_after)
        return headers
