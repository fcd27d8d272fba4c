"""
Health check schemas.
"""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Liveness response."""

    status: str = Field(description="Overall health status: ok | degraded")
    version: str = Field(description="Translator version")
    cache_connected: bool = Field(description="Whether the cache database answers queries")
    provider_configured: bool = Field(description="Whether a provider API key is set")


class ServiceInfoResponse(BaseModel):
    """Service description returned at the root path."""

    name: str
    version: str
    endpoints: dict[str, str]
