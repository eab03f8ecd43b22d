"""Health check schemas."""

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from orgflow import __version__


class HealthStatus(StrEnum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class HealthResponse(BaseModel):
    """Health check response."""

    status: HealthStatus = Field(..., description="Overall service health")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="Health check timestamp",
    )
    version: str = Field(default=__version__, description="Application version")
