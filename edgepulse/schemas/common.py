"""Common schemas used across the API."""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from edgepulse.schemas.analytics import WireModel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str = Field(..., description="Error type/code")
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] | None = Field(None, description="Additional error details")
    request_id: str | None = Field(None, description="Request ID for tracing")


class CacheHealth(WireModel):
    """Snapshot cache state as reported by /health."""

    has_data: bool
    last_updated: datetime | None = None
    is_updating: bool


class HealthResponse(WireModel):
    """Health check response."""

    status: str = Field(..., description="Service status")
    version: str = Field(..., description="API version")
    timestamp: datetime = Field(default_factory=_utcnow)
    uptime: float = Field(..., description="Process uptime in seconds")
    cache: CacheHealth


class StatusResponse(WireModel):
    """Server information for the dashboard footer."""

    server: str
    version: str
    python_version: str
    environment: str
    refresh_interval: int
    timezone: str


class MetricsResponse(BaseModel):
    """Refresh cycle counters."""

    refresh_total: int = 0
    refresh_success_total: int = 0
    refresh_failure_total: int = 0
    refresh_partial_total: int = 0
    refresh_coalesced_total: int = 0
    stale_served_total: int = 0
    last_refresh_duration_ms: float = 0.0
    refresh_success_rate: float = 0.0
