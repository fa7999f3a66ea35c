"""Pydantic schemas for API responses."""

from edgepulse.schemas.analytics import (
    AnalyticsSnapshot,
    AvailabilityState,
    CacheMetrics,
    CountryRollupEntry,
    EstimatedFields,
    HttpStatusBreakdown,
    SiteAvailabilityStatus,
    TimeseriesPoint,
    Totals,
)
from edgepulse.schemas.common import (
    CacheHealth,
    ErrorResponse,
    HealthResponse,
    MetricsResponse,
    StatusResponse,
)

__all__ = [
    # Analytics schemas
    "AnalyticsSnapshot",
    "AvailabilityState",
    "CacheMetrics",
    "CountryRollupEntry",
    "EstimatedFields",
    "HttpStatusBreakdown",
    "SiteAvailabilityStatus",
    "TimeseriesPoint",
    "Totals",
    # Common schemas
    "CacheHealth",
    "ErrorResponse",
    "HealthResponse",
    "MetricsResponse",
    "StatusResponse",
]
