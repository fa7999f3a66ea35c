"""Analytics snapshot schemas (the /api/analytics wire payload)."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Immutable model serialized with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class Totals(WireModel):
    """Sums across every point in the primary window."""

    requests: int = 0
    pageviews: int = 0
    bytes: int = 0
    threats: int = 0
    uniques: int = 0
    cached_requests: int = 0
    cached_bytes: int = 0


class TimeseriesPoint(WireModel):
    """One reporting hour."""

    timestamp: datetime
    requests: int = 0
    pageviews: int = 0
    bytes: int = 0
    threats: int = 0
    uniques: int = 0
    cached_requests: int = 0
    cached_bytes: int = 0


class HttpStatusBreakdown(WireModel):
    """Requests grouped by response status class."""

    status_2xx: int = Field(default=0, alias="2xx")
    status_3xx: int = Field(default=0, alias="3xx")
    status_4xx: int = Field(default=0, alias="4xx")
    status_5xx: int = Field(default=0, alias="5xx")

    @property
    def total(self) -> int:
        return self.status_2xx + self.status_3xx + self.status_4xx + self.status_5xx


class CountryRollupEntry(WireModel):
    """Traffic for one country over the secondary window."""

    country: str
    requests: int
    pageviews: int = Field(..., description="Estimated from requests")


class CacheMetrics(WireModel):
    """Cache efficiency derived from totals."""

    cached_requests: int = 0
    cached_bytes: int = 0
    cache_ratio: float = Field(default=0.0, ge=0.0, description="cachedRequests / requests")
    estimated_cached_pageviews: int = 0
    estimated_cached_uniques: int = 0


class AvailabilityState(str, Enum):
    """Reachability of the configured site."""

    ONLINE = "online"
    OFFLINE = "offline"
    ERROR = "error"
    UNKNOWN = "unknown"


class SiteAvailabilityStatus(WireModel):
    """Result of probing the configured site URL."""

    status: AvailabilityState
    message: str
    status_code: int | None = None
    response_time: int | None = Field(default=None, description="Milliseconds")


class EstimatedFields(WireModel):
    """Which reported values are heuristic estimates rather than measurements."""

    pageviews: bool = False
    country_pageviews: bool = True
    cached_pageviews: bool = True
    cached_uniques: bool = True


class AnalyticsSnapshot(WireModel):
    """Aggregated analytics for one refresh cycle."""

    totals: Totals = Field(default_factory=Totals)
    timeseries: list[TimeseriesPoint] = Field(default_factory=list)
    geographic: list[CountryRollupEntry] = Field(default_factory=list)
    http_status: HttpStatusBreakdown = Field(default_factory=HttpStatusBreakdown)
    cache: CacheMetrics = Field(default_factory=CacheMetrics)
    site_status: SiteAvailabilityStatus | None = None
    estimated: EstimatedFields = Field(default_factory=EstimatedFields)
    partial: bool = Field(default=False, description="Geographic data missing this cycle")
    last_updated: datetime
    refresh_interval: int = Field(..., description="Seconds between refreshes")
    error: str | None = None

    @classmethod
    def empty(cls, error: str, last_updated: datetime, refresh_interval: int) -> "AnalyticsSnapshot":
        """Zero-valued snapshot carrying an error marker."""
        return cls(
            last_updated=last_updated,
            refresh_interval=refresh_interval,
            error=error,
        )
