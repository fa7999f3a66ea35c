"""
Aggregation of raw hourly buckets into reporting shapes.

Every function here is pure: buckets in, schema objects out.
"""

from dataclasses import dataclass

from edgepulse.models.bucket import RawHourlyBucket
from edgepulse.schemas.analytics import (
    CacheMetrics,
    CountryRollupEntry,
    HttpStatusBreakdown,
    TimeseriesPoint,
    Totals,
)
from edgepulse.services.estimation import (
    PAGEVIEW_ESTIMATE_RATIO,
    estimate_pageviews,
    round_half_up,
)

SUMMED_FIELDS = (
    "requests",
    "pageviews",
    "bytes",
    "threats",
    "uniques",
    "cached_requests",
    "cached_bytes",
)

DEFAULT_COUNTRY_LIMIT = 10

# Status class ranges, half-open
STATUS_CLASSES = (
    ("status_2xx", 200, 300),
    ("status_3xx", 300, 400),
    ("status_4xx", 400, 500),
    ("status_5xx", 500, 600),
)


@dataclass(frozen=True)
class Aggregation:
    """Primary window reduced to totals, a series and a status breakdown."""

    totals: Totals
    timeseries: list[TimeseriesPoint]
    http_status: HttpStatusBreakdown


def aggregate(buckets: list[RawHourlyBucket]) -> Aggregation:
    """
    Fold primary-window buckets into totals, points and status classes.

    Points come out in ascending timestamp order, one per bucket.
    """
    ordered = sorted(buckets, key=lambda bucket: bucket.timestamp)

    sums = dict.fromkeys(SUMMED_FIELDS, 0)
    timeseries: list[TimeseriesPoint] = []
    for bucket in ordered:
        values = {name: getattr(bucket, name) for name in SUMMED_FIELDS}
        for name, value in values.items():
            sums[name] += value
        timeseries.append(TimeseriesPoint(timestamp=bucket.timestamp, **values))

    return Aggregation(
        totals=Totals(**sums),
        timeseries=timeseries,
        http_status=breakdown_statuses(ordered),
    )


def breakdown_statuses(buckets: list[RawHourlyBucket]) -> HttpStatusBreakdown:
    """
    Group status histograms into 2xx/3xx/4xx/5xx.

    Codes outside [200, 600) are dropped. An hour never contributes more
    than its own request count, so the breakdown cannot exceed totals even
    when upstream histograms disagree with the counters.
    """
    counts = dict.fromkeys((name for name, _, _ in STATUS_CLASSES), 0)
    for bucket in buckets:
        remaining = bucket.requests
        for entry in bucket.status_counts:
            name = _status_class(entry.status)
            if name is None or remaining <= 0:
                continue
            taken = min(entry.requests, remaining)
            counts[name] += taken
            remaining -= taken
    return HttpStatusBreakdown(**counts)


def _status_class(status: int) -> str | None:
    for name, low, high in STATUS_CLASSES:
        if low <= status < high:
            return name
    return None


def rollup_countries(
    buckets: list[RawHourlyBucket],
    ratio: float = PAGEVIEW_ESTIMATE_RATIO,
    limit: int = DEFAULT_COUNTRY_LIMIT,
) -> list[CountryRollupEntry]:
    """
    Sum requests per country and keep the busiest ``limit`` countries.

    Ties keep first-seen order.
    """
    requests_by_country: dict[str, int] = {}
    for bucket in buckets:
        for entry in bucket.countries:
            requests_by_country[entry.country] = (
                requests_by_country.get(entry.country, 0) + entry.requests
            )

    ranked = sorted(requests_by_country.items(), key=lambda item: item[1], reverse=True)
    return [
        CountryRollupEntry(
            country=country,
            requests=requests,
            pageviews=estimate_pageviews(requests, ratio),
        )
        for country, requests in ranked[:limit]
    ]


def derive_cache_metrics(totals: Totals) -> CacheMetrics:
    """Apply the observed request cache ratio to page views and uniques."""
    ratio = totals.cached_requests / totals.requests if totals.requests > 0 else 0.0
    return CacheMetrics(
        cached_requests=totals.cached_requests,
        cached_bytes=totals.cached_bytes,
        cache_ratio=ratio,
        estimated_cached_pageviews=round_half_up(totals.pageviews * ratio),
        estimated_cached_uniques=round_half_up(totals.uniques * ratio),
    )
