"""Raw hourly records as returned by the upstream analytics API."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any


@dataclass(frozen=True)
class StatusCount:
    """Requests served with one edge response status."""

    status: int
    requests: int


@dataclass(frozen=True)
class CountryCount:
    """Traffic attributed to one client country."""

    country: str
    requests: int
    bytes: int = 0


@dataclass(frozen=True)
class RawHourlyBucket:
    """One upstream hourly record, scoped to a single fetch cycle."""

    timestamp: datetime
    requests: int = 0
    pageviews: int = 0
    bytes: int = 0
    threats: int = 0
    uniques: int = 0
    cached_requests: int = 0
    cached_bytes: int = 0
    status_counts: tuple[StatusCount, ...] = ()
    countries: tuple[CountryCount, ...] = ()

    @classmethod
    def from_group(cls, group: dict[str, Any]) -> "RawHourlyBucket":
        """
        Build a bucket from an ``httpRequests1hGroups`` row.

        Missing or null counters are treated as zero.
        """
        dimensions = group.get("dimensions") or {}
        totals = group.get("sum") or {}
        uniq = group.get("uniq") or {}

        status_counts = tuple(
            StatusCount(
                status=_count(entry.get("edgeResponseStatus") or entry.get("httpStatusCode")),
                requests=_count(entry.get("requests")),
            )
            for entry in totals.get("responseStatusMap") or []
        )
        countries = tuple(
            CountryCount(
                country=entry.get("clientCountryName") or "Unknown",
                requests=_count(entry.get("requests")),
                bytes=_count(entry.get("bytes")),
            )
            for entry in totals.get("countryMap") or []
        )

        return cls(
            timestamp=_parse_datetime(dimensions.get("datetime")),
            requests=_count(totals.get("requests")),
            pageviews=_count(totals.get("pageViews")),
            bytes=_count(totals.get("bytes")),
            threats=_count(totals.get("threats")),
            uniques=_count(uniq.get("uniques")),
            cached_requests=_count(totals.get("cachedRequests")),
            cached_bytes=_count(totals.get("cachedBytes")),
            status_counts=status_counts,
            countries=countries,
        )


def _count(value: Any) -> int:
    if value is None:
        return 0
    try:
        return max(int(value), 0)
    except (TypeError, ValueError):
        return 0


def _parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif not value:
        raise ValueError("hourly group is missing dimensions.datetime")
    else:
        # Python < 3.11 does not accept the trailing Z
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    # Upstream times are UTC; naive and aware values must stay comparable
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
