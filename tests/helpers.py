"""Bucket builders and in-memory fakes shared by the test suite."""

import asyncio
from datetime import datetime, timedelta, timezone

from edgepulse.models.bucket import CountryCount, RawHourlyBucket, StatusCount
from edgepulse.models.results import StageResult
from edgepulse.schemas.analytics import AvailabilityState, SiteAvailabilityStatus

BASE_TIME = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)



def make_bucket(
    hour: int,
    requests: int = 0,
    pageviews: int = 0,
    bytes: int = 0,
    threats: int = 0,
    uniques: int = 0,
    cached_requests: int = 0,
    cached_bytes: int = 0,
    statuses: dict[int, int] | None = None,
    countries: dict[str, int] | None = None,
) -> RawHourlyBucket:
    """Build a bucket ``hour`` hours before BASE_TIME."""
    return RawHourlyBucket(
        timestamp=BASE_TIME - timedelta(hours=hour),
        requests=requests,
        pageviews=pageviews,
        bytes=bytes,
        threats=threats,
        uniques=uniques,
        cached_requests=cached_requests,
        cached_bytes=cached_bytes,
        status_counts=tuple(
            StatusCount(status=code, requests=count) for code, count in (statuses or {}).items()
        ),
        countries=tuple(
            CountryCount(country=name, requests=count) for name, count in (countries or {}).items()
        ),
    )


def primary_buckets() -> list[RawHourlyBucket]:
    """A small, realistic primary window."""
    return [
        make_bucket(
            3,
            requests=1200,
            pageviews=400,
            bytes=5_000_000,
            threats=2,
            uniques=150,
            cached_requests=600,
            cached_bytes=2_500_000,
            statuses={200: 1000, 304: 150, 404: 40, 502: 10},
        ),
        make_bucket(
            2,
            requests=800,
            pageviews=300,
            bytes=3_000_000,
            threats=0,
            uniques=90,
            cached_requests=200,
            cached_bytes=1_000_000,
            statuses={200: 700, 301: 60, 403: 40},
        ),
    ]


def secondary_buckets() -> list[RawHourlyBucket]:
    return [
        make_bucket(50, countries={"United States": 100, "Germany": 50}),
        make_bucket(10, countries={"France": 200, "Germany": 5}),
    ]


class FakeClock:
    """Controllable clock for the fetcher."""

    def __init__(self, now: datetime = BASE_TIME) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeCloudflareClient:
    """Stands in for CloudflareClient, counting calls per window."""

    def __init__(
        self,
        primary: StageResult | None = None,
        secondary: StageResult | None = None,
        delay: float = 0.0,
    ) -> None:
        self.primary = primary or StageResult.success(primary_buckets())
        self.secondary = secondary or StageResult.success(secondary_buckets())
        self.delay = delay
        self.primary_error: Exception | None = None
        self.secondary_error: Exception | None = None
        self.primary_calls = 0
        self.secondary_calls = 0

    async def fetch_primary_window(self, now: datetime) -> StageResult:
        self.primary_calls += 1
        await asyncio.sleep(self.delay)
        if self.primary_error is not None:
            raise self.primary_error
        return self.primary

    async def fetch_secondary_window(self, now: datetime) -> StageResult:
        self.secondary_calls += 1
        await asyncio.sleep(self.delay)
        if self.secondary_error is not None:
            raise self.secondary_error
        return self.secondary

    async def close(self) -> None:
        pass


class FakeAvailabilityChecker:
    """Returns a canned status, or raises if told to."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls = 0

    async def check(self, url: str) -> SiteAvailabilityStatus:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return SiteAvailabilityStatus(
            status=AvailabilityState.ONLINE,
            status_code=200,
            response_time=42,
            message="HTTP 200 - 42ms",
        )

    async def close(self) -> None:
        pass

