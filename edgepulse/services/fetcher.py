"""
Refresh pipeline: query upstream, aggregate, estimate, commit.

Failure handling:
- Primary window fails: keep serving the previous snapshot, or a
  zero-valued snapshot with an error marker if there never was one.
- Secondary window fails: the geographic rollup is empty this cycle.
- Site check fails: reported as a status, never blocks the cycle.
"""

import asyncio
import time
from collections.abc import Callable
from datetime import datetime, timezone

import structlog

from edgepulse.config import Settings
from edgepulse.errors import AvailabilityCheckFailed, PartialData, UpstreamUnavailable
from edgepulse.models.bucket import RawHourlyBucket
from edgepulse.models.results import StageResult, StageStatus
from edgepulse.schemas.analytics import (
    AnalyticsSnapshot,
    AvailabilityState,
    EstimatedFields,
    SiteAvailabilityStatus,
)
from edgepulse.services.aggregation import aggregate, derive_cache_metrics, rollup_countries
from edgepulse.services.availability import SiteAvailabilityChecker
from edgepulse.services.cache import AnalyticsCache, RefreshMetrics
from edgepulse.services.cloudflare_client import CloudflareClient
from edgepulse.services.estimation import substitute_zero_pageviews

logger = structlog.get_logger(__name__)

UPSTREAM_FAILURE_MESSAGE = "Failed to fetch data from Cloudflare GraphQL API"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AnalyticsFetcher:
    """
    Owns the refresh cycle for the analytics snapshot.

    Only one cycle runs at a time. Callers arriving while a cycle is in
    flight get the current snapshot straight away, or with ``wait=True``
    the snapshot the running cycle produces.
    """

    def __init__(
        self,
        settings: Settings,
        cache: AnalyticsCache,
        client: CloudflareClient,
        checker: SiteAvailabilityChecker,
        metrics: RefreshMetrics | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._settings = settings
        self._cache = cache
        self._client = client
        self._checker = checker
        self.metrics = metrics or RefreshMetrics()
        self._clock = clock

    @property
    def cache(self) -> AnalyticsCache:
        return self._cache

    @property
    def refresh_interval(self) -> int:
        return self._settings.refresh_interval

    async def refresh(self, wait: bool = False) -> AnalyticsSnapshot | None:
        """
        Run one refresh cycle unless one is already running.

        Args:
            wait: When a cycle is already running, wait for its result
                instead of returning the current snapshot.

        Returns:
            The snapshot to serve. None only when a cycle is in flight,
            ``wait`` is False and no snapshot has ever been produced.
        """
        in_flight = await self._cache.begin_refresh()
        if in_flight is None:
            self.metrics.record_coalesced()
            logger.debug("refresh_coalesced", wait=wait)
            if wait:
                return await self._cache.wait_for_refresh()
            return self._cache.snapshot

        snapshot: AnalyticsSnapshot | None = None
        try:
            snapshot = await self._run_cycle()
            return snapshot
        finally:
            await self._cache.finish_refresh(snapshot)

    async def _run_cycle(self) -> AnalyticsSnapshot:
        now = self._clock()
        self.metrics.record_refresh()
        start = time.perf_counter()
        logger.info("fetching_analytics", zone_id=self._settings.cloudflare_zone_id)

        try:
            result = await self._build_snapshot(now)
        except Exception as e:
            logger.error("analytics_pipeline_crashed", error=str(e), exc_info=True)
            result = StageResult.failure(UpstreamUnavailable(f"pipeline crashed: {e}"))
        finally:
            self.metrics.record_duration(round((time.perf_counter() - start) * 1000, 2))

        if not result.ok or result.value is None:
            return self._fallback(result.error)

        self._cache.commit(result.value, now)
        self.metrics.record_success()
        if result.status == StageStatus.PARTIAL:
            self.metrics.record_partial()

        logger.info(
            "analytics_refreshed",
            partial=result.status == StageStatus.PARTIAL,
            points=len(result.value.timeseries),
            requests=result.value.totals.requests,
            next_update_in=self._settings.refresh_interval,
        )
        return result.value

    async def _build_snapshot(self, now: datetime) -> StageResult[AnalyticsSnapshot]:
        primary, secondary = await asyncio.gather(
            self._client.fetch_primary_window(now),
            self._client.fetch_secondary_window(now),
            return_exceptions=True,
        )
        if isinstance(primary, BaseException):
            if not isinstance(primary, Exception):
                raise primary
            logger.error("primary_query_crashed", error=str(primary), exc_info=primary)
            return StageResult.failure(UpstreamUnavailable(f"pipeline crashed: {primary}"))
        if isinstance(secondary, BaseException):
            if not isinstance(secondary, Exception):
                raise secondary
            logger.error("secondary_query_crashed", error=str(secondary), exc_info=secondary)
            secondary = StageResult.failure(PartialData(str(secondary) or secondary.__class__.__name__))
        if not primary.ok or primary.value is None:
            return StageResult.failure(UpstreamUnavailable(str(primary.error)))

        geography = self._resolve_secondary(secondary)
        ratio = self._settings.pageview_estimate_ratio

        aggregation = aggregate(primary.value)
        timeseries, totals, substituted = substitute_zero_pageviews(
            aggregation.timeseries, aggregation.totals, ratio
        )
        if substituted:
            logger.info("pageviews_estimated", ratio=ratio, total=totals.pageviews)

        snapshot = AnalyticsSnapshot(
            totals=totals,
            timeseries=timeseries,
            geographic=rollup_countries(
                geography.value or [],
                ratio=ratio,
                limit=self._settings.country_rollup_limit,
            ),
            http_status=aggregation.http_status,
            cache=derive_cache_metrics(totals),
            site_status=await self._check_site(),
            estimated=EstimatedFields(pageviews=substituted),
            partial=geography.status == StageStatus.PARTIAL,
            last_updated=now,
            refresh_interval=self._settings.refresh_interval,
        )

        if geography.status == StageStatus.PARTIAL and geography.error is not None:
            return StageResult.partial(snapshot, geography.error)
        return StageResult.success(snapshot)

    @staticmethod
    def _resolve_secondary(
        result: StageResult[list[RawHourlyBucket]],
    ) -> StageResult[list[RawHourlyBucket]]:
        """Degrade a failed secondary query to an empty rollup."""
        if result.ok and result.value is not None:
            return result
        logger.warning("secondary_query_failed", error=str(result.error))
        return StageResult.partial([], PartialData(str(result.error)))

    async def _check_site(self) -> SiteAvailabilityStatus:
        try:
            return await self._checker.check(self._settings.site_url)
        except Exception as e:
            failure = AvailabilityCheckFailed(str(e) or e.__class__.__name__)
            logger.warning("site_check_crashed", error=str(failure), exc_info=True)
            return SiteAvailabilityStatus(status=AvailabilityState.OFFLINE, message=str(failure))

    def _fallback(self, error: Exception | None) -> AnalyticsSnapshot:
        """Serve the last good snapshot, or an error-flagged empty one."""
        self.metrics.record_failure()
        logger.error("analytics_refresh_failed", error=str(error))

        state = self._cache.state
        if state.snapshot is not None:
            self.metrics.record_stale()
            logger.warning(
                "serving_stale_snapshot",
                last_updated=state.last_updated.isoformat() if state.last_updated else None,
            )
            return state.snapshot

        return AnalyticsSnapshot.empty(
            error=UPSTREAM_FAILURE_MESSAGE,
            last_updated=self._clock(),
            refresh_interval=self._settings.refresh_interval,
        )
