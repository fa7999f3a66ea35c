"""Health, status and metrics endpoints."""

import platform
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse

from edgepulse import __version__
from edgepulse.api.deps import get_app_settings, get_cache, get_fetcher
from edgepulse.config import Settings
from edgepulse.schemas.common import (
    CacheHealth,
    HealthResponse,
    MetricsResponse,
    StatusResponse,
)
from edgepulse.services.cache import AnalyticsCache
from edgepulse.services.fetcher import AnalyticsFetcher

router = APIRouter(tags=["Health"])

SERVER_NAME = "EdgePulse Analytics Display"


@router.get("/health", response_model=HealthResponse)
async def health_check(
    request: Request,
    cache: AnalyticsCache = Depends(get_cache),
) -> HealthResponse:
    """
    Report process health and snapshot cache state.

    Reads the cache only; never triggers a refresh.
    """
    state = cache.state
    return HealthResponse(
        status="healthy",
        version=__version__,
        timestamp=datetime.now(timezone.utc),
        uptime=round(time.monotonic() - request.app.state.started_at, 3),
        cache=CacheHealth(
            has_data=state.has_data,
            last_updated=state.last_updated,
            is_updating=state.is_updating,
        ),
    )


@router.get("/api/status", response_model=StatusResponse)
async def server_status(settings: Settings = Depends(get_app_settings)) -> StatusResponse:
    """Static server information."""
    return StatusResponse(
        server=SERVER_NAME,
        version=__version__,
        python_version=platform.python_version(),
        environment=settings.environment,
        refresh_interval=settings.refresh_interval,
        timezone=datetime.now().astimezone().tzname() or "UTC",
    )


@router.get("/metrics", response_model=MetricsResponse)
async def get_metrics(fetcher: AnalyticsFetcher = Depends(get_fetcher)) -> MetricsResponse:
    """Refresh cycle counters."""
    metrics = fetcher.metrics.to_dict()
    return MetricsResponse(
        refresh_total=metrics["refreshes"],
        refresh_success_total=metrics["successes"],
        refresh_failure_total=metrics["failures"],
        refresh_partial_total=metrics["partials"],
        refresh_coalesced_total=metrics["coalesced"],
        stale_served_total=metrics["stale_served"],
        last_refresh_duration_ms=metrics["last_duration_ms"],
        refresh_success_rate=round(metrics["success_rate"], 4),
    )


@router.get("/metrics/prometheus", response_class=PlainTextResponse)
async def prometheus_metrics(
    fetcher: AnalyticsFetcher = Depends(get_fetcher),
    cache: AnalyticsCache = Depends(get_cache),
) -> str:
    """
    Refresh counters in Prometheus text format.

    Suitable for scraping by Prometheus server.
    """
    metrics = fetcher.metrics.to_dict()
    state = cache.state

    lines = [
        "# HELP edgepulse_refresh_total Refresh cycles started",
        "# TYPE edgepulse_refresh_total counter",
        f"edgepulse_refresh_total {metrics['refreshes']}",
        "",
        "# HELP edgepulse_refresh_failure_total Refresh cycles whose primary query failed",
        "# TYPE edgepulse_refresh_failure_total counter",
        f"edgepulse_refresh_failure_total {metrics['failures']}",
        "",
        "# HELP edgepulse_refresh_partial_total Refresh cycles without geographic data",
        "# TYPE edgepulse_refresh_partial_total counter",
        f"edgepulse_refresh_partial_total {metrics['partials']}",
        "",
        "# HELP edgepulse_refresh_coalesced_total Refresh requests absorbed by a running cycle",
        "# TYPE edgepulse_refresh_coalesced_total counter",
        f"edgepulse_refresh_coalesced_total {metrics['coalesced']}",
        "",
        "# HELP edgepulse_stale_served_total Failed cycles answered with the previous snapshot",
        "# TYPE edgepulse_stale_served_total counter",
        f"edgepulse_stale_served_total {metrics['stale_served']}",
        "",
        "# HELP edgepulse_refresh_success_rate Share of refresh cycles that committed a snapshot",
        "# TYPE edgepulse_refresh_success_rate gauge",
        f"edgepulse_refresh_success_rate {metrics['success_rate']:.4f}",
        "",
        "# HELP edgepulse_snapshot_available Whether a snapshot is cached",
        "# TYPE edgepulse_snapshot_available gauge",
        f"edgepulse_snapshot_available {int(state.has_data)}",
    ]

    return "\n".join(lines) + "\n"
