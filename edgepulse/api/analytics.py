"""Analytics read and retry endpoints."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request

from edgepulse.api.deps import get_fetcher
from edgepulse.schemas.analytics import AnalyticsSnapshot
from edgepulse.services.fetcher import AnalyticsFetcher

router = APIRouter(prefix="/api", tags=["Analytics"])

NOT_READY_MESSAGE = "Analytics data is not available yet"


def _placeholder(fetcher: AnalyticsFetcher) -> AnalyticsSnapshot:
    return AnalyticsSnapshot.empty(
        error=NOT_READY_MESSAGE,
        last_updated=datetime.now(timezone.utc),
        refresh_interval=fetcher.refresh_interval,
    )


def _snapshot_state(fetcher: AnalyticsFetcher, snapshot: AnalyticsSnapshot) -> str:
    """Classify the snapshot being served for request logs."""
    if snapshot.error:
        return "error"
    last_updated = fetcher.cache.state.last_updated
    if last_updated is None:
        return "empty"
    age = (datetime.now(timezone.utc) - last_updated).total_seconds()
    return "stale" if age > 2 * fetcher.refresh_interval else "fresh"


@router.get("/analytics", response_model=AnalyticsSnapshot)
async def get_analytics(
    request: Request,
    fetcher: AnalyticsFetcher = Depends(get_fetcher),
) -> AnalyticsSnapshot:
    """
    Return the current analytics snapshot.

    Served from memory. Only before the very first snapshot exists does
    this start a refresh; if one is already running the caller gets an
    empty snapshot flagged as not ready instead of waiting.
    """
    snapshot = fetcher.cache.snapshot
    if snapshot is None:
        snapshot = await fetcher.refresh() or _placeholder(fetcher)

    request.state.snapshot_state = _snapshot_state(fetcher, snapshot)
    return snapshot


@router.post("/analytics/retry", response_model=AnalyticsSnapshot)
async def retry_analytics(
    request: Request,
    fetcher: AnalyticsFetcher = Depends(get_fetcher),
) -> AnalyticsSnapshot:
    """
    Refresh now and return the result.

    Joins the running refresh if there is one rather than starting another.
    """
    snapshot = await fetcher.refresh(wait=True) or _placeholder(fetcher)
    request.state.snapshot_state = _snapshot_state(fetcher, snapshot)
    return snapshot
