"""
In-memory snapshot cache with single-flight refresh tracking.

The cache holds exactly one AnalyticsSnapshot: the last one a refresh
cycle produced successfully. Readers never wait on a refresh; they get
whatever snapshot is current. Only the fetcher writes.
"""

import asyncio
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

import structlog

from edgepulse.schemas.analytics import AnalyticsSnapshot

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CacheState:
    """Point-in-time view of the cache. Replaced wholesale on every change."""

    snapshot: AnalyticsSnapshot | None = None
    last_updated: datetime | None = None
    is_updating: bool = False

    @property
    def has_data(self) -> bool:
        return self.snapshot is not None


@dataclass
class InFlightRefresh:
    """Tracks the running refresh so that waiters can share its result."""

    event: asyncio.Event = field(default_factory=asyncio.Event)
    result: AnalyticsSnapshot | None = None


class AnalyticsCache:
    """
    Process-wide snapshot holder.

    At most one refresh is registered at a time. ``begin_refresh`` is the
    atomic check-and-set: it either registers the caller as the refresher
    or tells it someone else already is.
    """

    def __init__(self) -> None:
        self._state = CacheState()
        self._in_flight: InFlightRefresh | None = None
        self._in_flight_lock = asyncio.Lock()

    @property
    def state(self) -> CacheState:
        return self._state

    @property
    def snapshot(self) -> AnalyticsSnapshot | None:
        return self._state.snapshot

    async def begin_refresh(self) -> InFlightRefresh | None:
        """
        Register a refresh.

        Returns:
            InFlightRefresh if the caller should run the refresh, None if
            another refresh is already running.
        """
        async with self._in_flight_lock:
            if self._in_flight is not None:
                return None
            self._in_flight = InFlightRefresh()
            self._state = replace(self._state, is_updating=True)
            return self._in_flight

    async def finish_refresh(self, result: AnalyticsSnapshot | None) -> None:
        """Clear the in-flight marker and wake every waiter."""
        async with self._in_flight_lock:
            request = self._in_flight
            self._in_flight = None
            self._state = replace(self._state, is_updating=False)
        if request:
            request.result = result
            request.event.set()

    async def wait_for_refresh(self, timeout: float | None = None) -> AnalyticsSnapshot | None:
        """
        Wait for the running refresh and return what it produced.

        Falls back to the current snapshot if nothing is running, the
        refresh produced nothing, or the wait times out.
        """
        request = self._in_flight
        if request is None:
            return self._state.snapshot
        try:
            await asyncio.wait_for(request.event.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return self._state.snapshot
        return request.result if request.result is not None else self._state.snapshot

    def commit(self, snapshot: AnalyticsSnapshot, updated_at: datetime) -> None:
        """Swap in a new snapshot."""
        self._state = replace(self._state, snapshot=snapshot, last_updated=updated_at)
        logger.debug("snapshot_committed", last_updated=updated_at.isoformat())


class RefreshMetrics:
    """Simple refresh cycle metrics collector."""

    def __init__(self) -> None:
        self.refreshes = 0
        self.successes = 0
        self.failures = 0
        self.partials = 0
        self.coalesced = 0
        self.stale_served = 0
        self.last_duration_ms = 0.0

    def record_refresh(self) -> None:
        self.refreshes += 1

    def record_success(self) -> None:
        self.successes += 1

    def record_failure(self) -> None:
        self.failures += 1

    def record_partial(self) -> None:
        self.partials += 1

    def record_coalesced(self) -> None:
        self.coalesced += 1

    def record_stale(self) -> None:
        self.stale_served += 1

    def record_duration(self, duration_ms: float) -> None:
        self.last_duration_ms = duration_ms

    @property
    def success_rate(self) -> float:
        if self.refreshes == 0:
            return 0.0
        return self.successes / self.refreshes

    def to_dict(self) -> dict[str, Any]:
        return {
            "refreshes": self.refreshes,
            "successes": self.successes,
            "failures": self.failures,
            "partials": self.partials,
            "coalesced": self.coalesced,
            "stale_served": self.stale_served,
            "last_duration_ms": self.last_duration_ms,
            "success_rate": self.success_rate,
        }
