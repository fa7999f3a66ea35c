"""Periodic refresh trigger."""

import asyncio

import structlog

from edgepulse.services.fetcher import AnalyticsFetcher

logger = structlog.get_logger(__name__)


class RefreshScheduler:
    """
    Fires a refresh immediately and then every ``interval`` seconds.

    Ticks do not wait for the previous refresh. A slow refresh that runs
    into the next tick is coalesced by the fetcher's single-flight guard.
    """

    def __init__(self, fetcher: AnalyticsFetcher, interval: float) -> None:
        self._fetcher = fetcher
        self._interval = interval
        self._loop_task: asyncio.Task | None = None
        self._pending: set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    def start(self) -> None:
        if self.running:
            return
        self._loop_task = asyncio.create_task(self._run(), name="analytics-refresh-loop")
        logger.info("refresh_scheduler_started", interval_seconds=self._interval)

    async def stop(self) -> None:
        """Stop ticking and let refreshes already started finish."""
        if self._loop_task is not None:
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
            self._loop_task = None

        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        logger.info("refresh_scheduler_stopped")

    def trigger(self) -> asyncio.Task:
        """Start a refresh in the background."""
        task = asyncio.create_task(self._fetcher.refresh())
        self._pending.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("scheduled_refresh_failed", error=str(exc))

    async def _run(self) -> None:
        while True:
            self.trigger()
            await asyncio.sleep(self._interval)
