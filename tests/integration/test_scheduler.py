"""Integration tests for the periodic refresh trigger."""

import asyncio

import pytest

from edgepulse.services.fetcher import AnalyticsFetcher
from edgepulse.services.scheduler import RefreshScheduler


class TestRefreshScheduler:
    """Tests for tick behavior and shutdown."""

    @pytest.mark.asyncio
    async def test_refreshes_immediately_and_on_interval(self, fetcher: AnalyticsFetcher, fake_client, cache):
        scheduler = RefreshScheduler(fetcher, interval=0.05)

        scheduler.start()
        await asyncio.sleep(0.2)
        await scheduler.stop()

        assert fake_client.primary_calls >= 2
        assert cache.state.has_data is True
        assert scheduler.running is False

    @pytest.mark.asyncio
    async def test_slow_refresh_coalesces_later_ticks(self, fetcher: AnalyticsFetcher, fake_client, cache):
        """Ticks during a slow refresh do not start new upstream queries."""
        fake_client.delay = 0.3
        scheduler = RefreshScheduler(fetcher, interval=0.05)

        scheduler.start()
        await asyncio.sleep(0.2)
        assert cache.state.is_updating is True
        await scheduler.stop()

        assert fake_client.primary_calls == 1
        assert fetcher.metrics.coalesced >= 1
        # stop() lets the in-flight refresh finish
        assert cache.state.is_updating is False
        assert cache.state.has_data is True

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, fetcher: AnalyticsFetcher):
        scheduler = RefreshScheduler(fetcher, interval=10)

        scheduler.start()
        task = scheduler._loop_task
        scheduler.start()

        assert scheduler._loop_task is task
        await scheduler.stop()

    @pytest.mark.asyncio
    async def test_manual_trigger(self, fetcher: AnalyticsFetcher, fake_client):
        scheduler = RefreshScheduler(fetcher, interval=10)

        snapshot = await scheduler.trigger()

        assert snapshot is not None
        assert fake_client.primary_calls == 1
