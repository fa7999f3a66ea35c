"""Pytest configuration and shared fixtures."""

import os
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Set test environment before imports
os.environ["CLOUDFLARE_ZONE_ID"] = "test-zone"
os.environ["CLOUDFLARE_API_TOKEN"] = "test-token"
os.environ["SITE_URL"] = ""
os.environ["DEBUG"] = "true"

from edgepulse.config import Settings
from edgepulse.main import create_app
from edgepulse.services.cache import AnalyticsCache
from edgepulse.services.fetcher import AnalyticsFetcher
from tests.helpers import FakeAvailabilityChecker, FakeClock, FakeCloudflareClient


@pytest.fixture
def settings() -> Settings:
    """Get test settings."""
    return Settings(
        cloudflare_zone_id="test-zone",
        cloudflare_api_token="test-token",
        cloudflare_api_base_url="https://api.cloudflare.test",
        refresh_interval=30,
        site_url="https://example.test",
        debug=True,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_client() -> FakeCloudflareClient:
    return FakeCloudflareClient()


@pytest.fixture
def fake_checker() -> FakeAvailabilityChecker:
    return FakeAvailabilityChecker()


@pytest.fixture
def cache() -> AnalyticsCache:
    return AnalyticsCache()


@pytest.fixture
def fetcher(
    settings: Settings,
    cache: AnalyticsCache,
    fake_client: FakeCloudflareClient,
    fake_checker: FakeAvailabilityChecker,
    clock: FakeClock,
) -> AnalyticsFetcher:
    """Fetcher wired to fakes instead of the network."""
    return AnalyticsFetcher(
        settings=settings,
        cache=cache,
        client=fake_client,  # type: ignore[arg-type]
        checker=fake_checker,  # type: ignore[arg-type]
        clock=clock,
    )


@pytest_asyncio.fixture
async def client(settings: Settings, fetcher: AnalyticsFetcher) -> AsyncGenerator[AsyncClient, None]:
    """Async test client for an app backed by the fake fetcher."""
    app = create_app(settings)
    app.state.fetcher = fetcher
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
