"""Main FastAPI application entry point."""

import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from edgepulse import __version__
from edgepulse.api.analytics import router as analytics_router
from edgepulse.api.health import router as health_router
from edgepulse.config import Settings, get_settings
from edgepulse.middleware.logging import LoggingMiddleware, setup_logging
from edgepulse.middleware.request_id import RequestIdMiddleware
from edgepulse.services.availability import SiteAvailabilityChecker
from edgepulse.services.cache import AnalyticsCache
from edgepulse.services.cloudflare_client import CloudflareClient
from edgepulse.services.fetcher import AnalyticsFetcher
from edgepulse.services.scheduler import RefreshScheduler

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan handler."""
    settings: Settings = app.state.settings

    # Startup
    setup_logging(settings)
    settings.require_credentials()

    scheduler: RefreshScheduler = app.state.scheduler
    scheduler.start()
    logger.info(
        "server_started",
        port=settings.port,
        refresh_interval=settings.refresh_interval,
        site_url=settings.site_url or None,
    )

    yield

    # Shutdown
    logger.info("server_stopping")
    await scheduler.stop()
    await app.state.cloudflare_client.close()
    await app.state.availability_checker.close()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()

    app = FastAPI(
        title="EdgePulse",
        description="Real-time Cloudflare zone analytics for dashboard displays",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    # Shared services; one instance per process
    cloudflare_client = CloudflareClient(settings)
    availability_checker = SiteAvailabilityChecker(settings.availability_timeout_seconds)
    fetcher = AnalyticsFetcher(
        settings=settings,
        cache=AnalyticsCache(),
        client=cloudflare_client,
        checker=availability_checker,
    )
    app.state.settings = settings
    app.state.started_at = time.monotonic()
    app.state.cloudflare_client = cloudflare_client
    app.state.availability_checker = availability_checker
    app.state.fetcher = fetcher
    app.state.scheduler = RefreshScheduler(fetcher, interval=settings.refresh_interval)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1024)

    # Order matters - first added is innermost
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(RequestIdMiddleware)

    app.include_router(health_router)
    app.include_router(analytics_router)

    return app


# Create the application instance
app = create_app()


def run() -> None:
    """Console entry point."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "edgepulse.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
