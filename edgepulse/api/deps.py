"""FastAPI dependencies resolving the shared services from app state."""

from fastapi import Request

from edgepulse.config import Settings
from edgepulse.services.cache import AnalyticsCache
from edgepulse.services.fetcher import AnalyticsFetcher


def get_fetcher(request: Request) -> AnalyticsFetcher:
    return request.app.state.fetcher


def get_cache(request: Request) -> AnalyticsCache:
    return request.app.state.fetcher.cache


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings
