"""Core services for EdgePulse."""

from edgepulse.services.availability import SiteAvailabilityChecker
from edgepulse.services.cache import AnalyticsCache, RefreshMetrics
from edgepulse.services.cloudflare_client import CloudflareClient
from edgepulse.services.fetcher import AnalyticsFetcher
from edgepulse.services.scheduler import RefreshScheduler

__all__ = [
    "AnalyticsCache",
    "AnalyticsFetcher",
    "CloudflareClient",
    "RefreshMetrics",
    "RefreshScheduler",
    "SiteAvailabilityChecker",
]
