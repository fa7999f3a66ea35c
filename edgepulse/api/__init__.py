"""API route handlers."""

from edgepulse.api.analytics import router as analytics_router
from edgepulse.api.health import router as health_router

__all__ = ["analytics_router", "health_router"]
