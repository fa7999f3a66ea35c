"""HTTP middleware."""

from edgepulse.middleware.logging import LoggingMiddleware, setup_logging
from edgepulse.middleware.request_id import RequestIdMiddleware, get_request_id

__all__ = ["LoggingMiddleware", "RequestIdMiddleware", "get_request_id", "setup_logging"]
