"""Site availability probe for the configured site URL."""

import socket
import time

import httpx
import structlog

from edgepulse.schemas.analytics import AvailabilityState, SiteAvailabilityStatus

logger = structlog.get_logger(__name__)

DNS_ERROR_MARKERS = (
    "name or service not known",
    "nodename nor servname",
    "temporary failure in name resolution",
    "getaddrinfo failed",
    "no address associated with hostname",
)


def _exception_chain(exc: BaseException):
    seen = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def classify_connect_error(exc: httpx.TransportError) -> str:
    """Turn a connection failure into a short human-readable reason."""
    for err in _exception_chain(exc):
        if isinstance(err, socket.gaierror):
            return "DNS resolution failed"
        if isinstance(err, ConnectionRefusedError):
            return "Connection refused"

    text = str(exc).lower()
    if any(marker in text for marker in DNS_ERROR_MARKERS):
        return "DNS resolution failed"
    if "connection refused" in text:
        return "Connection refused"
    return str(exc) or exc.__class__.__name__


class SiteAvailabilityChecker:
    """
    Performs one bounded GET against the site and classifies the outcome.

    Any status below 500 counts as reachable. Transport failures map to
    ``offline`` and 5xx responses map to ``error``.
    """

    def __init__(self, timeout_seconds: float = 10.0) -> None:
        self._timeout = timeout_seconds
        self._client: httpx.AsyncClient | None = None

    async def get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                follow_redirects=True,
                timeout=httpx.Timeout(self._timeout),
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def check(self, url: str) -> SiteAvailabilityStatus:
        """Probe ``url`` and report its availability."""
        if not url:
            return SiteAvailabilityStatus(
                status=AvailabilityState.UNKNOWN,
                message="No site URL configured",
            )

        client = await self.get_client()
        start = time.perf_counter()
        try:
            response = await client.get(url)
        except httpx.TimeoutException:
            return SiteAvailabilityStatus(status=AvailabilityState.OFFLINE, message="Request timeout")
        except httpx.ConnectError as e:
            return SiteAvailabilityStatus(
                status=AvailabilityState.OFFLINE,
                message=classify_connect_error(e),
            )
        except httpx.HTTPError as e:
            logger.warning("site_check_failed", url=url, error=str(e))
            return SiteAvailabilityStatus(
                status=AvailabilityState.OFFLINE,
                message=str(e) or "Unknown error",
            )
        response_time = int((time.perf_counter() - start) * 1000)

        if response.status_code >= 500:
            return SiteAvailabilityStatus(
                status=AvailabilityState.ERROR,
                status_code=response.status_code,
                message=f"HTTP {response.status_code}",
            )

        return SiteAvailabilityStatus(
            status=AvailabilityState.ONLINE,
            status_code=response.status_code,
            response_time=response_time,
            message=f"HTTP {response.status_code} - {response_time}ms",
        )
