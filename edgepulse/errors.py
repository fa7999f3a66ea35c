"""Error taxonomy for the analytics pipeline."""


class AnalyticsError(Exception):
    """Base class for all EdgePulse errors."""


class ConfigurationError(AnalyticsError):
    """Required configuration is missing or invalid. Fatal at startup."""


class UpstreamQueryError(AnalyticsError):
    """A single analytics query against Cloudflare failed."""

    def __init__(
        self,
        message: str,
        window: str,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.window = window
        self.status_code = status_code


class UpstreamUnavailable(AnalyticsError):
    """The primary window could not be fetched; the cycle has no fresh data."""


class PartialData(AnalyticsError):
    """The secondary window failed; the geographic rollup is empty this cycle."""


class AvailabilityCheckFailed(AnalyticsError):
    """The site availability checker crashed. Surfaced only as a status field."""
