"""Cloudflare GraphQL analytics client."""

from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
import structlog

from edgepulse.config import Settings
from edgepulse.errors import UpstreamQueryError
from edgepulse.models.bucket import RawHourlyBucket
from edgepulse.models.results import StageResult

logger = structlog.get_logger(__name__)

GRAPHQL_PATH = "/client/v4/graphql"

PRIMARY_WINDOW = "primary"
SECONDARY_WINDOW = "secondary"

TIMESERIES_QUERY = """
query ZoneTimeseries($zoneTag: string, $since: Time, $until: Time, $limit: Int) {
  viewer {
    zones(filter: {zoneTag: $zoneTag}) {
      httpRequests1hGroups(
        limit: $limit
        filter: {datetime_geq: $since, datetime_lt: $until}
        orderBy: [datetime_ASC]
      ) {
        dimensions { datetime }
        sum {
          requests
          pageViews
          bytes
          threats
          cachedRequests
          cachedBytes
          responseStatusMap { edgeResponseStatus requests }
        }
        uniq { uniques }
      }
    }
  }
}
"""

GEOGRAPHY_QUERY = """
query ZoneGeography($zoneTag: string, $since: Time, $until: Time, $limit: Int) {
  viewer {
    zones(filter: {zoneTag: $zoneTag}) {
      httpRequests1hGroups(
        limit: $limit
        filter: {datetime_geq: $since, datetime_lt: $until}
        orderBy: [datetime_ASC]
      ) {
        dimensions { datetime }
        sum { countryMap { clientCountryName requests bytes } }
      }
    }
  }
}
"""


def format_time(value: datetime) -> str:
    """Render a timestamp the way the GraphQL Time scalar expects."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class CloudflareClient:
    """
    Issues the two hourly analytics queries for one zone.

    Each query returns a StageResult; transport, HTTP and GraphQL errors
    become failures instead of exceptions so that one window failing
    never prevents the other from being attempted.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._client: httpx.AsyncClient | None = None

    async def get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._settings.cloudflare_api_base_url,
                headers={
                    "Authorization": f"Bearer {self._settings.cloudflare_api_token}",
                    "Content-Type": "application/json",
                },
                timeout=httpx.Timeout(self._settings.upstream_timeout_seconds),
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def fetch_primary_window(self, now: datetime) -> StageResult[list[RawHourlyBucket]]:
        """Hourly totals and status histograms over the last 24 hours."""
        since = now - timedelta(hours=self._settings.primary_window_hours)
        return await self._query(
            window=PRIMARY_WINDOW,
            query=TIMESERIES_QUERY,
            since=since,
            until=now,
            limit=self._settings.primary_window_hours,
        )

    async def fetch_secondary_window(self, now: datetime) -> StageResult[list[RawHourlyBucket]]:
        """Hourly country histograms over the last 72 hours."""
        since = now - timedelta(hours=self._settings.secondary_window_hours)
        return await self._query(
            window=SECONDARY_WINDOW,
            query=GEOGRAPHY_QUERY,
            since=since,
            until=now,
            limit=self._settings.secondary_query_limit,
        )

    async def _query(
        self,
        window: str,
        query: str,
        since: datetime,
        until: datetime,
        limit: int,
    ) -> StageResult[list[RawHourlyBucket]]:
        payload = {
            "query": query,
            "variables": {
                "zoneTag": self._settings.cloudflare_zone_id,
                "since": format_time(since),
                "until": format_time(until),
                "limit": limit,
            },
        }

        client = await self.get_client()
        try:
            response = await client.post(GRAPHQL_PATH, json=payload)
        except httpx.TimeoutException:
            return StageResult.failure(
                UpstreamQueryError(f"{window} query timed out", window=window)
            )
        except httpx.HTTPError as e:
            return StageResult.failure(
                UpstreamQueryError(f"{window} query failed: {e}", window=window)
            )

        if response.status_code >= 400:
            logger.error(
                "graphql_http_error",
                window=window,
                status_code=response.status_code,
                body=response.text[:500],
            )
            return StageResult.failure(
                UpstreamQueryError(
                    f"{window} query returned HTTP {response.status_code}",
                    window=window,
                    status_code=response.status_code,
                )
            )

        try:
            body = response.json()
        except ValueError:
            return StageResult.failure(
                UpstreamQueryError(f"{window} query returned invalid JSON", window=window)
            )

        try:
            buckets = self._parse_groups(body, window)
        except UpstreamQueryError as e:
            return StageResult.failure(e)

        logger.debug("graphql_query_completed", window=window, buckets=len(buckets))
        return StageResult.success(buckets)

    @staticmethod
    def _parse_groups(body: Any, window: str) -> list[RawHourlyBucket]:
        """Extract hourly groups from a GraphQL response body."""
        if not isinstance(body, dict):
            raise UpstreamQueryError(f"{window} query returned an unexpected body", window=window)

        data = body.get("data")
        errors = body.get("errors") or []
        if data is None:
            messages = "; ".join(str(err.get("message", err)) for err in errors if isinstance(err, dict))
            raise UpstreamQueryError(
                f"{window} query returned no data: {messages or 'empty response'}",
                window=window,
            )
        if errors:
            logger.warning("graphql_partial_errors", window=window, errors=errors)

        try:
            if not isinstance(data, dict):
                raise TypeError(f"data is {type(data).__name__}, expected object")
            viewer = data.get("viewer") or {}
            if not isinstance(viewer, dict):
                raise TypeError(f"viewer is {type(viewer).__name__}, expected object")
            zones = viewer.get("zones") or []
            if not zones:
                return []
            zone = zones[0]
            if not isinstance(zone, dict):
                raise TypeError(f"zone is {type(zone).__name__}, expected object")
            groups = zone.get("httpRequests1hGroups") or []
            return [RawHourlyBucket.from_group(group) for group in groups]
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise UpstreamQueryError(
                f"{window} query returned a malformed response: {e}",
                window=window,
            ) from e
