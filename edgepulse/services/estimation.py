"""
Estimation heuristics for values upstream does not measure directly.

Some Cloudflare plans report zero page views for every hour. When that
happens page views are approximated from requests with a fixed ratio.
The same ratio estimates per-country page views, and the observed cache
ratio on requests is applied to page views and uniques.
"""

import math

from edgepulse.schemas.analytics import TimeseriesPoint, Totals

# Page views per request assumed when upstream does not report them.
PAGEVIEW_ESTIMATE_RATIO = 0.8


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    if value < 0:
        return -math.floor(-value + 0.5)
    return math.floor(value + 0.5)


def estimate_pageviews(requests: int, ratio: float = PAGEVIEW_ESTIMATE_RATIO) -> int:
    """Approximate page views from a request count."""
    return round_half_up(requests * ratio)


def substitute_zero_pageviews(
    timeseries: list[TimeseriesPoint],
    totals: Totals,
    ratio: float = PAGEVIEW_ESTIMATE_RATIO,
) -> tuple[list[TimeseriesPoint], Totals, bool]:
    """
    Replace page views with estimates when none were reported.

    Substitution is all-or-nothing: it runs only if the series is non-empty
    and every point reports zero page views. One non-zero point anywhere
    leaves the whole series untouched.

    Returns:
        (timeseries, totals, substituted)
    """
    if not timeseries or any(point.pageviews != 0 for point in timeseries):
        return timeseries, totals, False

    estimated = [
        point.model_copy(update={"pageviews": estimate_pageviews(point.requests, ratio)})
        for point in timeseries
    ]
    totals = totals.model_copy(
        update={"pageviews": sum(point.pageviews for point in estimated)}
    )
    return estimated, totals, True
