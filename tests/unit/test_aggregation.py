"""Unit tests for the aggregation engine."""

import pytest

from edgepulse.schemas.analytics import Totals
from edgepulse.services.aggregation import (
    SUMMED_FIELDS,
    aggregate,
    breakdown_statuses,
    derive_cache_metrics,
    rollup_countries,
)
from tests.helpers import make_bucket, primary_buckets


class TestAggregate:
    """Tests for totals and time series construction."""

    def test_totals_equal_sum_of_points(self):
        """Every summed field should match the sum over the series."""
        result = aggregate(primary_buckets())

        for name in SUMMED_FIELDS:
            assert getattr(result.totals, name) == sum(
                getattr(point, name) for point in result.timeseries
            )

        assert result.totals.requests == 2000
        assert result.totals.bytes == 8_000_000
        assert result.totals.cached_requests == 800
        assert result.totals.uniques == 240

    def test_one_point_per_bucket(self):
        """No padding: fewer buckets means fewer points."""
        buckets = [make_bucket(h, requests=10) for h in range(5)]

        result = aggregate(buckets)

        assert len(result.timeseries) == 5

    def test_points_sorted_ascending(self):
        """Points should be ordered by timestamp even if upstream is not."""
        buckets = [make_bucket(1, requests=1), make_bucket(5, requests=5), make_bucket(3, requests=3)]

        result = aggregate(buckets)

        timestamps = [point.timestamp for point in result.timeseries]
        assert timestamps == sorted(timestamps)
        assert [point.requests for point in result.timeseries] == [5, 3, 1]

    def test_empty_window(self):
        """No buckets should give zero totals and an empty series."""
        result = aggregate([])

        assert result.totals == Totals()
        assert result.timeseries == []
        assert result.http_status.total == 0


class TestStatusBreakdown:
    """Tests for HTTP status class grouping."""

    def test_groups_by_class(self):
        """Codes should land in their status class."""
        breakdown = breakdown_statuses(primary_buckets())

        assert breakdown.status_2xx == 1700
        assert breakdown.status_3xx == 210
        assert breakdown.status_4xx == 80
        assert breakdown.status_5xx == 10

    def test_out_of_range_codes_dropped(self):
        """Codes outside [200, 600) are not counted anywhere."""
        bucket = make_bucket(0, requests=100, statuses={101: 10, 199: 5, 200: 50, 600: 20, 0: 15})

        breakdown = breakdown_statuses([bucket])

        assert breakdown.status_2xx == 50
        assert breakdown.total == 50

    def test_boundaries_are_half_open(self):
        """299 is 2xx, 300 is 3xx, 599 is 5xx."""
        bucket = make_bucket(0, requests=100, statuses={299: 1, 300: 2, 499: 3, 500: 4, 599: 5})

        breakdown = breakdown_statuses([bucket])

        assert breakdown.status_2xx == 1
        assert breakdown.status_3xx == 2
        assert breakdown.status_4xx == 3
        assert breakdown.status_5xx == 9

    def test_never_exceeds_hour_requests(self):
        """An inconsistent histogram is capped at the hour's request count."""
        bucket = make_bucket(0, requests=100, statuses={200: 90, 404: 50, 500: 30})

        result = aggregate([bucket])

        assert result.http_status.total <= result.totals.requests
        assert result.http_status.status_2xx == 90
        assert result.http_status.status_4xx == 10
        assert result.http_status.status_5xx == 0

    def test_accumulates_across_hours(self):
        """Histograms from every hour in the window are summed."""
        buckets = [make_bucket(h, requests=10, statuses={200: 8, 503: 2}) for h in range(24)]

        breakdown = breakdown_statuses(buckets)

        assert breakdown.status_2xx == 192
        assert breakdown.status_5xx == 48


class TestCountryRollup:
    """Tests for the geographic rollup."""

    def test_sorted_descending(self):
        """Busiest country first."""
        bucket = make_bucket(0, countries={"US": 100, "DE": 50, "FR": 200})

        rollup = rollup_countries([bucket])

        assert [entry.country for entry in rollup] == ["FR", "US", "DE"]

    def test_pageviews_estimated_from_requests(self):
        """Per-country page views are requests times the ratio, rounded."""
        bucket = make_bucket(0, countries={"US": 100, "DE": 50, "FR": 200})

        rollup = rollup_countries([bucket])

        assert [entry.pageviews for entry in rollup] == [160, 80, 40]

    def test_sums_across_buckets(self):
        """The same country in several hours is summed."""
        buckets = [
            make_bucket(70, countries={"Japan": 30, "Brazil": 10}),
            make_bucket(40, countries={"Brazil": 25}),
            make_bucket(2, countries={"Japan": 5}),
        ]

        rollup = rollup_countries(buckets)

        assert [(entry.country, entry.requests) for entry in rollup] == [
            ("Japan", 35),
            ("Brazil", 35),
        ]

    def test_truncated_to_limit(self):
        """Only the top ten countries are kept."""
        countries = {f"Country {i}": i * 10 for i in range(1, 16)}
        bucket = make_bucket(0, countries=countries)

        rollup = rollup_countries([bucket])

        assert len(rollup) == 10
        assert rollup[0].country == "Country 15"
        assert rollup[-1].country == "Country 6"

    def test_ties_keep_first_seen_order(self):
        """Stable sort: equal counts stay in insertion order."""
        bucket = make_bucket(0, countries={"Chile": 40, "Peru": 40, "Canada": 90, "Spain": 40})

        rollup = rollup_countries([bucket])

        assert [entry.country for entry in rollup] == ["Canada", "Chile", "Peru", "Spain"]

    def test_custom_ratio_and_limit(self):
        bucket = make_bucket(0, countries={"US": 100, "DE": 50, "FR": 200})

        rollup = rollup_countries([bucket], ratio=0.5, limit=2)

        assert [(entry.country, entry.pageviews) for entry in rollup] == [("FR", 100), ("US", 50)]

    def test_empty_input(self):
        assert rollup_countries([]) == []


class TestCacheMetrics:
    """Tests for derived cache efficiency."""

    def test_ratio_and_estimates(self):
        """The request cache ratio is applied to page views and uniques."""
        totals = Totals(requests=200, cached_requests=50, pageviews=90, uniques=10, cached_bytes=1234)

        metrics = derive_cache_metrics(totals)

        assert metrics.cache_ratio == pytest.approx(0.25)
        assert metrics.estimated_cached_pageviews == 23  # 22.5 rounds half up
        assert metrics.estimated_cached_uniques == 3  # 2.5 rounds half up
        assert metrics.cached_requests == 50
        assert metrics.cached_bytes == 1234

    def test_zero_requests_gives_zero_ratio(self):
        """No requests means ratio 0 whatever cachedRequests says."""
        totals = Totals(requests=0, cached_requests=75, pageviews=10, uniques=4)

        metrics = derive_cache_metrics(totals)

        assert metrics.cache_ratio == 0
        assert metrics.estimated_cached_pageviews == 0
        assert metrics.estimated_cached_uniques == 0
