"""
API Statistics Service - Request, error and latency figures for monitored services.

Reads the http_requests_total / http_errors_total / http_response_time_*
series from the API Prometheus and turns them into totals, chart series and
a per-endpoint performance table.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from kubedash.core.api_statistics import (
    average_response_series,
    build_endpoint_performance,
    error_rate_pct,
    safe_ratio,
    error_rate_series,
)
from kubedash.core.bucketing import floor_to_interval, zero_filled_series
from kubedash.core.prometheus_decoder import (
    decode_instant_scalar,
    decode_instant_vector,
    decode_range_vector,
    group_histogram_buckets,
    parse_duration,
)
from kubedash.models.api_statistics import ApiStatisticsSummary, EndpointPerformance
from kubedash.models.series import MetricSeries, RawSample
from kubedash.services.prometheus import PrometheusClient, build_query

logger = logging.getLogger(__name__)

ENDPOINT_LABELS = ("endpoint", "method")

SERIES_METRICS = ("requests", "error-rate", "response-time")


def _first_series(samples: List[RawSample]) -> List[RawSample]:
    if not samples:
        return []
    key = samples[0].series_key
    return [sample for sample in samples if sample.series_key == key]


class ApiStatisticsService:
    def __init__(self, prometheus: PrometheusClient, percentile: float = 0.9):
        self.prometheus = prometheus
        self.percentile = percentile

    def _scalar(self, name: str, **params: str) -> float:
        return decode_instant_scalar(self.prometheus.query(build_query(name, **params)))

    def summary(self, window: str = "1h") -> ApiStatisticsSummary:
        """Totals across all endpoints over `window`."""
        total = self._scalar("requests_total", window=window)
        errors = self._scalar("errors_total", window=window)
        response_sum = self._scalar("response_time_sum", window=window)
        response_count = self._scalar("response_time_count", window=window)

        return ApiStatisticsSummary(
            window=window,
            total_requests=total,
            error_rate_pct=error_rate_pct(errors, total),
            avg_response_ms=safe_ratio(response_sum, response_count),
            percentile=self.percentile,
        )

    def performance(self) -> List[EndpointPerformance]:
        """Per-(endpoint, method) latency and error table."""
        def vector(name: str):
            return decode_instant_vector(self.prometheus.query(build_query(name)), ENDPOINT_LABELS)

        totals = vector("endpoint_requests")
        errors = vector("endpoint_errors")
        sums = vector("endpoint_response_time_sum")
        counts = vector("endpoint_response_time_count")
        buckets = group_histogram_buckets(
            self.prometheus.query(build_query("endpoint_response_time_bucket")),
            key=lambda labels: tuple(labels.get(label, "") for label in ENDPOINT_LABELS),
        )

        if not totals:
            logger.warning("No endpoint request metrics found.")
        return build_endpoint_performance(totals, errors, sums, counts, buckets, self.percentile)

    def _series(self, name: str, window: str, step: str, end: datetime) -> MetricSeries:
        payload = self.prometheus.query(build_query(name, window=window, step=step))
        samples = _first_series(decode_range_vector(payload))
        if not samples:
            logger.warning("No metrics available for %s.", name)
        return zero_filled_series(samples, end, parse_duration(window), parse_duration(step))

    def series(self, metric: str, window: str = "1h", step: str = "5m",
               now: Optional[datetime] = None) -> MetricSeries:
        """
        Zero-filled chart series ending at the most recent step boundary.

        Args:
            metric: "requests", "error-rate" or "response-time"
            window: PromQL duration covered by the series
            step: PromQL duration between points

        Raises:
            ValueError: On an unknown metric or an invalid window/step
        """
        if metric not in SERIES_METRICS:
            raise ValueError(f"Unknown series '{metric}'. Expected one of {SERIES_METRICS}")

        end = floor_to_interval(now or datetime.now(timezone.utc), parse_duration(step))

        if metric == "requests":
            return self._series("requests_series", window, step, end)
        if metric == "error-rate":
            errors = self._series("errors_series", window, step, end)
            totals = self._series("requests_series", window, step, end)
            return error_rate_series(errors, totals)

        sums = self._series("response_time_sum_series", window, step, end)
        counts = self._series("response_time_count_series", window, step, end)
        return average_response_series(sums, counts)
