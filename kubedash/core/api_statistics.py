"""
API Latency and Error Aggregation

Derives per-endpoint latency figures from Prometheus cumulative histograms
and error rates from request/error counters.

Histogram convention: each bucket counts every observation <= its `le`
bound, so counts are non-decreasing and the "+Inf" bucket holds the total.
Latencies are never negative; a negative bound is reported as 0.
"""

import math
from typing import List, Mapping, Optional, Sequence, Tuple

from kubedash.core.prometheus_decoder import parse_le, sort_histogram_buckets
from kubedash.models.api_statistics import HistogramBucket, EndpointPerformance
from kubedash.models.series import MetricSeries

EndpointKey = Tuple[str, str]


def safe_ratio(numerator: float, denominator: float) -> float:
    """numerator / denominator, or 0 when the denominator is not positive."""
    if denominator > 0:
        return numerator / denominator
    return 0.0


def error_rate_pct(error_count: float, total_requests: float) -> float:
    return safe_ratio(error_count, total_requests) * 100


def _finite_bound(bucket: HistogramBucket) -> float:
    bound = parse_le(bucket.le)
    return max(bound, 0.0) if math.isfinite(bound) else 0.0


def histogram_min(buckets: Sequence[HistogramBucket]) -> float:
    """Bound of the lowest bucket; 0 when there are no buckets or it is "+Inf"."""
    if not buckets:
        return 0.0
    return _finite_bound(buckets[0])


def histogram_max(buckets: Sequence[HistogramBucket]) -> float:
    """
    Highest finite bound.

    When the last bucket is "+Inf" the bound of the bucket before it is used;
    a histogram holding only "+Inf" has no finite bound and yields 0.
    """
    if not buckets:
        return 0.0
    last = buckets[-1]
    if math.isinf(parse_le(last.le)):
        if len(buckets) < 2:
            return 0.0
        return _finite_bound(buckets[-2])
    return _finite_bound(last)


def histogram_percentile(
    buckets: Sequence[HistogramBucket],
    percentile: float = 0.9,
    max_bound: Optional[float] = None,
) -> float:
    """
    Upper bound of the first bucket whose cumulative count reaches
    `percentile` of the total (the last bucket's count).

    The counts are already cumulative and are compared directly. If the
    reached bucket is "+Inf", `max_bound` (default: histogram_max) is
    returned instead. No buckets or a zero total yields 0.
    """
    if not 0 < percentile <= 1:
        raise ValueError(f"Percentile must be in (0, 1], got {percentile}")
    if not buckets:
        return 0.0

    total = buckets[-1].cumulative_count
    if total <= 0:
        return 0.0

    if max_bound is None:
        max_bound = histogram_max(buckets)

    threshold = percentile * total
    for bucket in buckets:
        if bucket.cumulative_count >= threshold:
            bound = parse_le(bucket.le)
            return max_bound if math.isinf(bound) else max(bound, 0.0)
    return max_bound


def aggregate_endpoint_stats(
    endpoint: str,
    method: str,
    total_requests: float,
    error_count: float,
    response_time_sum: float,
    response_time_count: float,
    histogram_buckets: Sequence[HistogramBucket],
    percentile: float = 0.9,
) -> EndpointPerformance:
    """
    Combine counters and histogram buckets into EndpointPerformance.

    Args:
        endpoint: Endpoint label
        method: HTTP method label
        total_requests: http_requests_total
        error_count: http_errors_total
        response_time_sum: http_response_time_sum (ms)
        response_time_count: http_response_time_count
        histogram_buckets: http_response_time_bucket series, any order
        percentile: Target percentile for p90_response_ms, as a fraction

    Returns:
        EndpointPerformance: All figures 0 where their denominator is 0
    """
    buckets = sort_histogram_buckets(histogram_buckets)
    max_ms = histogram_max(buckets)

    return EndpointPerformance(
        endpoint=endpoint,
        method=method,
        total_requests=max(total_requests, 0.0),
        avg_response_ms=max(safe_ratio(response_time_sum, response_time_count), 0.0),
        min_response_ms=histogram_min(buckets),
        max_response_ms=max_ms,
        p90_response_ms=histogram_percentile(buckets, percentile, max_ms),
        error_rate_pct=max(error_rate_pct(error_count, total_requests), 0.0),
    )


def build_endpoint_performance(
    totals: Mapping[EndpointKey, float],
    errors: Mapping[EndpointKey, float],
    sums: Mapping[EndpointKey, float],
    counts: Mapping[EndpointKey, float],
    buckets: Mapping[EndpointKey, Sequence[HistogramBucket]],
    percentile: float = 0.9,
) -> List[EndpointPerformance]:
    """
    Join the decoded per-(endpoint, method) query results.

    Rows are driven by `totals`; any other input missing a key contributes 0
    (or no buckets). Output is sorted by endpoint, then method.
    """
    rows = []
    for key in sorted(totals):
        endpoint, method = key
        rows.append(aggregate_endpoint_stats(
            endpoint=endpoint,
            method=method,
            total_requests=totals[key],
            error_count=errors.get(key, 0.0),
            response_time_sum=sums.get(key, 0.0),
            response_time_count=counts.get(key, 0.0),
            histogram_buckets=buckets.get(key, []),
            percentile=percentile,
        ))
    return rows


# ============================================================================
# Chart Series
# ============================================================================

def _pointwise(numerator: MetricSeries, denominator: MetricSeries, scale: float) -> MetricSeries:
    values = []
    for i, denom in enumerate(denominator.values):
        num = numerator.values[i] if i < len(numerator.values) else 0.0
        values.append(round(safe_ratio(num, denom) * scale, 2))
    return MetricSeries(timestamps=list(denominator.timestamps), values=values)


def error_rate_series(errors: MetricSeries, totals: MetricSeries) -> MetricSeries:
    """Per-point error percentage on the timestamps of `totals`, rounded to 2 decimals."""
    return _pointwise(errors, totals, 100.0)


def average_response_series(sums: MetricSeries, counts: MetricSeries) -> MetricSeries:
    """Per-point average response time on the timestamps of `counts`, rounded to 2 decimals."""
    return _pointwise(sums, counts, 1.0)
