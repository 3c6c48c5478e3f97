"""
Interval Bucketing

Buckets irregular timestamped samples into fixed-width windows:
- bucket_samples: averaged, gap-preserving buckets over a closed window
- aggregate_forecast_input: per-series window averages for the prediction API
- zero_filled_series: exact-timestamp chart series with 0 for missing points

All timestamps are normalized to timezone-aware UTC; naive datetimes are
taken to already be UTC.
"""

import math
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Tuple

from kubedash.models.series import RawSample, Bucket, MetricSeries
from kubedash.models.forecasts import ForecastInput


_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def as_utc(ts: datetime) -> datetime:
    """Return `ts` as an aware UTC datetime."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def _require_positive(interval: timedelta) -> None:
    if interval <= timedelta(0):
        raise ValueError(f"Interval must be positive, got {interval}")


def floor_to_interval(ts: datetime, interval: timedelta) -> datetime:
    """
    Round `ts` down to the nearest multiple of `interval` since the Unix epoch.

    Examples:
        floor_to_interval(12:07:31, 5m) -> 12:05:00
        floor_to_interval(12:59:59, 1h) -> 12:00:00
    """
    _require_positive(interval)
    offset = as_utc(ts) - _EPOCH
    return _EPOCH + (offset // interval) * interval


def enumerate_bucket_starts(start: datetime, end: datetime, interval: timedelta) -> List[datetime]:
    """
    Bucket start times from `start` through the bucket containing `end`.

    The first bucket starts exactly at `start`; no epoch alignment is applied.
    """
    _require_positive(interval)
    start = as_utc(start)
    end = as_utc(end)
    if end < start:
        raise ValueError(f"Window end {end.isoformat()} is before window start {start.isoformat()}")

    count = (end - start) // interval + 1
    return [start + i * interval for i in range(count)]


def bucket_samples(
    samples: Iterable[RawSample],
    window_start: datetime,
    window_end: datetime,
    interval: timedelta,
) -> List[Bucket]:
    """
    Average samples into contiguous fixed-width buckets.

    Each sample lands in bucket floor((timestamp - window_start) / interval).
    Samples outside [window_start, window_end] are ignored. The output covers
    window_start through the bucket containing window_end, so its length is
    (window_end - window_start) // interval + 1 regardless of how sparse the
    input is. Buckets that received no samples carry value None.

    Args:
        samples: Samples in any order
        window_start: First bucket start
        window_end: Inclusive end of the window
        interval: Bucket width

    Returns:
        List[Bucket]: Buckets ordered by bucket_start

    Raises:
        ValueError: If interval is not positive or window_end < window_start
    """
    starts = enumerate_bucket_starts(window_start, window_end, interval)
    window_start = starts[0]
    window_end = as_utc(window_end)

    sums = [0.0] * len(starts)
    counts = [0] * len(starts)

    for sample in samples:
        ts = as_utc(sample.timestamp)
        if ts < window_start or ts > window_end:
            continue
        index = (ts - window_start) // interval
        sums[index] += sample.value
        counts[index] += 1

    return [
        Bucket(bucket_start=start, value=(sums[i] / counts[i]) if counts[i] else None)
        for i, start in enumerate(starts)
    ]


def aggregate_forecast_input(
    samples: Iterable[RawSample],
    window_start: datetime,
    interval: timedelta = timedelta(minutes=5),
    window: timedelta = timedelta(hours=1),
) -> List[ForecastInput]:
    """
    Average each series over consecutive [t, t + interval) windows.

    Covers [window_start, window_start + window). Only windows containing at
    least one sample are emitted; each is stamped with the window END and
    its mean is rounded to a whole number. Series are keyed by series_key,
    which becomes the prediction API item id.
    """
    _require_positive(interval)
    window_start = as_utc(window_start)
    window_end = window_start + window

    grouped: Dict[str, List[Tuple[datetime, float]]] = defaultdict(list)
    for sample in samples:
        ts = as_utc(sample.timestamp)
        if window_start <= ts < window_end:
            grouped[sample.series_key].append((ts, sample.value))

    inputs: List[ForecastInput] = []
    for item_id, points in grouped.items():
        sums: Dict[int, float] = defaultdict(float)
        counts: Dict[int, int] = defaultdict(int)
        for ts, value in points:
            index = (ts - window_start) // interval
            sums[index] += value
            counts[index] += 1

        for index in sorted(counts):
            inputs.append(ForecastInput(
                item_id=item_id,
                timestamp=window_start + (index + 1) * interval,
                value=float(round(sums[index] / counts[index])),
            ))

    inputs.sort(key=lambda row: (row.timestamp, row.item_id))
    return inputs


def zero_filled_series(
    samples: Iterable[RawSample],
    series_end: datetime,
    window: timedelta,
    step: timedelta,
) -> MetricSeries:
    """
    Build a chart series from series_end - window through series_end.

    Points are placed on exact timestamp matches only; values are floored to
    whole numbers and every step without a matching sample is 0.
    """
    _require_positive(step)
    series_end = as_utc(series_end)
    series_start = series_end - window

    by_timestamp = {as_utc(sample.timestamp): math.floor(sample.value) for sample in samples}

    series = MetricSeries()
    for ts in enumerate_bucket_starts(series_start, series_end, step):
        series.timestamps.append(ts)
        series.values.append(float(by_timestamp.get(ts, 0)))
    return series
