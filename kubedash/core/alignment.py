"""
Forecast Alignment

Lines up observed usage with stored forecasts so both can be charted on the
same time axis.

Forecasts are written on a fixed cadence and the newest point is always a
prediction with no observation behind it yet. The historical window is
therefore anchored at the second most recent forecast timestamp:

    forecasts (newest first):  T, T-5m, T-10m, ...
    window:                    [T-5m - 1h, T-5m]
    buckets:                   13 x 5m, starting at T-5m - 1h

With fewer than two forecasts there is nothing to anchor on and the most
recent raw samples are returned as-is (degraded mode, never an error).
"""

from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from kubedash.core.bucketing import as_utc, bucket_samples
from kubedash.models.series import RawSample, Bucket
from kubedash.models.forecasts import ForecastPoint, ForecastComparisonPoint, AlignmentConfig


FORECAST_RESOURCES = ("cpu", "memory")


def forecast_item_id(name: str, resource: str) -> str:
    """
    Forecast series key for a node or instance: "{name}_cpu" / "{name}_memory".

    Raises:
        ValueError: If resource is not cpu or memory
    """
    resource = resource.lower()
    if resource not in FORECAST_RESOURCES:
        raise ValueError(f"Unsupported forecast resource '{resource}'. Expected one of {FORECAST_RESOURCES}")
    return f"{name}_{resource}"


def latest_forecasts(forecast_points: Sequence[ForecastPoint], series_key: str) -> List[ForecastPoint]:
    """Forecasts for `series_key`, newest first."""
    matching = [point for point in forecast_points if point.series_key == series_key]
    matching.sort(key=lambda point: as_utc(point.timestamp), reverse=True)
    return matching


def forecast_window(
    forecast_points: Sequence[ForecastPoint],
    series_key: str,
    history: timedelta = timedelta(hours=1),
) -> Optional[Tuple[datetime, datetime]]:
    """
    Historical window [end - history, end] where end is the second most
    recent forecast timestamp, or None when fewer than two forecasts exist.
    """
    points = latest_forecasts(forecast_points, series_key)
    if len(points) < 2:
        return None
    end = as_utc(points[1].timestamp)
    return end - history, end


def forecast_cadence(points: Sequence[ForecastPoint], default: timedelta) -> timedelta:
    """Spacing between the two newest forecasts (newest first), or `default` if not positive."""
    if len(points) >= 2:
        cadence = as_utc(points[0].timestamp) - as_utc(points[1].timestamp)
        if cadence > timedelta(0):
            return cadence
    return default


def _fallback_buckets(raw_samples: Sequence[RawSample], count: int) -> List[Bucket]:
    recent = sorted(raw_samples, key=lambda sample: as_utc(sample.timestamp), reverse=True)[:count]
    return [
        Bucket(bucket_start=as_utc(sample.timestamp), value=sample.value)
        for sample in reversed(recent)
    ]


def align_actual_to_forecast(
    series_key: str,
    forecast_points: Sequence[ForecastPoint],
    raw_samples: Sequence[RawSample],
    config: Optional[AlignmentConfig] = None,
) -> List[Bucket]:
    """
    Bucket raw samples onto the time axis of the forecasts for `series_key`.

    Args:
        series_key: Forecast item id, e.g. "node-1_cpu"
        forecast_points: Stored forecasts in any order; other series are ignored
        raw_samples: Observations belonging to the series, in any order
        config: Window length, default cadence and fallback size

    Returns:
        List[Bucket]: Chronological buckets. In the aligned case there are
        history // cadence + 1 of them, ending at the anchor forecast, with
        None where nothing was observed. A cadence that does not divide the
        history shortens the window to the largest whole number of steps.
        In the fallback case, one bucket per recent raw sample.
    """
    config = config or AlignmentConfig()
    points = latest_forecasts(forecast_points, series_key)

    if len(points) < 2:
        return _fallback_buckets(raw_samples, config.fallback_count)

    window_end = as_utc(points[1].timestamp)
    cadence = forecast_cadence(points, config.interval)
    # Whole cadence steps back from the anchor, so every bucket starts on a forecast timestamp
    window_start = window_end - (config.history_window // cadence) * cadence

    in_window = sorted(
        (sample for sample in raw_samples if window_start <= as_utc(sample.timestamp) <= window_end),
        key=lambda sample: as_utc(sample.timestamp),
    )
    return bucket_samples(in_window, window_start, window_end, cadence)


def truncate_to_minute(ts: datetime) -> datetime:
    return as_utc(ts).replace(second=0, microsecond=0)


def match_actual_to_forecast(
    forecast_points: Sequence[ForecastPoint],
    actual_buckets: Sequence[Bucket],
) -> List[ForecastComparisonPoint]:
    """
    Pair each forecast with the actual bucket at the same minute.

    Both sides are truncated to the minute before comparison so sub-minute
    jitter between collection and forecasting does not break the match. A
    forecast without an actual gets actual=None, never 0.
    """
    actual_by_minute: Dict[datetime, Optional[float]] = {}
    for bucket in actual_buckets:
        minute = truncate_to_minute(bucket.bucket_start)
        if bucket.value is not None or minute not in actual_by_minute:
            actual_by_minute[minute] = bucket.value

    ordered = sorted(forecast_points, key=lambda point: as_utc(point.timestamp))
    return [
        ForecastComparisonPoint(
            timestamp=as_utc(point.timestamp),
            actual=actual_by_minute.get(truncate_to_minute(point.timestamp)),
            mean=point.mean,
            lower_bound=point.lower_bound,
            upper_bound=point.upper_bound,
        )
        for point in ordered
    ]
