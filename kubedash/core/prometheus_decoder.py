"""
Prometheus Response Decoding

Turns Prometheus HTTP API payloads into plain values:
- range vectors (matrix) -> RawSample lists
- instant vectors / scalars -> floats, optionally keyed by label tuple
- histogram bucket series -> HistogramBucket lists sorted by numeric `le`

Numeric strings that cannot be parsed decode to 0, and samples whose
timestamp cannot be converted are dropped. Payloads that do not have the
documented shape raise PrometheusResponseError, since they indicate a broken
client or contract rather than missing data.
"""

import math
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from kubedash.models.series import RawSample
from kubedash.models.api_statistics import HistogramBucket


INF_LABEL = "+Inf"

_DURATION_PATTERN = re.compile(r'^(\d+(?:\.\d+)?)([smhdw])$')
_DURATION_UNITS = {
    "s": timedelta(seconds=1),
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
    "d": timedelta(days=1),
    "w": timedelta(weeks=1),
}


class PrometheusResponseError(ValueError):
    """Raised when a Prometheus payload does not have the expected structure."""
    pass


# ============================================================================
# Low-level parsing
# ============================================================================

def parse_sample_value(raw: Any) -> float:
    """Parse a Prometheus sample value string; anything unparseable is 0."""
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(value) or math.isinf(value):
        return 0.0
    return value


def parse_timestamp(raw: Any) -> Optional[datetime]:
    """
    Convert Unix seconds (int, float or numeric string) to an aware UTC datetime.

    Returns None for anything that is not a finite, representable time.
    """
    try:
        seconds = float(raw)
    except (TypeError, ValueError, OverflowError):
        return None
    if not math.isfinite(seconds):
        return None
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (ValueError, OverflowError, OSError):
        return None


def parse_le(le: str) -> float:
    """
    Numeric value of a histogram `le` label.

    "+Inf" maps to math.inf so it always sorts last. Labels that are not
    numbers also map to math.inf.
    """
    if le in (INF_LABEL, "Inf", "inf"):
        return math.inf
    try:
        return float(le)
    except (TypeError, ValueError):
        return math.inf


def sort_histogram_buckets(buckets: Sequence[HistogramBucket]) -> List[HistogramBucket]:
    """Sort buckets ascending by numeric bound, "+Inf" last."""
    return sorted(buckets, key=lambda bucket: parse_le(bucket.le))


def parse_duration(text: str) -> timedelta:
    """
    Parse a PromQL duration such as "30s", "5m", "1h", "1d" or "1w".

    Raises:
        ValueError: If the text is empty or uses an unknown unit
    """
    if not text:
        raise ValueError("Duration cannot be empty")
    match = _DURATION_PATTERN.match(text.strip())
    if not match:
        raise ValueError(f"Invalid PromQL duration: {text}")
    amount, unit = match.groups()
    return float(amount) * _DURATION_UNITS[unit]


# ============================================================================
# Envelope helpers
# ============================================================================

def _result(payload: Any) -> Any:
    if not isinstance(payload, Mapping):
        raise PrometheusResponseError(f"Payload must be an object, got {type(payload).__name__}")
    if payload.get("status") == "error":
        error_type = payload.get("errorType", "unknown")
        raise PrometheusResponseError(f"Prometheus returned an error ({error_type}): {payload.get('error', '')}")
    data = payload.get("data")
    if not isinstance(data, Mapping):
        raise PrometheusResponseError("Payload is missing 'data'")
    if "result" not in data:
        raise PrometheusResponseError("Payload is missing 'data.result'")
    return data["result"]


def _series_list(payload: Any) -> List[Mapping[str, Any]]:
    result = _result(payload)
    if result is None:
        return []
    if not isinstance(result, list):
        raise PrometheusResponseError("'data.result' must be a list")
    for series in result:
        if not isinstance(series, Mapping):
            raise PrometheusResponseError("Each result entry must be an object")
    return result


def _pair(raw: Any) -> Tuple[Any, Any]:
    if not isinstance(raw, (list, tuple)) or len(raw) != 2:
        raise PrometheusResponseError(f"Sample must be a [timestamp, value] pair, got {raw!r}")
    return raw[0], raw[1]


def _labels(series: Mapping[str, Any]) -> Dict[str, str]:
    labels = series.get("metric") or {}
    if not isinstance(labels, Mapping):
        raise PrometheusResponseError("'metric' must be an object")
    return {str(k): str(v) for k, v in labels.items()}


def series_identity(labels: Mapping[str, str]) -> str:
    """
    Stable text rendering of a label set: name{k="v",...}.

    Labels are sorted by name; __name__ is rendered as the prefix.
    """
    name = labels.get("__name__", "")
    pairs = ",".join(f'{k}="{v}"' for k, v in sorted(labels.items()) if k != "__name__")
    return f"{name}{{{pairs}}}"


# ============================================================================
# Decoders
# ============================================================================

def decode_range_vector(payload: Any, key_label: Optional[str] = None) -> List[RawSample]:
    """
    Decode a matrix result into RawSamples.

    Args:
        payload: Parsed JSON from /api/v1/query_range (or a subquery via /query)
        key_label: Label whose value becomes series_key; defaults to the
            full label-set rendering

    Returns:
        List[RawSample]: Samples of every series, in response order; samples
        whose timestamp cannot be converted are skipped

    Raises:
        PrometheusResponseError: If a series has no 'values' or a sample is not a pair
    """
    samples: List[RawSample] = []
    for series in _series_list(payload):
        labels = _labels(series)
        if key_label is not None:
            series_key = labels.get(key_label, "")
        else:
            series_key = series_identity(labels)

        values = series.get("values")
        if not isinstance(values, list):
            raise PrometheusResponseError(f"Series {series_key!r} has no 'values' list")

        for raw in values:
            ts, value = _pair(raw)
            timestamp = parse_timestamp(ts)
            if timestamp is None:
                continue
            samples.append(RawSample(
                timestamp=timestamp,
                value=parse_sample_value(value),
                series_key=series_key,
            ))
    return samples


def decode_instant_scalar(payload: Any) -> float:
    """
    Decode a single-value query.

    Accepts both the vector form (first element's value[1]) and the scalar
    form where data.result is itself [ts, "value"]. An empty vector is 0.
    """
    result = _result(payload)
    if result is None:
        return 0.0
    if isinstance(result, list) and len(result) == 2 and not isinstance(result[0], Mapping):
        _, value = _pair(result)
        return parse_sample_value(value)

    series_list = _series_list(payload)
    if not series_list:
        return 0.0
    first = series_list[0]
    if "value" not in first:
        raise PrometheusResponseError("Vector element has no 'value'")
    _, value = _pair(first["value"])
    return parse_sample_value(value)


def decode_instant_vector(payload: Any, label_keys: Sequence[str]) -> Dict[Tuple[str, ...], float]:
    """
    Decode a vector result into {label tuple: value}.

    The tuple holds the values of `label_keys` in order, with "" for labels a
    series does not carry. When two series share a tuple the later one wins.
    """
    decoded: Dict[Tuple[str, ...], float] = {}
    for series in _series_list(payload):
        labels = _labels(series)
        if "value" not in series:
            raise PrometheusResponseError("Vector element has no 'value'")
        _, value = _pair(series["value"])
        key = tuple(labels.get(label, "") for label in label_keys)
        decoded[key] = parse_sample_value(value)
    return decoded


def decode_histogram_buckets(
    payload: Any,
    match: Optional[Mapping[str, str]] = None,
) -> List[HistogramBucket]:
    """
    Decode the `le` buckets of one histogram from a vector result.

    Args:
        payload: Vector result of e.g. `sum by (endpoint, method, le) (..._bucket)`
        match: Labels a series must carry to be kept, e.g. {"endpoint": "/x", "method": "GET"}

    Returns:
        List[HistogramBucket]: Sorted by numeric bound, "+Inf" last
    """
    return group_histogram_buckets(payload, lambda labels: (), match).get((), [])


def group_histogram_buckets(
    payload: Any,
    key: Callable[[Mapping[str, str]], Tuple[str, ...]],
    match: Optional[Mapping[str, str]] = None,
) -> Dict[Tuple[str, ...], List[HistogramBucket]]:
    """Decode bucket series grouped by `key(labels)`, each group sorted numerically."""
    grouped: Dict[Tuple[str, ...], List[HistogramBucket]] = {}
    for series in _series_list(payload):
        labels = _labels(series)
        if match and any(labels.get(k) != v for k, v in match.items()):
            continue
        le = labels.get("le")
        if le is None:
            continue
        if "value" not in series:
            raise PrometheusResponseError("Vector element has no 'value'")
        _, value = _pair(series["value"])
        grouped.setdefault(key(labels), []).append(
            HistogramBucket(le=le, cumulative_count=max(parse_sample_value(value), 0.0))
        )
    return {k: sort_histogram_buckets(v) for k, v in grouped.items()}
