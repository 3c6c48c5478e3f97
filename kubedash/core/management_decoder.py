"""
RabbitMQ Management Response Decoding

Turns /api/overview and /api/queues payloads into dashboard models. The
management API leaves sections out when there is nothing to report (an idle
broker has no message_stats), so missing sections and counters read as 0.
Only payloads that are not objects, or a queue listing without `items`,
raise ManagementResponseError.

Rate history comes as `*_details.samples`, newest first, with millisecond
timestamps:

    {"rate": 1.2, "samples": [{"timestamp": 1714564805000, "sample": 42}, ...]}
"""

import math
from typing import Any, List, Mapping, Optional

from kubedash.core.prometheus_decoder import parse_timestamp
from kubedash.models.rabbitmq import BrokerOverview, QueueInfo, QueuePage
from kubedash.models.series import Bucket


class ManagementResponseError(ValueError):
    """Raised when a management API payload does not have the expected structure."""
    pass


def _section(payload: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = payload.get(key)
    return value if isinstance(value, Mapping) else {}


def _number(raw: Any) -> Optional[float]:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


def _count(raw: Any) -> int:
    value = _number(raw)
    if value is None or value < 0:
        return 0
    return int(value)


def _rate(details: Mapping[str, Any], non_negative: bool = True) -> float:
    value = _number(details.get("rate"))
    if value is None:
        return 0.0
    return max(value, 0.0) if non_negative else value


def _require_object(payload: Any) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise ManagementResponseError(f"Payload must be an object, got {type(payload).__name__}")
    return payload


def decode_rate_samples(details: Any) -> List[Bucket]:
    """
    Chronological Buckets from a `*_details` object.

    Samples with an unusable timestamp are dropped; a non-numeric sample is
    kept as a bucket with no data.
    """
    if not isinstance(details, Mapping):
        return []
    samples = details.get("samples")
    if not isinstance(samples, list):
        return []

    buckets: List[Bucket] = []
    for sample in samples:
        if not isinstance(sample, Mapping):
            continue
        millis = _number(sample.get("timestamp"))
        timestamp = parse_timestamp(millis / 1000) if millis is not None else None
        if timestamp is None:
            continue
        buckets.append(Bucket(bucket_start=timestamp, value=_number(sample.get("sample"))))
    buckets.sort(key=lambda bucket: bucket.bucket_start)
    return buckets


def decode_overview(payload: Any) -> BrokerOverview:
    """
    Decode GET /api/overview.

    Raises:
        ManagementResponseError: If the payload is not an object
    """
    payload = _require_object(payload)
    objects = _section(payload, "object_totals")
    totals = _section(payload, "queue_totals")
    stats = _section(payload, "message_stats")
    publish = _section(stats, "publish_details")
    deliver = _section(stats, "deliver_get_details")

    return BrokerOverview(
        queues=_count(objects.get("queues")),
        consumers=_count(objects.get("consumers")),
        channels=_count(objects.get("channels")),
        connections=_count(objects.get("connections")),
        messages_ready=_count(totals.get("messages_ready")),
        messages_unacknowledged=_count(totals.get("messages_unacknowledged")),
        messages_total=_count(totals.get("messages")),
        publish_rate=_rate(publish),
        deliver_rate=_rate(deliver),
        publish_rate_series=decode_rate_samples(publish),
        deliver_rate_series=decode_rate_samples(deliver),
        queued_messages_series=decode_rate_samples(totals.get("messages_details")),
    )


def decode_queue(item: Mapping[str, Any]) -> QueueInfo:
    """One /api/queues item; missing fields take the model defaults."""
    return QueueInfo(
        virtual_host=str(item.get("vhost") or "/"),
        name=str(item.get("name") or ""),
        type=str(item.get("type") or "classic"),
        state=str(item.get("state") or "unknown"),
        ready=_count(item.get("messages_ready")),
        unacked=_count(item.get("messages_unacknowledged")),
        total=_count(item.get("messages")),
        incoming_rate=_rate(_section(item, "messages_ready_details"), non_negative=False),
        unacked_rate=_rate(_section(item, "messages_unacknowledged_details"), non_negative=False),
    )


def decode_queue_page(payload: Any) -> QueuePage:
    """
    Decode GET /api/queues?pagination=true.

    Raises:
        ManagementResponseError: If the payload is not an object or has no `items` list
    """
    payload = _require_object(payload)
    items = payload.get("items")
    if not isinstance(items, list):
        raise ManagementResponseError("Queue listing is missing 'items'")

    return QueuePage(
        page=max(_count(payload.get("page")), 1),
        page_count=_count(payload.get("page_count")),
        total_count=_count(payload.get("total_count")),
        items=[decode_queue(item) for item in items if isinstance(item, Mapping)],
    )
