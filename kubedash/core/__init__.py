"""
Aggregation core: pure functions over plain data.

Contains:
- quantity: Kubernetes quantity strings -> cores / bytes
- bucketing: fixed-interval bucketing and chart series
- prometheus_decoder: Prometheus API payloads -> samples, scalars, histogram buckets
- alignment: actual-vs-forecast window alignment
- api_statistics: endpoint latency percentiles and error rates
- assembler: node/cluster snapshots and poll rollups
- management_decoder: RabbitMQ management API payloads -> overview, queues, rate buckets
- pod_logs: kubelet-timestamped log lines -> time-based pages
"""

from kubedash.core.quantity import parse_cpu, parse_memory, bytes_to_gib
from kubedash.core.bucketing import bucket_samples, floor_to_interval, enumerate_bucket_starts
from kubedash.core.prometheus_decoder import (
    PrometheusResponseError,
    decode_range_vector,
    decode_instant_scalar,
    decode_instant_vector,
    decode_histogram_buckets,
)
from kubedash.core.alignment import align_actual_to_forecast, match_actual_to_forecast, forecast_item_id
from kubedash.core.api_statistics import aggregate_endpoint_stats
from kubedash.core.assembler import assemble_node_snapshot, assemble_cluster_snapshot, usage_status
from kubedash.core.management_decoder import ManagementResponseError, decode_overview, decode_queue_page
from kubedash.core.pod_logs import parse_log_line, paginate_log_lines

__all__ = [
    "parse_cpu",
    "parse_memory",
    "bytes_to_gib",
    "bucket_samples",
    "floor_to_interval",
    "enumerate_bucket_starts",
    "PrometheusResponseError",
    "decode_range_vector",
    "decode_instant_scalar",
    "decode_instant_vector",
    "decode_histogram_buckets",
    "align_actual_to_forecast",
    "match_actual_to_forecast",
    "forecast_item_id",
    "aggregate_endpoint_stats",
    "assemble_node_snapshot",
    "assemble_cluster_snapshot",
    "usage_status",
    "ManagementResponseError",
    "decode_overview",
    "decode_queue_page",
    "parse_log_line",
    "paginate_log_lines",
]
