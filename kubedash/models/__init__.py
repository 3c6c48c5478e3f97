"""
Data models for the monitoring dashboard.

Exports the value objects produced and consumed by the aggregation core:
- series: RawSample, Bucket, MetricSeries
- forecasts: ForecastPoint, ForecastInput, ForecastComparisonPoint, AlignmentConfig
- infrastructure: persisted poll rows, NodeSnapshot, ClusterSnapshot, ClusterUtilization
- api_statistics: HistogramBucket, EndpointPerformance
- rabbitmq: BrokerOverview, QueueInfo, QueuePage
- logs: LogEntry, LogPage
"""

from kubedash.models.series import RawSample, Bucket, MetricSeries
from kubedash.models.forecasts import (
    ForecastPoint,
    ForecastInput,
    ForecastComparisonPoint,
    AlignmentConfig,
    PredictionResult,
)
from kubedash.models.infrastructure import (
    NodeMetricRow,
    ClusterMetricRow,
    PodMetricRow,
    NodeSnapshot,
    ClusterSnapshot,
    ClusterUtilization,
    UsageThresholds,
)
from kubedash.models.api_statistics import (
    HistogramBucket,
    EndpointPerformance,
    ApiStatisticsSummary,
)
from kubedash.models.rabbitmq import BrokerOverview, QueueInfo, QueuePage
from kubedash.models.logs import LogEntry, LogPage

__all__ = [
    "RawSample",
    "Bucket",
    "MetricSeries",
    "ForecastPoint",
    "ForecastInput",
    "ForecastComparisonPoint",
    "AlignmentConfig",
    "PredictionResult",
    "NodeMetricRow",
    "ClusterMetricRow",
    "PodMetricRow",
    "NodeSnapshot",
    "ClusterSnapshot",
    "ClusterUtilization",
    "UsageThresholds",
    "HistogramBucket",
    "EndpointPerformance",
    "ApiStatisticsSummary",
    "BrokerOverview",
    "QueueInfo",
    "QueuePage",
    "LogEntry",
    "LogPage",
]
