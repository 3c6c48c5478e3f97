"""
Common Response Models - Standardized API response structures.

This module defines the envelope models shared by all API endpoints.
"""

from typing import List, Optional
from datetime import datetime, timezone
from pydantic import BaseModel, Field

from kubedash.models.series import Bucket, MetricSeries
from kubedash.models.forecasts import ForecastComparisonPoint, ForecastPoint
from kubedash.models.infrastructure import NodeSnapshot, ClusterSnapshot, ClusterUtilization, UsageThresholds
from kubedash.models.api_statistics import EndpointPerformance, ApiStatisticsSummary
from kubedash.models.logs import LogEntry
from kubedash.models.rabbitmq import BrokerOverview, QueueInfo


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BaseResponse(BaseModel):
    """
    Base response model for all API responses.

    Provides a common timestamp field.
    """
    timestamp: datetime = Field(default_factory=_utcnow, description="Response timestamp (UTC)")


# ============================================================================
# Error Response Models
# ============================================================================

class ErrorDetail(BaseModel):
    """
    Detailed error information.

    Provides structured error data with code, message, and optional details.
    """
    code: str = Field(..., description="Error code (e.g., PROMETHEUS_ERROR, VALIDATION_ERROR)")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[str] = Field(None, description="Additional error details or context")


class ErrorResponse(BaseResponse):
    """Standard error response for all API errors."""
    error: ErrorDetail = Field(..., description="Error details")


# ============================================================================
# Domain Responses
# ============================================================================

class ActualSeriesResponse(BaseResponse):
    """Gap-filled actual usage for one node-exporter instance."""
    instance: str = Field(..., description="node-exporter instance")
    buckets: List[Bucket] = Field(..., description="Buckets, value null where no data")


class ForecastComparisonResponse(BaseResponse):
    """Actual-vs-predicted overlay for one node and resource."""
    node_name: str = Field(..., description="Node name")
    resource: str = Field(..., description="cpu or memory")
    series_key: str = Field(..., description="Forecast item id")
    aligned: bool = Field(..., description="False when fewer than two forecasts existed and the fallback was used")
    actual: List[Bucket] = Field(..., description="Actual buckets aligned to the forecast cadence")
    forecast: List[ForecastPoint] = Field(..., description="Forecast points, oldest first")
    comparison: List[ForecastComparisonPoint] = Field(..., description="Forecast points paired with actuals")


class NodeListResponse(BaseResponse):
    """All nodes with capacity, usage and conditions."""
    total_nodes: int = Field(..., ge=0, description="Number of nodes")
    nodes: List[NodeSnapshot] = Field(..., description="Node snapshots")


class ClusterStatusResponse(BaseResponse):
    """Latest cluster rollup merged with the latest pod counts."""
    cluster: ClusterSnapshot = Field(..., description="Cluster snapshot")


class ClusterUtilizationResponse(BaseResponse):
    """Cluster usage with threshold status flags."""
    utilization: ClusterUtilization = Field(..., description="Usage and status flags")
    thresholds: UsageThresholds = Field(..., description="Thresholds the flags were computed against")


class EndpointPerformanceResponse(BaseResponse):
    """Per-endpoint latency and error table."""
    percentile: float = Field(..., description="Percentile reported as p90_response_ms")
    endpoints: List[EndpointPerformance] = Field(..., description="One row per endpoint/method pair")


class ApiSummaryResponse(BaseResponse):
    """Totals across all endpoints."""
    summary: ApiStatisticsSummary = Field(..., description="Summary figures")


class MetricSeriesResponse(BaseResponse):
    """A named chart series for API statistics."""
    metric: str = Field(..., description="Series name")
    window: str = Field(..., description="Time window")
    step: str = Field(..., description="Step between points")
    series: MetricSeries = Field(..., description="Series data")



class BrokerOverviewResponse(BaseResponse):
    """RabbitMQ broker counters, rates and recent history."""
    overview: BrokerOverview = Field(..., description="Broker overview")


class QueueListResponse(BaseResponse):
    """One page of RabbitMQ queues."""
    page: int = Field(..., ge=1, description="Page number")
    page_size: int = Field(..., ge=1, description="Requested page size")
    page_count: int = Field(..., ge=0, description="Number of pages")
    total_count: int = Field(..., ge=0, description="Number of queues across all pages")
    queues: List[QueueInfo] = Field(..., description="Queues on this page")


class NamespaceListResponse(BaseResponse):
    """Namespaces whose pods can be browsed."""
    namespaces: List[str] = Field(..., description="Namespace names, sorted")


class PodListResponse(BaseResponse):
    """Pods of one namespace."""
    namespace: str = Field(..., description="Namespace")
    pods: List[str] = Field(..., description="Pod names, sorted")


class PodLogResponse(BaseResponse):
    """A time-based page of a pod's log."""
    namespace: str = Field(..., description="Namespace")
    pod_name: str = Field(..., description="Pod name")
    logs: List[LogEntry] = Field(..., description="Log entries, oldest first")
    next_start_time: Optional[datetime] = Field(None, description="start_time of the next page")
    has_more: bool = Field(..., description="Whether more entries follow")

# ============================================================================
# Health
# ============================================================================

class PrometheusStatus(BaseModel):
    status: str = Field(..., description="connected or disconnected")
    url: str = Field(..., description="Prometheus URL")


class HealthResponse(BaseResponse):
    """Health of the API and its Prometheus dependencies."""
    status: str = Field(..., description="Overall status")
    version: str = Field(..., description="API version")
    prometheus: List[PrometheusStatus] = Field(..., description="Prometheus endpoints")
