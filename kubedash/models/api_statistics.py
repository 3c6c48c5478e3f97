"""
API Statistics Data Models - Per-endpoint latency and error figures.

Derived from the http_requests_total, http_errors_total and
http_response_time_{sum,count,bucket} series exported by monitored services.
"""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class HistogramBucket(BaseModel):
    """One cumulative histogram bucket: observations <= le."""
    model_config = ConfigDict(frozen=True)

    le: str = Field(..., description="Upper bound label, '+Inf' for the overflow bucket")
    cumulative_count: float = Field(0.0, ge=0, description="Observations at or below the bound")


class EndpointPerformance(BaseModel):
    """Request, latency and error figures for a single endpoint/method pair."""
    endpoint: str = Field(..., description="Endpoint label")
    method: str = Field(..., description="HTTP method label")
    total_requests: float = Field(0.0, ge=0, description="Total requests")
    avg_response_ms: float = Field(0.0, ge=0, description="Average response time")
    min_response_ms: float = Field(0.0, ge=0, description="Lowest histogram bound")
    max_response_ms: float = Field(0.0, ge=0, description="Highest finite histogram bound")
    p90_response_ms: float = Field(0.0, ge=0, description="Bound reaching the target percentile")
    error_rate_pct: float = Field(0.0, ge=0, description="Errors as a percentage of requests")


class ApiStatisticsSummary(BaseModel):
    """Totals across all endpoints for a time window."""
    window: str = Field(..., description="Time window, e.g. '1h'")
    total_requests: float = Field(0.0, ge=0, description="Requests in the window")
    error_rate_pct: float = Field(0.0, ge=0, description="Error rate in the window")
    avg_response_ms: float = Field(0.0, ge=0, description="Average response time in the window")
    percentile: Optional[float] = Field(None, description="Percentile used for endpoint latency figures")
