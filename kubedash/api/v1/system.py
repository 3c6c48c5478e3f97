"""
System API - Health and self-monitoring endpoints.

This module provides endpoints for:
- Health checks of both Prometheus instances
- API metrics (Prometheus format)
"""

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from kubedash import __version__
from kubedash.deps import get_api_prometheus_client, get_prometheus_client
from kubedash.models.responses import HealthResponse, PrometheusStatus
from kubedash.middleware import get_metrics_text, get_metrics_content_type
from kubedash.services.prometheus import PrometheusClient

router = APIRouter()

API_VERSION = __version__

# ============================================================================
# Health Check
# ============================================================================

@router.get("/system/health", response_model=HealthResponse)
def health_check(
    prometheus: PrometheusClient = Depends(get_prometheus_client),
    api_prometheus: PrometheusClient = Depends(get_api_prometheus_client),
):
    """
    Provides the health status of the API and its Prometheus dependencies.

    **Returns:** "healthy" when every Prometheus answers, "degraded" otherwise.
    """
    statuses = [PrometheusStatus(status=prometheus.check_health(), url=prometheus.base_url)]
    if api_prometheus.base_url != prometheus.base_url:
        statuses.append(PrometheusStatus(status=api_prometheus.check_health(), url=api_prometheus.base_url))

    healthy = all(entry.status == "connected" for entry in statuses)
    return HealthResponse(
        status="healthy" if healthy else "degraded",
        version=API_VERSION,
        prometheus=statuses,
    )


# ============================================================================
# API Metrics (Prometheus Format)
# ============================================================================

@router.get("/system/metrics")
def get_api_metrics():
    """
    Get API server metrics in Prometheus text format.

    **Metrics include:**
    - `http_requests_total`: Requests by endpoint, method and status code
    - `http_errors_total`: Errors by endpoint, method and error type
    - `http_response_time`: Response time histogram in milliseconds
    - `prometheus_query_duration_seconds`: Prometheus query duration histogram
    - `prometheus_query_errors_total`: Prometheus query error counter

    These are the same series the api-statistics endpoints read, so the
    dashboard can monitor itself.
    """
    return Response(content=get_metrics_text(), media_type=get_metrics_content_type())
