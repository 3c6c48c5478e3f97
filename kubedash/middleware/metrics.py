"""
API Metrics Middleware - Request and response tracking for Prometheus.

The dashboard exports the same series it reads for API statistics, so it
can be scraped and charted like any other monitored service:
- http_requests_total{endpoint, method, status_code}
- http_errors_total{endpoint, method, error_type}
- http_response_time{endpoint, method} histogram, in milliseconds
- Prometheus query duration and error counters for its own upstream calls
"""

import time
from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST, CollectorRegistry


# ============================================================================
# Prometheus Metrics Registry
# ============================================================================

metrics_registry = CollectorRegistry()

http_requests_total = Counter(
    'http_requests_total',
    'Total number of HTTP requests',
    ['endpoint', 'method', 'status_code'],
    registry=metrics_registry
)

http_errors_total = Counter(
    'http_errors_total',
    'Total number of HTTP requests that failed',
    ['endpoint', 'method', 'error_type'],
    registry=metrics_registry
)

http_response_time = Histogram(
    'http_response_time',
    'HTTP response time in milliseconds',
    ['endpoint', 'method'],
    buckets=(5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000),
    registry=metrics_registry
)

prometheus_query_duration_seconds = Histogram(
    'prometheus_query_duration_seconds',
    'Prometheus query duration in seconds',
    ['query_type'],
    buckets=(0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0),
    registry=metrics_registry
)

prometheus_query_errors_total = Counter(
    'prometheus_query_errors_total',
    'Total number of Prometheus query errors',
    ['query_type', 'error_type'],
    registry=metrics_registry
)

METRICS_PATH = "/api/v1/system/metrics"

_STATIC_SEGMENTS = {
    'api', 'v1', 'infrastructure', 'api-statistics', 'system',
    'nodes', 'cluster', 'info', 'cpu-actual', 'forecast', 'status', 'utilization',
    'performance', 'summary', 'series', 'health', 'metrics',
    'rabbitmq', 'overview', 'queues', 'logs', 'namespaces', 'pods',
}


# ============================================================================
# Metrics Middleware
# ============================================================================

class MetricsMiddleware(BaseHTTPMiddleware):
    """Records request count, latency and errors for every request except the metrics scrape."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path == METRICS_PATH:
            return await call_next(request)

        start_time = time.time()
        endpoint = normalize_endpoint(request.url.path)
        method = request.method

        try:
            response = await call_next(request)
        except Exception as exc:
            http_errors_total.labels(
                endpoint=endpoint,
                method=method,
                error_type=exc.__class__.__name__
            ).inc()
            http_response_time.labels(endpoint=endpoint, method=method).observe(_elapsed_ms(start_time))
            raise

        status_code = response.status_code
        http_requests_total.labels(endpoint=endpoint, method=method, status_code=status_code).inc()
        http_response_time.labels(endpoint=endpoint, method=method).observe(_elapsed_ms(start_time))

        if status_code >= 400:
            error_type = "client_error" if status_code < 500 else "server_error"
            http_errors_total.labels(endpoint=endpoint, method=method, error_type=error_type).inc()

        return response


def _elapsed_ms(start_time: float) -> float:
    return (time.time() - start_time) * 1000


def normalize_endpoint(path: str) -> str:
    """
    Replace dynamic path segments with placeholders so label cardinality stays bounded.

    - /api/v1/infrastructure/nodes/worker-1/forecast -> /api/v1/infrastructure/nodes/{node_name}/forecast
    - /api/v1/api-statistics/series/requests -> /api/v1/api-statistics/series/{metric}
    - /api/v1/logs/namespaces/default/pods/web-1 -> /api/v1/logs/namespaces/{namespace}/pods/{pod_name}
    """
    segments = path.split('/')
    normalized = []
    for i, segment in enumerate(segments):
        if not segment or segment in _STATIC_SEGMENTS:
            normalized.append(segment)
            continue

        prev_segment = segments[i - 1] if i > 0 else None
        if prev_segment == 'nodes':
            normalized.append('{node_name}')
        elif prev_segment == 'series':
            normalized.append('{metric}')
        elif prev_segment == 'namespaces':
            normalized.append('{namespace}')
        elif prev_segment == 'pods':
            normalized.append('{pod_name}')
        else:
            normalized.append('{id}')

    return '/'.join(normalized)


# ============================================================================
# Metrics Export Functions
# ============================================================================

def get_metrics_text() -> bytes:
    """Prometheus text exposition of the API registry."""
    return generate_latest(metrics_registry)


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST


def record_prometheus_query(query_type: str, duration: float):
    """Record Prometheus query duration."""
    prometheus_query_duration_seconds.labels(query_type=query_type).observe(duration)


def record_prometheus_error(query_type: str, error_type: str):
    """Record Prometheus query error."""
    prometheus_query_errors_total.labels(query_type=query_type, error_type=error_type).inc()
