"""
Middleware package for FastAPI application.

Contains:
- MetricsMiddleware: Request tracking and Prometheus metrics
"""

from kubedash.middleware.metrics import (
    MetricsMiddleware,
    get_metrics_text,
    get_metrics_content_type,
    record_prometheus_query,
    record_prometheus_error
)

__all__ = [
    "MetricsMiddleware",
    "get_metrics_text",
    "get_metrics_content_type",
    "record_prometheus_query",
    "record_prometheus_error"
]
