"""
Unit tests for the request metrics middleware
"""

import pytest

from kubedash.middleware.metrics import normalize_endpoint, get_metrics_text, metrics_registry

FORECAST_ENDPOINT = "/api/v1/infrastructure/nodes/{node_name}/forecast"


def sample(name, **labels):
    return metrics_registry.get_sample_value(name, labels) or 0.0


class TestNormalizeEndpoint:
    """Test path normalization"""

    @pytest.mark.parametrize("path,expected", [
        ("/api/v1/infrastructure/nodes/info", "/api/v1/infrastructure/nodes/info"),
        ("/api/v1/infrastructure/nodes/cpu-actual", "/api/v1/infrastructure/nodes/cpu-actual"),
        ("/api/v1/infrastructure/nodes/worker-1/forecast", "/api/v1/infrastructure/nodes/{node_name}/forecast"),
        ("/api/v1/api-statistics/series/requests", "/api/v1/api-statistics/series/{metric}"),
        ("/api/v1/logs/namespaces/default/pods", "/api/v1/logs/namespaces/{namespace}/pods"),
        ("/api/v1/logs/namespaces/default/pods/web-1", "/api/v1/logs/namespaces/{namespace}/pods/{pod_name}"),
        ("/api/v1/rabbitmq/overview", "/api/v1/rabbitmq/overview"),
        ("/api/v1/unknown/abc", "/api/v1/{id}/{id}"),
        ("/", "/"),
    ])
    def test_normalize(self, path, expected):
        """Test dynamic segments are replaced"""
        assert normalize_endpoint(path) == expected


class TestMiddleware:
    """Test request recording through the app"""

    def test_request_is_counted(self, client):
        """Test a request increments the counter and the histogram"""
        before = sample("http_requests_total", endpoint=FORECAST_ENDPOINT, method="GET", status_code="200")
        observed = sample("http_response_time_count", endpoint=FORECAST_ENDPOINT, method="GET")

        client.get("/api/v1/infrastructure/nodes/worker-7/forecast?resource=cpu")

        assert sample("http_requests_total", endpoint=FORECAST_ENDPOINT, method="GET", status_code="200") == before + 1
        assert sample("http_response_time_count", endpoint=FORECAST_ENDPOINT, method="GET") == observed + 1

    def test_client_errors_are_counted(self, client):
        """Test 4xx responses increment http_errors_total"""
        before = sample("http_errors_total", endpoint=FORECAST_ENDPOINT, method="GET", error_type="client_error")

        client.get("/api/v1/infrastructure/nodes/worker-8/forecast?resource=disk")

        after = sample("http_errors_total", endpoint=FORECAST_ENDPOINT, method="GET", error_type="client_error")
        assert after == before + 1

    def test_metrics_scrape_not_counted(self, client):
        """Test the metrics endpoint itself is not recorded"""
        client.get("/api/v1/system/metrics")
        assert 'endpoint="/api/v1/system/metrics"' not in get_metrics_text().decode()
