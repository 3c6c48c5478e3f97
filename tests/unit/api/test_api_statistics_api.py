"""
Tests for API Statistics API (/api/v1/api-statistics)
"""
import json
import responses
from urllib.parse import parse_qs, urlparse

QUERY_URL = "http://test-api-prometheus:9090/api/v1/query"


def query_callback(answers):
    """Answer instant queries by substring; anything else gets an empty vector"""
    def callback(request):
        promql = parse_qs(urlparse(request.url).query)["query"][0]
        for fragment, payload in answers.items():
            if fragment in promql:
                return (200, {}, json.dumps(payload))
        return (200, {}, json.dumps({"status": "success", "data": {"resultType": "vector", "result": []}}))
    return callback


def scalar(value):
    return {"status": "success", "data": {"resultType": "vector", "result": [
        {"metric": {}, "value": [1714564800, str(value)]}
    ]}}


class TestSummaryEndpoint:
    """Test the totals endpoint"""

    @responses.activate
    def test_summary(self, client):
        """Test totals are read from the API Prometheus"""
        responses.add_callback(
            responses.GET,
            QUERY_URL,
            callback=query_callback({
                "http_requests_total[1h]": scalar(200),
                "http_errors_total[1h]": scalar(20),
                "http_response_time_sum[1h]": scalar(3000),
                "http_response_time_count[1h]": scalar(200),
            })
        )

        response = client.get("/api/v1/api-statistics/summary")
        assert response.status_code == 200
        summary = response.json()["summary"]
        assert summary["window"] == "1h"
        assert summary["total_requests"] == 200
        assert summary["error_rate_pct"] == 10.0
        assert summary["avg_response_ms"] == 15.0
        assert summary["percentile"] == 0.9

    def test_summary_invalid_window(self, client):
        """Test invalid windows return 400"""
        response = client.get("/api/v1/api-statistics/summary", params={"window": "1 hour"})
        assert response.status_code == 400
        assert "Invalid window" in response.json()["detail"]

    @responses.activate
    def test_summary_prometheus_down(self, client):
        """Test an unreachable API Prometheus returns 503"""
        responses.add(responses.GET, QUERY_URL, status=503)

        response = client.get("/api/v1/api-statistics/summary")
        assert response.status_code == 503
        assert response.json()["error"]["code"] == "PROMETHEUS_ERROR"


class TestPerformanceEndpoint:
    """Test the per-endpoint table"""

    @responses.activate
    def test_performance(self, client):
        """Test one row per endpoint/method pair"""
        key = {"endpoint": "/orders", "method": "POST"}
        responses.add_callback(
            responses.GET,
            QUERY_URL,
            callback=query_callback({
                "(http_requests_total)": {"status": "success", "data": {"resultType": "vector", "result": [
                    {"metric": key, "value": [1714564800, "20"]}
                ]}},
                "(http_response_time_bucket)": {"status": "success", "data": {"resultType": "vector", "result": [
                    {"metric": {**key, "le": "25"}, "value": [1714564800, "10"]},
                    {"metric": {**key, "le": "100"}, "value": [1714564800, "20"]},
                    {"metric": {**key, "le": "+Inf"}, "value": [1714564800, "20"]},
                ]}},
            })
        )

        response = client.get("/api/v1/api-statistics/performance")
        assert response.status_code == 200
        data = response.json()
        assert data["percentile"] == 0.9
        assert len(data["endpoints"]) == 1
        row = data["endpoints"][0]
        assert row["endpoint"] == "/orders"
        assert row["total_requests"] == 20
        assert row["p90_response_ms"] == 100.0
        assert row["min_response_ms"] == 25.0
        assert row["error_rate_pct"] == 0.0

    @responses.activate
    def test_performance_empty(self, client):
        """Test no traffic yields an empty table"""
        responses.add_callback(responses.GET, QUERY_URL, callback=query_callback({}))

        response = client.get("/api/v1/api-statistics/performance")
        assert response.status_code == 200
        assert response.json()["endpoints"] == []


class TestSeriesEndpoint:
    """Test chart series"""

    @responses.activate
    def test_requests_series(self, client):
        """Test a zero-filled series over the window"""
        responses.add_callback(
            responses.GET,
            QUERY_URL,
            callback=query_callback({
                "http_requests_total": {"status": "success", "data": {"resultType": "matrix", "result": []}},
            })
        )

        response = client.get("/api/v1/api-statistics/series/requests", params={"window": "30m", "step": "5m"})
        assert response.status_code == 200
        data = response.json()
        assert data["metric"] == "requests"
        assert len(data["series"]["values"]) == 7
        assert all(value == 0.0 for value in data["series"]["values"])

    def test_unknown_metric(self, client):
        """Test unknown series names return 400"""
        response = client.get("/api/v1/api-statistics/series/latency")
        assert response.status_code == 400
        assert "Unknown series" in response.json()["detail"]

    def test_invalid_step(self, client):
        """Test invalid steps return 400"""
        response = client.get("/api/v1/api-statistics/series/requests", params={"step": "five"})
        assert response.status_code == 400

    @responses.activate
    def test_malformed_payload(self, client):
        """Test structurally invalid payloads return 502"""
        responses.add(responses.GET, QUERY_URL, json={"status": "success"}, status=200)

        response = client.get("/api/v1/api-statistics/series/requests")
        assert response.status_code == 502
        assert response.json()["error"]["code"] == "PROMETHEUS_RESPONSE_ERROR"
