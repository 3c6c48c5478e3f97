import time
import requests
from datetime import datetime
from typing import Optional, Dict, Any, Tuple, Union

from kubedash.config import Settings
from kubedash.core.bucketing import as_utc
from kubedash.middleware.metrics import record_prometheus_query, record_prometheus_error
from kubedash.utils.prometheus_validation import (
    sanitize_label_value,
    validate_step,
    PromQLValidationError
)

# node-exporter expressions take {instance}; API statistics expressions take {window}/{step}.
# Subqueries ([{window}:{step}]) return a matrix from an instant query.
PROMETHEUS_QUERIES = {
    # Node utilization (node-exporter), percent
    "node_cpu_usage": (
        '(sum(rate(node_cpu_seconds_total{{mode!="idle",instance="{instance}"}}[{step}]))'
        ' / sum(rate(node_cpu_seconds_total{{instance="{instance}"}}[{step}]))) * 100'
    ),
    "node_memory_usage": (
        '(1 - (node_memory_MemAvailable_bytes{{instance="{instance}"}}'
        ' / node_memory_MemTotal_bytes{{instance="{instance}"}})) * 100'
    ),

    # API totals over a window
    "requests_total": "sum(increase(http_requests_total[{window}]))",
    "errors_total": "sum(increase(http_errors_total[{window}]))",
    "response_time_sum": "sum(increase(http_response_time_sum[{window}]))",
    "response_time_count": "sum(increase(http_response_time_count[{window}]))",

    # API chart series
    "requests_series": "sum(increase(http_requests_total[{step}]))[{window}:{step}]",
    "errors_series": "sum(increase(http_errors_total[{step}]))[{window}:{step}]",
    "response_time_sum_series": "sum(increase(http_response_time_sum[{step}]))[{window}:{step}]",
    "response_time_count_series": "sum(increase(http_response_time_count[{step}]))[{window}:{step}]",

    # Per-endpoint breakdown
    "endpoint_requests": "sum by (endpoint, method) (http_requests_total)",
    "endpoint_errors": "sum by (endpoint, method) (http_errors_total)",
    "endpoint_response_time_sum": "sum by (endpoint, method) (http_response_time_sum)",
    "endpoint_response_time_count": "sum by (endpoint, method) (http_response_time_count)",
    "endpoint_response_time_bucket": "sum by (endpoint, method, le) (http_response_time_bucket)",
}

_DURATION_PARAMS = {"window", "step"}


class PrometheusException(Exception):
    """Custom exception for Prometheus client errors."""
    pass


def build_query(metric_name: str, **params: str) -> str:
    """
    Builds a PromQL query from a PROMETHEUS_QUERIES template.

    `window` and `step` are validated as PromQL durations; every other
    parameter is validated as a label value before interpolation.

    Raises:
        ValueError: If the template is unknown, a parameter is missing, or a
            value fails validation
    """
    template = PROMETHEUS_QUERIES.get(metric_name)
    if not template:
        raise ValueError(f"Metric '{metric_name}' not found in PROMETHEUS_QUERIES mapping.")

    safe: Dict[str, str] = {}
    for name, value in params.items():
        try:
            safe[name] = validate_step(value) if name in _DURATION_PARAMS else sanitize_label_value(value)
        except PromQLValidationError as e:
            raise ValueError(f"Invalid {name} value: {e}") from e

    try:
        return template.format(**safe)
    except KeyError as e:
        raise ValueError(f"Missing parameter {e} for query '{metric_name}'") from e


class PrometheusClient:
    """A client for querying a Prometheus server."""

    def __init__(self, settings: Settings, base_url: Optional[str] = None):
        self.base_url = (base_url or settings.PROMETHEUS_URL).rstrip('/')
        self.timeout = settings.PROMETHEUS_TIMEOUT

        self.auth: Optional[Tuple[str, str]] = None
        if settings.PROMETHEUS_USERNAME and settings.PROMETHEUS_PASSWORD:
            self.auth = (settings.PROMETHEUS_USERNAME, settings.PROMETHEUS_PASSWORD)

        self.verify: Union[str, bool] = True
        if settings.PROMETHEUS_CA_BUNDLE:
            self.verify = settings.PROMETHEUS_CA_BUNDLE

    def _request(self, method: str, url: str, params: Optional[Dict[str, Any]] = None,
                 query_type: str = "other", expect_json: bool = True) -> Dict[str, Any]:
        start = time.time()
        try:
            response = requests.request(
                method,
                url,
                params=params,
                auth=self.auth,
                timeout=self.timeout,
                verify=self.verify
            )
            response.raise_for_status()
            return response.json() if expect_json else {}
        except requests.exceptions.JSONDecodeError as e:
            record_prometheus_error(query_type, "invalid_json")
            raise PrometheusException(f"Prometheus returned a non-JSON response: {e}") from e
        except requests.exceptions.Timeout as e:
            record_prometheus_error(query_type, "timeout")
            raise PrometheusException(f"Request to Prometheus timed out: {e}") from e
        except requests.exceptions.HTTPError as e:
            record_prometheus_error(query_type, "http_error")
            raise PrometheusException(f"HTTP error occurred: {e} - {e.response.text}") from e
        except requests.exceptions.RequestException as e:
            record_prometheus_error(query_type, "request_error")
            raise PrometheusException(f"An error occurred while querying Prometheus: {e}") from e
        finally:
            record_prometheus_query(query_type, time.time() - start)

    def query(self, query: str) -> Dict[str, Any]:
        """Performs an instant query."""
        url = f"{self.base_url}/api/v1/query"
        return self._request("get", url, params={"query": query}, query_type="instant")

    def query_range(self, query: str, start: datetime, end: datetime, step: str) -> Dict[str, Any]:
        """Performs a range query. Datetimes are sent as Unix seconds; naive ones are taken as UTC."""
        url = f"{self.base_url}/api/v1/query_range"
        params = {
            "query": query,
            "start": as_utc(start).timestamp(),
            "end": as_utc(end).timestamp(),
            "step": step
        }
        return self._request("get", url, params=params, query_type="range")

    def check_health(self) -> str:
        """Checks the health of the Prometheus server."""
        url = f"{self.base_url}/-/healthy"
        try:
            self._request("get", url, query_type="health", expect_json=False)
            return "connected"
        except PrometheusException:
            try:
                self.query("up")
                return "connected"
            except PrometheusException:
                return "disconnected"
