"""
Unit tests for the Infrastructure Service
"""

import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

from kubedash.config import Settings
from kubedash.models.forecasts import ForecastPoint
from kubedash.models.infrastructure import ClusterMetricRow, NodeMetricRow, PodMetricRow
from kubedash.services.infrastructure import InfrastructureService
from kubedash.services.repository import InMemoryMetricsRepository

NOW = datetime(2024, 5, 1, 12, 2, tzinfo=timezone.utc)
T = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
FIVE_MIN = timedelta(minutes=5)
HOUR = timedelta(hours=1)


def scalar_payload(value):
    return {"status": "success", "data": {"resultType": "vector", "result": [{"metric": {}, "value": [0, str(value)]}]}}


def make_service(node_source, repo, prometheus=None, **overrides):
    settings = Settings(**overrides)
    return InfrastructureService(
        prometheus=prometheus or Mock(),
        repository=repo,
        node_source=node_source,
        thresholds=settings.usage_thresholds(),
        alignment=settings.alignment_config(),
        settings=settings,
    )


@pytest.fixture
def repo():
    return InMemoryMetricsRepository()


class TestNodeSnapshots:
    """Test node listing"""

    def test_usage_from_store(self, node_source, repo):
        """Test usage comes from the latest stored row"""
        repo.add_node_metrics([NodeMetricRow(node_name="node-1", cpu_usage=33.0, memory_usage=44.0, timestamp=T)])

        nodes = make_service(node_source, repo).node_snapshots(NOW)

        assert [n.name for n in nodes] == ["node-1", "node-2"]
        assert nodes[0].cpu_usage_pct == 33.0
        assert nodes[0].instance == "10.0.0.11:9100"
        assert nodes[0].disk_usage_pct == pytest.approx(20.0)
        assert nodes[1].cpu_usage_pct == 0.0
        assert not nodes[1].has_usage_sample

    def test_usage_from_prometheus(self, node_source, repo):
        """Test live usage when NODE_USAGE_SOURCE=prometheus"""
        prometheus = Mock()
        prometheus.query.side_effect = [scalar_payload("42.5"), scalar_payload("55.5")] * 2

        nodes = make_service(node_source, repo, prometheus, NODE_USAGE_SOURCE="prometheus").node_snapshots(NOW)

        assert nodes[0].cpu_usage_pct == 42.5
        assert nodes[0].memory_usage_pct == 55.5
        first_query = prometheus.query.call_args_list[0].args[0]
        assert 'instance="10.0.0.11:9100"' in first_query

    def test_node_without_internal_ip_is_kept(self, fake_node_source, node_factory, repo, caplog):
        """Test nodes without an InternalIP are listed with no instance"""
        source = fake_node_source(nodes=[node_factory("edge-1", ip=None)])

        nodes = make_service(source, repo).node_snapshots(NOW)

        assert nodes[0].name == "edge-1"
        assert nodes[0].instance is None
        assert "No InternalIP found for node: edge-1" in caplog.text


class TestCpuActual:
    """Test CPU actual buckets"""

    def test_buckets_over_sample_window(self, node_source, repo):
        """Test gap-filled buckets over [floor(now) - 1h, floor(now)]"""
        prometheus = Mock()
        prometheus.query_range.return_value = {
            "status": "success",
            "data": {"resultType": "matrix", "result": [{
                "metric": {"instance": "10.0.0.11:9100"},
                "values": [[(T - HOUR).timestamp(), "12"], [(T - timedelta(minutes=30)).timestamp(), "48"]],
            }]},
        }

        buckets = make_service(node_source, repo, prometheus).cpu_actual("10.0.0.11:9100", NOW)

        assert len(buckets) == 13
        assert buckets[0].bucket_start == T - HOUR
        assert buckets[0].value == 12.0
        assert buckets[6].value == 48.0
        assert buckets[1].value is None
        query, start, end, step = prometheus.query_range.call_args.args
        assert (start, end, step) == (T - HOUR, T, "5m")

    def test_invalid_instance(self, node_source, repo):
        """Test unsafe instance values are rejected before querying"""
        prometheus = Mock()
        with pytest.raises(ValueError):
            make_service(node_source, repo, prometheus).cpu_actual('x"} or up{', NOW)
        prometheus.query_range.assert_not_called()


class TestForecastComparison:
    """Test actual vs forecast alignment"""

    def _forecast(self, ts, mean=30.0):
        return ForecastPoint(series_key="node-1_cpu", timestamp=ts, mean=mean,
                             lower_bound=mean - 5, upper_bound=mean + 5, created_at=ts)

    def test_aligned(self, node_source, repo):
        """Test the window ends at the second most recent forecast"""
        anchor = T - FIVE_MIN
        repo.add_forecasts([self._forecast(T), self._forecast(anchor), self._forecast(anchor - HOUR - FIVE_MIN)])
        repo.add_node_metrics([
            NodeMetricRow(node_name="node-1", cpu_usage=20.0, memory_usage=1.0, timestamp=anchor - timedelta(minutes=9)),
            NodeMetricRow(node_name="node-1", cpu_usage=40.0, memory_usage=1.0, timestamp=anchor),
            NodeMetricRow(node_name="node-2", cpu_usage=90.0, memory_usage=1.0, timestamp=anchor),
        ])

        result = make_service(node_source, repo).forecast_comparison("node-1", "cpu", NOW)

        assert result.aligned
        assert result.series_key == "node-1_cpu"
        assert len(result.actual) == 13
        assert result.actual[0].bucket_start == anchor - HOUR
        assert result.actual[10].value == 20.0
        assert result.actual[12].value == 40.0
        assert [p.timestamp for p in result.forecast] == [anchor, T]
        assert [c.actual for c in result.comparison] == [40.0, None]

    def test_fallback_without_forecasts(self, node_source, repo):
        """Test raw samples are returned when fewer than two forecasts exist"""
        repo.add_node_metrics([
            NodeMetricRow(node_name="node-1", cpu_usage=1.0, memory_usage=5.0, timestamp=NOW - timedelta(minutes=3)),
            NodeMetricRow(node_name="node-1", cpu_usage=2.0, memory_usage=6.0, timestamp=NOW - timedelta(minutes=1)),
        ])

        result = make_service(node_source, repo).forecast_comparison("node-1", "memory", NOW)

        assert not result.aligned
        assert [b.value for b in result.actual] == [5.0, 6.0]
        assert result.forecast == []
        assert result.comparison == []


class TestCluster:
    """Test cluster status and utilization"""

    def test_status_and_utilization(self, node_source, repo):
        """Test latest rows merged and flagged against thresholds"""
        repo.add_cluster_metric(ClusterMetricRow(total_nodes=2, active_nodes=2, cpu_usage=65.0,
                                                 memory_usage=20.0, disk_usage=85.0, timestamp=T))
        repo.add_pod_metric(PodMetricRow(total_pods=5, running_pods=4, timestamp=T - FIVE_MIN))
        service = make_service(node_source, repo)

        status = service.cluster_status()
        assert status.total_pods == 5
        assert status.pod_timestamp == T - FIVE_MIN

        utilization = service.cluster_utilization()
        assert (utilization.cpu_status, utilization.memory_status, utilization.disk_status) == (1, 0, 1)

    def test_empty_store(self, node_source, repo, caplog):
        """Test an empty store gives zeros and a warning"""
        status = make_service(node_source, repo).cluster_status()
        assert status.total_nodes == 0
        assert "No cluster metrics stored yet" in caplog.text
