"""
Pytest configuration and fixtures for all tests
"""
import pytest
from datetime import datetime, timezone
from fastapi.testclient import TestClient

from kubedash.main import app
from kubedash.config import Settings
from kubedash.deps import get_settings, get_repository, get_node_source
from kubedash.services.repository import InMemoryMetricsRepository


class FakeNodeSource:
    """In-memory stand-in for KubernetesNodeSource."""

    def __init__(self, nodes=None, usages=None, phases=None, error=None, pods_by_namespace=None, log_lines=None):
        self.nodes = nodes or []
        self.usages = usages or {}
        self.phases = phases or []
        self.error = error
        self.pods_by_namespace = pods_by_namespace or {}
        self.log_lines = log_lines or []
        self.log_requests = []

    def list_nodes(self):
        if self.error:
            raise self.error
        return self.nodes

    def node_usage(self):
        if self.error:
            raise self.error
        return self.usages

    def pod_phases(self):
        if self.error:
            raise self.error
        return self.phases

    def namespaces(self):
        if self.error:
            raise self.error
        return sorted(self.pods_by_namespace)

    def pods(self, namespace):
        if self.error:
            raise self.error
        return sorted(self.pods_by_namespace.get(namespace, []))

    def pod_log(self, namespace, pod_name, since_seconds=None, container=None):
        if self.error:
            raise self.error
        self.log_requests.append((namespace, pod_name, since_seconds))
        return list(self.log_lines)


def make_node(name, cpu="4", memory="16Gi", storage="100Gi", allocatable_storage="80Gi",
              ready="True", ip="10.0.0.11"):
    """Node record in the shape KubernetesNodeSource.list_nodes returns."""
    addresses = [{"type": "Hostname", "address": name}]
    if ip:
        addresses.append({"type": "InternalIP", "address": ip})
    return {
        "name": name,
        "capacity": {"cpu": cpu, "memory": memory, "ephemeral-storage": storage},
        "allocatable": {"cpu": cpu, "memory": memory, "ephemeral-storage": allocatable_storage},
        "conditions": {"Ready": ready, "MemoryPressure": "False", "DiskPressure": "False", "PIDPressure": "False"},
        "addresses": addresses,
    }


# Test settings
@pytest.fixture
def test_settings():
    """Override settings for testing"""
    return Settings(
        PROMETHEUS_URL="http://test-prometheus:9090",
        API_PROMETHEUS_URL="http://test-api-prometheus:9090",
        PREDICTION_API_URL="http://test-prediction:8001",
        RABBITMQ_URL="http://test-rabbitmq:15672",
        BACKGROUND_JOBS_ENABLED=False,
    )


@pytest.fixture
def repository():
    """Empty in-memory repository"""
    return InMemoryMetricsRepository()


@pytest.fixture
def node_source():
    """Fake node source with two nodes"""
    return FakeNodeSource(
        nodes=[make_node("node-1", ip="10.0.0.11"), make_node("node-2", ip="10.0.0.12")],
        usages={"node-1": {"cpu": "1", "memory": "4Gi"}, "node-2": {"cpu": "2", "memory": "8Gi"}},
        phases=["Running", "Running", "Pending"],
        pods_by_namespace={"default": ["web-2", "web-1"], "kube-system": ["coredns-0"]},
        log_lines=[
            "2024-05-01T12:00:00.000000000Z starting",
            "2024-05-01T12:00:01.500000000Z listening on :8080",
            "2024-05-01T12:00:05.000000000Z GET /healthz 200",
        ],
    )


@pytest.fixture
def client(test_settings, repository, node_source):
    """Create test client with overridden settings, repository and node source"""
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_repository] = lambda: repository
    app.dependency_overrides[get_node_source] = lambda: node_source
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture
def now():
    """Fixed reference time"""
    return datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def mock_prometheus_response():
    """Mock Prometheus query response"""
    return {
        "status": "success",
        "data": {
            "resultType": "vector",
            "result": []
        }
    }


@pytest.fixture
def fake_node_source():
    """FakeNodeSource class, for tests building their own cluster"""
    return FakeNodeSource


@pytest.fixture
def node_factory():
    """Node record builder"""
    return make_node
