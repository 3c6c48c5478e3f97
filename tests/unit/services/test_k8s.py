"""
Unit tests for the Kubernetes node source

The kubernetes client APIs are replaced with mocks; the model classes are
the client's own so node_to_record sees real V1 objects.
"""

import pytest
import urllib3.exceptions
from unittest.mock import Mock, patch

from kubernetes import client
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException

from kubedash.config import Settings
from kubedash.services.k8s import KubernetesException, KubernetesNodeSource, node_to_record


def v1_node(name="node-1"):
    return client.V1Node(
        metadata=client.V1ObjectMeta(name=name),
        status=client.V1NodeStatus(
            capacity={"cpu": "4", "memory": "16Gi", "ephemeral-storage": "100Gi"},
            allocatable={"cpu": "3800m", "memory": "15Gi", "ephemeral-storage": "80Gi"},
            conditions=[
                client.V1NodeCondition(type="Ready", status="True"),
                client.V1NodeCondition(type="DiskPressure", status="False"),
            ],
            addresses=[
                client.V1NodeAddress(type="InternalIP", address="10.0.0.11"),
                client.V1NodeAddress(type="Hostname", address=name),
            ],
        ),
    )


def v1_pod(name, phase="Running"):
    return client.V1Pod(
        metadata=client.V1ObjectMeta(name=name),
        status=client.V1PodStatus(phase=phase) if phase else None,
    )


@pytest.fixture
def api_client():
    """Stand-in ApiClient; never talks to a cluster"""
    return Mock(spec=client.ApiClient)


@pytest.fixture
def core_api():
    """Patched CoreV1Api instance"""
    with patch("kubedash.services.k8s.client.CoreV1Api") as core_cls:
        yield core_cls.return_value


@pytest.fixture
def custom_api():
    """Patched CustomObjectsApi instance"""
    with patch("kubedash.services.k8s.client.CustomObjectsApi") as custom_cls:
        yield custom_cls.return_value


def make_source(api_client, namespace="default", in_cluster=False):
    return KubernetesNodeSource(
        Settings(POD_NAMESPACE=namespace, KUBECONFIG_IN_CLUSTER=in_cluster), api_client=api_client
    )


class TestNodeToRecord:
    """Test V1Node conversion"""

    def test_full_node(self):
        """Test capacity, allocatable, conditions and addresses are copied"""
        record = node_to_record(v1_node())

        assert record["name"] == "node-1"
        assert record["capacity"]["cpu"] == "4"
        assert record["allocatable"]["ephemeral-storage"] == "80Gi"
        assert record["conditions"] == {"Ready": "True", "DiskPressure": "False"}
        assert record["addresses"][0] == {"type": "InternalIP", "address": "10.0.0.11"}

    def test_empty_status(self):
        """Test a node without status fields gives empty collections"""
        node = client.V1Node(metadata=client.V1ObjectMeta(name="bare"), status=client.V1NodeStatus())
        record = node_to_record(node)

        assert record == {"name": "bare", "capacity": {}, "allocatable": {}, "conditions": {}, "addresses": []}


class TestNodes:
    """Test node and usage listing"""

    def test_list_nodes(self, api_client, core_api):
        """Test nodes come back as records"""
        core_api.list_node.return_value = client.V1NodeList(items=[v1_node("node-1"), v1_node("node-2")])

        records = make_source(api_client).list_nodes()

        assert [r["name"] for r in records] == ["node-1", "node-2"]

    def test_list_nodes_empty(self, api_client, core_api):
        """Test an empty cluster gives no records"""
        core_api.list_node.return_value = client.V1NodeList(items=[])
        assert make_source(api_client).list_nodes() == []

    def test_node_usage(self, api_client, custom_api):
        """Test unnamed items are skipped and missing usage reads as empty strings"""
        custom_api.list_cluster_custom_object.return_value = {"items": [
            {"metadata": {"name": "node-1"}, "usage": {"cpu": "250m", "memory": "2048Ki"}},
            {"metadata": {}, "usage": {"cpu": "1"}},
            {"usage": {"cpu": "1"}},
            {"metadata": {"name": "node-2"}},
        ]}

        usage = make_source(api_client).node_usage()

        assert usage == {
            "node-1": {"cpu": "250m", "memory": "2048Ki"},
            "node-2": {"cpu": "", "memory": ""},
        }
        custom_api.list_cluster_custom_object.assert_called_once_with("metrics.k8s.io", "v1beta1", "nodes")

    def test_node_usage_no_items(self, api_client, custom_api):
        """Test a response without items gives no usage"""
        custom_api.list_cluster_custom_object.return_value = {}
        assert make_source(api_client).node_usage() == {}


class TestErrorWrapping:
    """Test client failures become KubernetesException"""

    def test_api_exception(self, api_client, core_api):
        """Test ApiException keeps its status"""
        core_api.list_node.side_effect = ApiException(status=403, reason="Forbidden")

        with pytest.raises(KubernetesException) as exc_info:
            make_source(api_client).list_nodes()

        assert exc_info.value.status == 403
        assert "Forbidden" in str(exc_info.value)

    def test_unreachable(self, api_client, custom_api):
        """Test urllib3 errors are wrapped without a status"""
        custom_api.list_cluster_custom_object.side_effect = urllib3.exceptions.MaxRetryError(
            pool=None, url="/apis/metrics.k8s.io/v1beta1/nodes"
        )

        with pytest.raises(KubernetesException) as exc_info:
            make_source(api_client).node_usage()

        assert exc_info.value.status is None
        assert "unreachable" in str(exc_info.value)

    def test_config_failure(self):
        """Test a missing kubeconfig is reported as KubernetesException"""
        with patch("kubedash.services.k8s.config.load_incluster_config",
                   side_effect=ConfigException("service account token not found")):
            with pytest.raises(KubernetesException):
                make_source(None, in_cluster=True).list_nodes()


class TestPods:
    """Test pod phases, namespaces, pods and logs"""

    def test_pod_phases_namespaced(self, api_client, core_api):
        """Test a configured namespace lists only its pods"""
        core_api.list_namespaced_pod.return_value = client.V1PodList(
            items=[v1_pod("a"), v1_pod("b", "Pending"), v1_pod("c", None)]
        )

        phases = make_source(api_client, namespace="apps").pod_phases()

        assert phases == ["Running", "Pending", None]
        core_api.list_namespaced_pod.assert_called_once_with("apps")
        core_api.list_pod_for_all_namespaces.assert_not_called()

    def test_pod_phases_all_namespaces(self, api_client, core_api):
        """Test an empty namespace setting lists pods cluster-wide"""
        core_api.list_pod_for_all_namespaces.return_value = client.V1PodList(items=[v1_pod("a")])

        assert make_source(api_client, namespace="").pod_phases() == ["Running"]
        core_api.list_namespaced_pod.assert_not_called()

    def test_namespaces_and_pods_sorted(self, api_client, core_api):
        """Test names are sorted"""
        core_api.list_namespace.return_value = client.V1NamespaceList(items=[
            client.V1Namespace(metadata=client.V1ObjectMeta(name="kube-system")),
            client.V1Namespace(metadata=client.V1ObjectMeta(name="default")),
        ])
        core_api.list_namespaced_pod.return_value = client.V1PodList(items=[v1_pod("web-2"), v1_pod("web-1")])
        source = make_source(api_client)

        assert source.namespaces() == ["default", "kube-system"]
        assert source.pods("default") == ["web-1", "web-2"]

    def test_pod_log(self, api_client, core_api):
        """Test logs are requested with timestamps and split into lines"""
        core_api.read_namespaced_pod_log.return_value = "2024-05-01T12:00:00Z a\n2024-05-01T12:00:01Z b\n"

        lines = make_source(api_client).pod_log("default", "web-1", since_seconds=30)

        assert lines == ["2024-05-01T12:00:00Z a", "2024-05-01T12:00:01Z b"]
        core_api.read_namespaced_pod_log.assert_called_once_with(
            "web-1", "default", timestamps=True, since_seconds=30
        )

    def test_pod_log_empty(self, api_client, core_api):
        """Test an empty log gives no lines"""
        core_api.read_namespaced_pod_log.return_value = ""
        assert make_source(api_client).pod_log("default", "web-1") == []

    def test_pod_log_missing_pod(self, api_client, core_api):
        """Test a 404 is raised with its status"""
        core_api.read_namespaced_pod_log.side_effect = ApiException(status=404, reason="Not Found")

        with pytest.raises(KubernetesException) as exc_info:
            make_source(api_client).pod_log("default", "gone")

        assert exc_info.value.status == 404
