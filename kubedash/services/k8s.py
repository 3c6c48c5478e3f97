"""
Kubernetes Node Source - Nodes, metrics-server usage, pods and pod logs as plain data.

Wraps the official `kubernetes` client and converts its objects into the
dict shapes the assembler consumes, so nothing downstream depends on the
client's model classes.
"""

import logging
from typing import Any, Dict, List, Optional

import urllib3.exceptions
from kubernetes import client, config
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException

from kubedash.config import Settings

logger = logging.getLogger(__name__)

METRICS_GROUP = "metrics.k8s.io"
METRICS_VERSION = "v1beta1"


class KubernetesException(Exception):
    """
    Raised when the Kubernetes API cannot be reached or rejects a request.

    `status` holds the API's HTTP status when it answered, e.g. 404 for a
    pod that does not exist.
    """

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


def node_to_record(node: Any) -> Dict[str, Any]:
    """Convert a V1Node into the assembler's node record."""
    status = node.status
    return {
        "name": node.metadata.name,
        "capacity": dict(status.capacity or {}),
        "allocatable": dict(status.allocatable or {}),
        "conditions": {cond.type: cond.status for cond in (status.conditions or [])},
        "addresses": [{"type": addr.type, "address": addr.address} for addr in (status.addresses or [])],
    }


class KubernetesNodeSource:
    """
    Read-only access to the cluster's nodes, node usage, pods and pod logs.

    The API client is created on first use, from the in-cluster service
    account or the local kubeconfig depending on KUBECONFIG_IN_CLUSTER.
    """

    def __init__(self, settings: Settings, api_client: Optional[client.ApiClient] = None):
        self.in_cluster = settings.KUBECONFIG_IN_CLUSTER
        self.namespace = settings.POD_NAMESPACE or None
        self._api_client = api_client

    def _client(self) -> client.ApiClient:
        if self._api_client is None:
            try:
                if self.in_cluster:
                    config.load_incluster_config()
                else:
                    config.load_kube_config()
            except ConfigException as e:
                raise KubernetesException(f"Failed to load Kubernetes configuration: {e}") from e
            self._api_client = client.ApiClient()
            logger.info("Kubernetes client created (in_cluster=%s)", self.in_cluster)
        return self._api_client

    def _call(self, what: str, fn, *args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except ApiException as e:
            logger.error(f"Kubernetes API error while {what}: {e.status} {e.reason}")
            raise KubernetesException(f"Failed to query Kubernetes API while {what}: {e.reason}", status=e.status) from e
        except urllib3.exceptions.HTTPError as e:
            logger.error(f"Kubernetes API unreachable while {what}: {e}")
            raise KubernetesException(f"Kubernetes API unreachable while {what}: {e}") from e

    def list_nodes(self) -> List[Dict[str, Any]]:
        """All nodes as records: name, capacity, allocatable, conditions, addresses."""
        v1 = client.CoreV1Api(self._client())
        nodes = self._call("listing nodes", v1.list_node)
        if not nodes.items:
            logger.warning("No nodes found in cluster")
        return [node_to_record(node) for node in nodes.items]

    def node_usage(self) -> Dict[str, Dict[str, str]]:
        """metrics-server usage per node: {name: {"cpu": "123456789n", "memory": "2048Ki"}}."""
        custom = client.CustomObjectsApi(self._client())
        raw = self._call(
            "listing node metrics",
            custom.list_cluster_custom_object,
            METRICS_GROUP, METRICS_VERSION, "nodes",
        )
        usage: Dict[str, Dict[str, str]] = {}
        for item in raw.get("items", []):
            name = (item.get("metadata") or {}).get("name")
            if not name:
                continue
            node_usage = item.get("usage") or {}
            usage[name] = {"cpu": node_usage.get("cpu", ""), "memory": node_usage.get("memory", "")}
        if not usage:
            logger.warning("metrics-server returned no node usage")
        return usage

    def pod_phases(self) -> List[Optional[str]]:
        """Phase of every pod in the configured namespace (all namespaces if unset)."""
        v1 = client.CoreV1Api(self._client())
        if self.namespace:
            pods = self._call("listing pods", v1.list_namespaced_pod, self.namespace)
        else:
            pods = self._call("listing pods", v1.list_pod_for_all_namespaces)
        return [pod.status.phase if pod.status else None for pod in pods.items]

    def namespaces(self) -> List[str]:
        """Names of all namespaces, sorted."""
        v1 = client.CoreV1Api(self._client())
        result = self._call("listing namespaces", v1.list_namespace)
        return sorted(ns.metadata.name for ns in result.items if ns.metadata and ns.metadata.name)

    def pods(self, namespace: str) -> List[str]:
        """Names of the pods in `namespace`, sorted."""
        v1 = client.CoreV1Api(self._client())
        result = self._call(f"listing pods in {namespace}", v1.list_namespaced_pod, namespace)
        return sorted(pod.metadata.name for pod in result.items if pod.metadata and pod.metadata.name)

    def pod_log(self, namespace: str, pod_name: str, since_seconds: Optional[int] = None,
                container: Optional[str] = None) -> List[str]:
        """Log lines of a pod, each prefixed with its kubelet timestamp."""
        v1 = client.CoreV1Api(self._client())
        kwargs: Dict[str, Any] = {"timestamps": True}
        if since_seconds is not None:
            kwargs["since_seconds"] = since_seconds
        if container:
            kwargs["container"] = container
        text = self._call(
            f"reading logs of {namespace}/{pod_name}",
            v1.read_namespaced_pod_log, pod_name, namespace, **kwargs,
        )
        return (text or "").splitlines()
