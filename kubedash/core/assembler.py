"""
Cluster and Node Metrics Assembly

Composes Kubernetes node objects (already converted to plain dicts),
utilization samples and persisted poll rows into dashboard snapshots, and
rolls metrics-server usage up into the rows the poller stores.

Node record shape, as produced by KubernetesNodeSource:

    {
        "name": "node-1",
        "capacity": {"cpu": "4", "memory": "16318412Ki", "ephemeral-storage": "101552Mi"},
        "allocatable": {"cpu": "3800m", "memory": "15167436Ki", "ephemeral-storage": "93588Mi"},
        "conditions": {"Ready": "True", "DiskPressure": "False"},
        "addresses": [{"type": "InternalIP", "address": "10.0.0.11"}],
    }
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, TypeVar

from kubedash.core.quantity import parse_cpu, parse_memory, bytes_to_gib
from kubedash.core.api_statistics import safe_ratio
from kubedash.models.infrastructure import (
    NodeMetricRow,
    ClusterMetricRow,
    PodMetricRow,
    NodeSnapshot,
    ClusterSnapshot,
    ClusterUtilization,
    UsageThresholds,
)

DEFAULT_EXPORTER_PORT = 9100

TRACKED_CONDITIONS = ("Ready", "DiskPressure", "MemoryPressure", "PIDPressure")

EPHEMERAL_STORAGE = "ephemeral-storage"

RowT = TypeVar("RowT")


def derive_instance(addresses: Iterable[Mapping[str, Any]], port: int = DEFAULT_EXPORTER_PORT) -> Optional[str]:
    """node-exporter instance "{InternalIP}:{port}", or None when the node has no InternalIP."""
    for address in addresses or ():
        if address.get("type") == "InternalIP" and address.get("address"):
            return f"{address['address']}:{port}"
    return None


def disk_usage_pct(capacity: Mapping[str, str], allocatable: Mapping[str, str]) -> float:
    """Consumed share of ephemeral storage: (capacity - allocatable) / capacity * 100, never below 0."""
    capacity_bytes = parse_memory(capacity.get(EPHEMERAL_STORAGE))
    allocatable_bytes = parse_memory(allocatable.get(EPHEMERAL_STORAGE))
    return max(safe_ratio(capacity_bytes - allocatable_bytes, capacity_bytes) * 100, 0.0)


def _conditions_with_defaults(conditions: Optional[Mapping[str, str]]) -> Dict[str, str]:
    merged = {name: "Unknown" for name in TRACKED_CONDITIONS}
    merged.update(conditions or {})
    return merged


def assemble_node_snapshot(
    name: str,
    capacity: Mapping[str, str],
    allocatable: Mapping[str, str],
    conditions: Optional[Mapping[str, str]],
    latest_sample: Optional[NodeMetricRow],
    addresses: Sequence[Mapping[str, Any]] = (),
    exporter_port: int = DEFAULT_EXPORTER_PORT,
) -> NodeSnapshot:
    """
    Build the dashboard summary for one node.

    Capacity figures come from the node object; CPU and memory usage come
    from `latest_sample` (a stored poll row or one synthesized from live
    Prometheus data). Disk usage is always the capacity/allocatable delta.
    A missing sample leaves CPU and memory usage at 0.
    """
    capacity = capacity or {}
    allocatable = allocatable or {}

    memory_bytes = parse_memory(capacity.get("memory"))
    disk_bytes = parse_memory(capacity.get(EPHEMERAL_STORAGE))

    return NodeSnapshot(
        name=name,
        instance=derive_instance(addresses, exporter_port),
        cpu_cores=int(parse_cpu(capacity.get("cpu"))),
        memory_bytes=int(memory_bytes),
        disk_bytes=int(disk_bytes),
        memory_gib=bytes_to_gib(memory_bytes),
        disk_gib=bytes_to_gib(disk_bytes),
        cpu_usage_pct=latest_sample.cpu_usage if latest_sample else 0.0,
        memory_usage_pct=latest_sample.memory_usage if latest_sample else 0.0,
        disk_usage_pct=disk_usage_pct(capacity, allocatable),
        conditions=_conditions_with_defaults(conditions),
        has_usage_sample=latest_sample is not None,
    )


def assemble_cluster_snapshot(
    latest_cluster_row: Optional[ClusterMetricRow],
    latest_pod_row: Optional[PodMetricRow],
) -> ClusterSnapshot:
    """
    Merge the newest cluster row and the newest pod row.

    The rows come from separate poll writes and may belong to different
    cycles; both timestamps are carried on the snapshot and no attempt is
    made to reconcile them.
    """
    snapshot = ClusterSnapshot()
    if latest_cluster_row is not None:
        snapshot.total_nodes = latest_cluster_row.total_nodes
        snapshot.active_nodes = latest_cluster_row.active_nodes
        snapshot.cpu_usage_pct = latest_cluster_row.cpu_usage
        snapshot.memory_usage_pct = latest_cluster_row.memory_usage
        snapshot.disk_usage_pct = latest_cluster_row.disk_usage or 0.0
        snapshot.cluster_timestamp = latest_cluster_row.timestamp
    if latest_pod_row is not None:
        snapshot.total_pods = latest_pod_row.total_pods
        snapshot.running_pods = latest_pod_row.running_pods
        snapshot.pod_timestamp = latest_pod_row.timestamp
    return snapshot


def usage_status(usage: Any, thresholds: Optional[UsageThresholds] = None) -> ClusterUtilization:
    """
    Flag each resource whose usage is strictly above its threshold.

    `usage` is anything exposing cpu_usage_pct, memory_usage_pct and
    disk_usage_pct (ClusterSnapshot, NodeSnapshot, ...).
    """
    thresholds = thresholds or UsageThresholds()
    cpu = usage.cpu_usage_pct
    memory = usage.memory_usage_pct
    disk = usage.disk_usage_pct
    return ClusterUtilization(
        cpu_usage_pct=cpu,
        memory_usage_pct=memory,
        disk_usage_pct=disk,
        cpu_status=int(cpu > thresholds.cpu_pct),
        memory_status=int(memory > thresholds.memory_pct),
        disk_status=int(disk > thresholds.disk_pct),
    )


# ============================================================================
# Poll Rollup
# ============================================================================

def rollup_node_usage(
    nodes: Sequence[Mapping[str, Any]],
    usages: Mapping[str, Mapping[str, str]],
    timestamp: datetime,
) -> Tuple[List[NodeMetricRow], ClusterMetricRow]:
    """
    Convert metrics-server usage into per-node and cluster rows.

    Args:
        nodes: Node records (see module docstring)
        usages: Node name -> {"cpu": "<nanocores>n", "memory": "<n>Ki"}
        timestamp: Poll time stamped on every row

    Returns:
        (node rows, cluster row). Nodes without a usage entry produce no
        row and do not contribute to the cluster percentages, but are still
        counted in total_nodes/active_nodes.
    """
    node_rows: List[NodeMetricRow] = []
    total_cpu_used = total_cpu_cores = 0.0
    total_memory_used = total_memory = 0.0
    total_disk_used = total_disk = 0.0

    for node in nodes:
        usage = usages.get(node["name"])
        if usage is None:
            continue

        capacity = node.get("capacity") or {}
        allocatable = node.get("allocatable") or {}

        cpu_used = parse_cpu(usage.get("cpu"))
        memory_used = parse_memory(usage.get("memory"))
        cpu_cores = parse_cpu(capacity.get("cpu"))
        memory = parse_memory(capacity.get("memory"))
        disk = parse_memory(capacity.get(EPHEMERAL_STORAGE))
        disk_used = disk - parse_memory(allocatable.get(EPHEMERAL_STORAGE))

        total_cpu_used += cpu_used
        total_cpu_cores += cpu_cores
        total_memory_used += memory_used
        total_memory += memory
        total_disk_used += disk_used
        total_disk += disk

        node_rows.append(NodeMetricRow(
            node_name=node["name"],
            cpu_usage=safe_ratio(cpu_used, cpu_cores) * 100,
            memory_usage=safe_ratio(memory_used, memory) * 100,
            disk_usage=safe_ratio(disk_used, disk) * 100,
            timestamp=timestamp,
        ))

    active = sum(1 for node in nodes if (node.get("conditions") or {}).get("Ready") == "True")

    cluster_row = ClusterMetricRow(
        total_nodes=len(nodes),
        active_nodes=active,
        cpu_usage=safe_ratio(total_cpu_used, total_cpu_cores) * 100,
        memory_usage=safe_ratio(total_memory_used, total_memory) * 100,
        disk_usage=safe_ratio(total_disk_used, total_disk) * 100,
        timestamp=timestamp,
    )
    return node_rows, cluster_row


def summarize_pods(phases: Iterable[Optional[str]], timestamp: datetime) -> PodMetricRow:
    """Count pods and the ones in phase Running."""
    phases = list(phases)
    return PodMetricRow(
        total_pods=len(phases),
        running_pods=sum(1 for phase in phases if phase == "Running"),
        timestamp=timestamp,
    )


def latest_row(rows: Iterable[RowT]) -> Optional[RowT]:
    """Row with the greatest `timestamp`, or None for no rows."""
    return max(rows, key=lambda row: row.timestamp, default=None)
