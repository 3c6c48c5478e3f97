"""
Cluster Polling - Samples node, cluster and pod metrics into the repository.

One poll cycle:
1. list nodes and metrics-server usage
2. roll usage up into per-node rows and one cluster row
3. count pods in the configured namespace

Each half is independent: a failure listing pods still stores the node and
cluster rows from the same cycle.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from kubedash.core.assembler import rollup_node_usage, summarize_pods
from kubedash.models.infrastructure import NodeMetricRow, ClusterMetricRow, PodMetricRow
from kubedash.services.k8s import KubernetesNodeSource, KubernetesException
from kubedash.services.repository import MetricsRepository

logger = logging.getLogger(__name__)


@dataclass
class PollResult:
    """Rows written by a single poll cycle."""
    node_rows: List[NodeMetricRow] = field(default_factory=list)
    cluster_row: Optional[ClusterMetricRow] = None
    pod_row: Optional[PodMetricRow] = None


class PollingService:
    def __init__(self, node_source: KubernetesNodeSource, repository: MetricsRepository):
        self.node_source = node_source
        self.repository = repository

    def poll_once(self, now: Optional[datetime] = None) -> PollResult:
        """Run one poll cycle and store its rows, stamped with `now` (default: current UTC time)."""
        now = now or datetime.now(timezone.utc)
        result = PollResult()

        logger.info("Fetching and storing cluster metrics...")
        try:
            nodes = self.node_source.list_nodes()
            usages = self.node_source.node_usage()
        except KubernetesException as e:
            logger.error(f"Error fetching cluster metrics: {e}")
        else:
            node_rows, cluster_row = rollup_node_usage(nodes, usages, now)

            # An empty metrics-server response yields an all-zero row; skip it.
            if cluster_row.total_nodes > 0 or cluster_row.cpu_usage > 0 or cluster_row.memory_usage > 0:
                self.repository.add_cluster_metric(cluster_row)
                result.cluster_row = cluster_row
                logger.info("Cluster metrics stored: %d/%d nodes ready", cluster_row.active_nodes, cluster_row.total_nodes)

            if node_rows:
                self.repository.add_node_metrics(node_rows)
                result.node_rows = node_rows
                logger.info("Node metrics stored for %d nodes", len(node_rows))
            else:
                logger.warning("No node metrics found.")

        try:
            phases = self.node_source.pod_phases()
        except KubernetesException as e:
            logger.error(f"Error fetching pod metrics: {e}")
        else:
            pod_row = summarize_pods(phases, now)
            self.repository.add_pod_metric(pod_row)
            result.pod_row = pod_row
            logger.info("Pod metrics stored: %d/%d running", pod_row.running_pods, pod_row.total_pods)

        return result
