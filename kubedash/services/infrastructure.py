"""
Infrastructure Service - Node and cluster views for the dashboard.

Combines the Kubernetes node source, stored poll rows, stored forecasts and
live Prometheus data, then hands plain models to the aggregation core.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from kubedash.config import Settings
from kubedash.core.alignment import (
    align_actual_to_forecast,
    forecast_item_id,
    forecast_window,
    match_actual_to_forecast,
)
from kubedash.core.assembler import (
    assemble_cluster_snapshot,
    assemble_node_snapshot,
    derive_instance,
    usage_status,
)
from kubedash.core.bucketing import as_utc, bucket_samples, floor_to_interval
from kubedash.core.prometheus_decoder import decode_instant_scalar, decode_range_vector
from kubedash.models.forecasts import AlignmentConfig, ForecastComparisonPoint, ForecastPoint
from kubedash.models.infrastructure import (
    ClusterSnapshot,
    ClusterUtilization,
    NodeMetricRow,
    NodeSnapshot,
    UsageThresholds,
)
from kubedash.models.series import Bucket, RawSample
from kubedash.services.k8s import KubernetesNodeSource
from kubedash.services.prometheus import PrometheusClient, build_query
from kubedash.services.repository import MetricsRepository

logger = logging.getLogger(__name__)

_ROW_FIELDS = {"cpu": "cpu_usage", "memory": "memory_usage"}


@dataclass
class ForecastComparison:
    """Actual buckets, forecasts and their pointwise pairing for one series."""
    series_key: str
    aligned: bool
    actual: List[Bucket]
    forecast: List[ForecastPoint]
    comparison: List[ForecastComparisonPoint]


class InfrastructureService:
    def __init__(
        self,
        prometheus: PrometheusClient,
        repository: MetricsRepository,
        node_source: KubernetesNodeSource,
        thresholds: UsageThresholds,
        alignment: AlignmentConfig,
        settings: Settings,
    ):
        self.prometheus = prometheus
        self.repository = repository
        self.node_source = node_source
        self.thresholds = thresholds
        self.alignment = alignment
        self.usage_source = settings.NODE_USAGE_SOURCE
        self.exporter_port = settings.NODE_EXPORTER_PORT
        self.step = settings.sample_step
        self.step_text = f"{settings.SAMPLE_STEP_MINUTES}m"
        self.window = settings.sample_window

    # ========================================================================
    # Nodes
    # ========================================================================

    def _prometheus_sample(self, node_name: str, instance: str, now: datetime) -> NodeMetricRow:
        cpu = decode_instant_scalar(self.prometheus.query(
            build_query("node_cpu_usage", instance=instance, step=self.step_text)
        ))
        memory = decode_instant_scalar(self.prometheus.query(
            build_query("node_memory_usage", instance=instance)
        ))
        return NodeMetricRow(
            node_name=node_name,
            cpu_usage=round(cpu, 2),
            memory_usage=round(memory, 2),
            timestamp=now,
        )

    def node_snapshots(self, now: Optional[datetime] = None) -> List[NodeSnapshot]:
        """
        Capacity, utilization and condition flags for every node.

        Usage comes from the latest stored poll row, or from live
        Prometheus when NODE_USAGE_SOURCE is "prometheus".
        """
        now = now or datetime.now(timezone.utc)
        snapshots = []
        for node in self.node_source.list_nodes():
            name = node["name"]
            addresses = node.get("addresses") or []
            instance = derive_instance(addresses, self.exporter_port)
            if instance is None:
                logger.warning("No InternalIP found for node: %s", name)

            if self.usage_source == "prometheus" and instance is not None:
                sample = self._prometheus_sample(name, instance, now)
            else:
                sample = self.repository.latest_node_metric(name)
            if sample is None:
                logger.info("No usage sample for node %s; reporting 0%% usage", name)

            snapshot = assemble_node_snapshot(
                name=name,
                capacity=node.get("capacity") or {},
                allocatable=node.get("allocatable") or {},
                conditions=node.get("conditions") or {},
                latest_sample=sample,
                addresses=addresses,
                exporter_port=self.exporter_port,
            )
            logger.debug(
                "Parsed node info - %s: %d cores, %d GiB memory, %d GiB disk, cpu %.1f%%, memory %.1f%%, disk %.1f%%",
                snapshot.name, snapshot.cpu_cores, snapshot.memory_gib, snapshot.disk_gib,
                snapshot.cpu_usage_pct, snapshot.memory_usage_pct, snapshot.disk_usage_pct,
            )
            snapshots.append(snapshot)
        return snapshots

    def cpu_actual(self, instance: str, now: Optional[datetime] = None) -> List[Bucket]:
        """
        CPU usage of a node-exporter instance over the sample window, one bucket
        per step, with None where Prometheus returned nothing.
        """
        end = floor_to_interval(now or datetime.now(timezone.utc), self.step)
        start = end - self.window
        query = build_query("node_cpu_usage", instance=instance, step=self.step_text)
        samples = decode_range_vector(
            self.prometheus.query_range(query, start, end, self.step_text),
            key_label="instance",
        )
        if not samples:
            logger.warning("No CPU data found for instance %s.", instance)
        return bucket_samples(samples, start, end, self.step)

    def forecast_comparison(self, node_name: str, resource: str,
                            now: Optional[datetime] = None) -> ForecastComparison:
        """
        Stored actuals for a node aligned against its forecasts.

        Raises:
            ValueError: If resource is not cpu or memory
        """
        series_key = forecast_item_id(node_name, resource)
        attribute = _ROW_FIELDS[resource.lower()]
        forecasts = self.repository.forecasts(series_key)
        window = forecast_window(forecasts, series_key, self.alignment.history_window)

        if window is None:
            logger.warning("Fewer than two forecasts for %s; returning the latest raw samples", series_key)
            now = as_utc(now or datetime.now(timezone.utc))
            start, end = now - self.alignment.history_window, now
        else:
            start, end = window

        samples = [
            RawSample(timestamp=row.timestamp, value=getattr(row, attribute), series_key=series_key)
            for row in self.repository.node_metrics_between(start, end, node_name)
        ]
        actual = align_actual_to_forecast(series_key, forecasts, samples, self.alignment)

        shown = sorted(
            (point for point in forecasts if window is None or as_utc(point.timestamp) >= start),
            key=lambda point: as_utc(point.timestamp),
        )
        return ForecastComparison(
            series_key=series_key,
            aligned=window is not None,
            actual=actual,
            forecast=shown,
            comparison=match_actual_to_forecast(shown, actual),
        )

    # ========================================================================
    # Cluster
    # ========================================================================

    def cluster_status(self) -> ClusterSnapshot:
        """Latest cluster row merged with the latest pod row."""
        snapshot = assemble_cluster_snapshot(
            self.repository.latest_cluster_metric(),
            self.repository.latest_pod_metric(),
        )
        if snapshot.cluster_timestamp is None:
            logger.warning("No cluster metrics stored yet")
        return snapshot

    def cluster_utilization(self) -> ClusterUtilization:
        """Cluster usage with threshold status flags."""
        return usage_status(self.cluster_status(), self.thresholds)
