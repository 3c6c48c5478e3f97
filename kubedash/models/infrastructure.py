"""
Infrastructure Data Models - Nodes, cluster rollups, and persisted poll rows.

This module defines Pydantic models for node and cluster summaries served to
the dashboard, plus the rows the poller persists (NodeMetric, ClusterMetric,
PodMetric). Percentages are 0-100; byte counts are raw bytes unless the field
name says otherwise.
"""

from typing import Dict, Optional
from datetime import datetime
from pydantic import BaseModel, Field


# ============================================================================
# Persisted Rows
# ============================================================================

class NodeMetricRow(BaseModel):
    """Per-node utilization sample written by the poller."""
    node_name: str = Field(..., description="Kubernetes node name")
    cpu_usage: float = Field(0.0, description="CPU usage percentage")
    memory_usage: float = Field(0.0, description="Memory usage percentage")
    disk_usage: float = Field(0.0, description="Ephemeral storage usage percentage")
    timestamp: datetime = Field(..., description="Poll timestamp")


class ClusterMetricRow(BaseModel):
    """Cluster-wide utilization row written by the poller."""
    total_nodes: int = Field(0, ge=0, description="Number of nodes")
    active_nodes: int = Field(0, ge=0, description="Number of Ready nodes")
    cpu_usage: float = Field(0.0, description="Cluster CPU usage percentage")
    memory_usage: float = Field(0.0, description="Cluster memory usage percentage")
    disk_usage: Optional[float] = Field(None, description="Cluster disk usage percentage")
    timestamp: datetime = Field(..., description="Poll timestamp")


class PodMetricRow(BaseModel):
    """Pod counts written by the poller."""
    total_pods: int = Field(0, ge=0, description="Number of pods")
    running_pods: int = Field(0, ge=0, description="Number of pods in phase Running")
    timestamp: datetime = Field(..., description="Poll timestamp")


# ============================================================================
# Dashboard Snapshots
# ============================================================================

class NodeSnapshot(BaseModel):
    """
    Per-node summary: capacity, current utilization and condition flags.

    Built fresh on each request and never persisted.
    """
    name: str = Field(..., description="Node name")
    instance: Optional[str] = Field(None, description="node-exporter instance (InternalIP:port)")

    cpu_cores: int = Field(0, ge=0, description="CPU capacity in whole cores")
    memory_bytes: int = Field(0, ge=0, description="Memory capacity in bytes")
    disk_bytes: int = Field(0, ge=0, description="Ephemeral storage capacity in bytes")
    memory_gib: int = Field(0, ge=0, description="Memory capacity in whole GiB (floored)")
    disk_gib: int = Field(0, ge=0, description="Ephemeral storage capacity in whole GiB (floored)")

    cpu_usage_pct: float = Field(0.0, description="CPU usage percentage")
    memory_usage_pct: float = Field(0.0, description="Memory usage percentage")
    disk_usage_pct: float = Field(0.0, description="Ephemeral storage usage percentage")

    conditions: Dict[str, str] = Field(default_factory=dict, description="Node condition type -> status")
    has_usage_sample: bool = Field(False, description="Whether a utilization sample was available")


class ClusterSnapshot(BaseModel):
    """
    Cluster-wide rollup merged from the latest cluster row and the latest pod row.

    The two rows come from independent poll writes; both timestamps are
    exposed so the skew between them is visible to consumers.
    """
    total_nodes: int = Field(0, ge=0, description="Number of nodes")
    active_nodes: int = Field(0, ge=0, description="Number of Ready nodes")
    total_pods: int = Field(0, ge=0, description="Number of pods")
    running_pods: int = Field(0, ge=0, description="Number of running pods")
    cpu_usage_pct: float = Field(0.0, description="Cluster CPU usage percentage")
    memory_usage_pct: float = Field(0.0, description="Cluster memory usage percentage")
    disk_usage_pct: float = Field(0.0, description="Cluster disk usage percentage")
    cluster_timestamp: Optional[datetime] = Field(None, description="Timestamp of the cluster row used")
    pod_timestamp: Optional[datetime] = Field(None, description="Timestamp of the pod row used")


class ClusterUtilization(BaseModel):
    """Rolled-up utilization with threshold status flags (1 = above threshold)."""
    cpu_usage_pct: float = Field(0.0, description="CPU usage percentage")
    memory_usage_pct: float = Field(0.0, description="Memory usage percentage")
    disk_usage_pct: float = Field(0.0, description="Disk usage percentage")
    cpu_status: int = Field(0, ge=0, le=1, description="1 when CPU usage exceeds its threshold")
    memory_status: int = Field(0, ge=0, le=1, description="1 when memory usage exceeds its threshold")
    disk_status: int = Field(0, ge=0, le=1, description="1 when disk usage exceeds its threshold")


# ============================================================================
# Configuration Objects
# ============================================================================

class UsageThresholds(BaseModel):
    """Percentages above which a utilization status flag is raised."""
    cpu_pct: float = Field(60.0, ge=0, le=100, description="CPU threshold percentage")
    memory_pct: float = Field(80.0, ge=0, le=100, description="Memory threshold percentage")
    disk_pct: float = Field(80.0, ge=0, le=100, description="Disk threshold percentage")
