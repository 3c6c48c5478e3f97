"""
Infrastructure API - Node and cluster monitoring endpoints.

This module provides endpoints for:
- Node capacity, utilization and condition flags
- Gap-filled CPU actuals per node-exporter instance (Prometheus)
- Actual-vs-forecast comparison per node and resource
- Cluster status and utilization with threshold flags
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Path

from kubedash.core.prometheus_decoder import PrometheusResponseError
from kubedash.deps import get_infrastructure_service
from kubedash.models.responses import (
    ActualSeriesResponse,
    ClusterStatusResponse,
    ClusterUtilizationResponse,
    ForecastComparisonResponse,
    NodeListResponse,
)
from kubedash.services.infrastructure import InfrastructureService

router = APIRouter()

# ============================================================================
# Nodes Endpoints
# ============================================================================

@router.get("/infrastructure/nodes/info",
            response_model=NodeListResponse,
            summary="List node information",
            description="Capacity, current utilization and condition flags for every node.")
def get_nodes_info(service: InfrastructureService = Depends(get_infrastructure_service)):
    """
    Get all Kubernetes nodes with capacity (cores, GiB) and usage percentages.

    Disk usage is the consumed share of ephemeral storage (capacity minus
    allocatable). CPU and memory usage come from the latest poll, or from
    Prometheus when NODE_USAGE_SOURCE=prometheus.
    """
    nodes = service.node_snapshots()
    return NodeListResponse(total_nodes=len(nodes), nodes=nodes)


@router.get("/infrastructure/nodes/cpu-actual",
            response_model=ActualSeriesResponse,
            summary="Get CPU actuals for an instance",
            description="CPU usage of a node-exporter instance, one bucket per sample step.")
def get_cpu_actual(
    instance: str = Query(..., description="node-exporter instance, e.g. 10.0.0.11:9100"),
    service: InfrastructureService = Depends(get_infrastructure_service),
):
    """
    **Query Parameters:**
    - `instance`: node-exporter instance (InternalIP:port)

    **Returns:** Buckets over the sample window; `value` is null where Prometheus had no data.
    """
    try:
        buckets = service.cpu_actual(instance)
    except PrometheusResponseError:
        raise
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ActualSeriesResponse(instance=instance, buckets=buckets)


@router.get("/infrastructure/nodes/{node_name}/forecast",
            response_model=ForecastComparisonResponse,
            summary="Compare actual usage with forecasts",
            description="Stored usage aligned to the forecast cadence, alongside the forecasts.")
def get_node_forecast(
    node_name: str = Path(..., description="Node name"),
    resource: str = Query("cpu", pattern="^(cpu|memory)$", description="cpu or memory"),
    service: InfrastructureService = Depends(get_infrastructure_service),
):
    """
    The historical window ends at the second most recent forecast. With
    fewer than two forecasts, `aligned` is false and `actual` holds the most
    recent raw samples instead.
    """
    result = service.forecast_comparison(node_name, resource)
    return ForecastComparisonResponse(
        node_name=node_name,
        resource=resource,
        series_key=result.series_key,
        aligned=result.aligned,
        actual=result.actual,
        forecast=result.forecast,
        comparison=result.comparison,
    )


# ============================================================================
# Cluster Endpoints
# ============================================================================

@router.get("/infrastructure/cluster/status",
            response_model=ClusterStatusResponse,
            summary="Get cluster status",
            description="Node and pod counts with cluster-wide usage from the latest poll.")
def get_cluster_status(service: InfrastructureService = Depends(get_infrastructure_service)):
    """
    Merges the newest cluster row with the newest pod row. Both source
    timestamps are returned since the rows may come from different polls.
    """
    return ClusterStatusResponse(cluster=service.cluster_status())


@router.get("/infrastructure/cluster/utilization",
            response_model=ClusterUtilizationResponse,
            summary="Get cluster utilization",
            description="Cluster-wide usage with 0/1 status flags against the configured thresholds.")
def get_cluster_utilization(service: InfrastructureService = Depends(get_infrastructure_service)):
    return ClusterUtilizationResponse(
        utilization=service.cluster_utilization(),
        thresholds=service.thresholds,
    )
