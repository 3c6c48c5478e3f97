"""
Logs API - Pod log viewer.

This module provides endpoints for:
- Namespace and pod listing
- Time-paged pod logs
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query

from kubedash.deps import get_log_service
from kubedash.models.responses import NamespaceListResponse, PodListResponse, PodLogResponse
from kubedash.services.logs import LogService

router = APIRouter()


@router.get("/logs/namespaces",
            response_model=NamespaceListResponse,
            summary="List namespaces")
def get_namespaces(service: LogService = Depends(get_log_service)):
    return NamespaceListResponse(namespaces=service.namespaces())


@router.get("/logs/namespaces/{namespace}/pods",
            response_model=PodListResponse,
            summary="List pods in a namespace")
def get_pods(
    namespace: str = Path(..., description="Namespace"),
    service: LogService = Depends(get_log_service),
):
    return PodListResponse(namespace=namespace, pods=service.pods(namespace))


@router.get("/logs/namespaces/{namespace}/pods/{pod_name}",
            response_model=PodLogResponse,
            summary="Get a page of pod logs",
            description="Log lines between start_time and end_time, at most max_lines of them.")
def get_pod_logs(
    namespace: str = Path(..., description="Namespace"),
    pod_name: str = Path(..., description="Pod name"),
    start_time: Optional[datetime] = Query(None, description="Earliest line to return (ISO 8601)"),
    end_time: Optional[datetime] = Query(None, description="Stop before this time (ISO 8601)"),
    max_lines: Optional[int] = Query(None, ge=1, le=5000, description="Lines per page; LOG_MAX_LINES by default"),
    service: LogService = Depends(get_log_service),
):
    """
    **Paging:** when `has_more` is true, request the next page with
    `start_time` set to the returned `next_start_time`.

    Naive timestamps are taken as UTC. A pod that does not exist gives 404.
    """
    try:
        page = service.pod_logs(namespace, pod_name, start_time, end_time, max_lines)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return PodLogResponse(
        namespace=namespace,
        pod_name=pod_name,
        logs=page.logs,
        next_start_time=page.next_start_time,
        has_more=page.has_more,
    )
