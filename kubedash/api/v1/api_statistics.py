"""
API Statistics API - Request, error and latency figures of monitored services.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Path

from kubedash.core.prometheus_decoder import PrometheusResponseError
from kubedash.deps import get_api_statistics_service
from kubedash.models.responses import ApiSummaryResponse, EndpointPerformanceResponse, MetricSeriesResponse
from kubedash.services.api_statistics import ApiStatisticsService

router = APIRouter()


@router.get("/api-statistics/performance",
            response_model=EndpointPerformanceResponse,
            summary="Get per-endpoint performance",
            description="Requests, average/min/max/percentile latency and error rate per endpoint and method.")
def get_performance(service: ApiStatisticsService = Depends(get_api_statistics_service)):
    """
    Latency figures come from the `http_response_time` histogram:
    min/max are the lowest and highest finite bucket bounds, and the
    percentile is the first bound whose cumulative count reaches it.
    """
    return EndpointPerformanceResponse(percentile=service.percentile, endpoints=service.performance())


@router.get("/api-statistics/summary",
            response_model=ApiSummaryResponse,
            summary="Get API totals",
            description="Total requests, error rate and average response time over a window.")
def get_summary(
    window: str = Query("1h", description="PromQL duration, e.g. 15m, 1h, 1d"),
    service: ApiStatisticsService = Depends(get_api_statistics_service),
):
    try:
        summary = service.summary(window)
    except PrometheusResponseError:
        raise
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ApiSummaryResponse(summary=summary)


@router.get("/api-statistics/series/{metric}",
            response_model=MetricSeriesResponse,
            summary="Get a chart series",
            description="Zero-filled requests, error-rate or response-time series.")
def get_series(
    metric: str = Path(..., description="requests, error-rate or response-time"),
    window: str = Query("1h", description="PromQL duration covered by the series"),
    step: str = Query("5m", description="PromQL duration between points"),
    service: ApiStatisticsService = Depends(get_api_statistics_service),
):
    """
    **Path Parameters:**
    - `metric`: requests | error-rate | response-time

    **Returns:** Parallel timestamp/value lists; missing points are 0.
    """
    try:
        series = service.series(metric, window, step)
    except PrometheusResponseError:
        raise
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return MetricSeriesResponse(metric=metric, window=window, step=step, series=series)
