"""
RabbitMQ API - Broker overview and queue listing.

This module provides endpoints for:
- Broker counts, publish/deliver rates and their recent history
- Paginated queue listing with message counts and rates
"""

from fastapi import APIRouter, Depends, Query

from kubedash.deps import get_rabbitmq_service
from kubedash.models.responses import BrokerOverviewResponse, QueueListResponse
from kubedash.services.rabbitmq import RabbitMQService

router = APIRouter()


@router.get("/rabbitmq/overview",
            response_model=BrokerOverviewResponse,
            summary="Get broker overview",
            description="Queue, consumer and channel counts with message rates and their history.")
def get_overview(
    lengths_age: int = Query(60, ge=1, le=86400, description="Seconds of queue length history"),
    lengths_incr: int = Query(5, ge=1, le=3600, description="Seconds between queue length samples"),
    msg_rates_age: int = Query(60, ge=1, le=86400, description="Seconds of message rate history"),
    msg_rates_incr: int = Query(5, ge=1, le=3600, description="Seconds between message rate samples"),
    service: RabbitMQService = Depends(get_rabbitmq_service),
):
    """
    **Returns:** Current counters and rates. The `*_series` lists are
    oldest first; a bucket's value is null when the broker reported a
    non-numeric sample.
    """
    overview = service.overview(lengths_age, lengths_incr, msg_rates_age, msg_rates_incr)
    return BrokerOverviewResponse(overview=overview)


@router.get("/rabbitmq/queues",
            response_model=QueueListResponse,
            summary="List queues",
            description="One page of queues with ready/unacked counts and rates.")
def get_queues(
    page: int = Query(1, ge=1, description="Page number, starting at 1"),
    page_size: int = Query(100, ge=1, le=500, description="Queues per page"),
    service: RabbitMQService = Depends(get_rabbitmq_service),
):
    result = service.queues(page=page, page_size=page_size)
    return QueueListResponse(
        page=result.page,
        page_size=page_size,
        page_count=result.page_count,
        total_count=result.total_count,
        queues=result.items,
    )
