"""
RabbitMQ Data Models - Broker overview and queue listing.

Counts come from the management API's object_totals / queue_totals; rates
are messages per second as reported by the broker.
"""

from typing import List
from pydantic import BaseModel, Field

from kubedash.models.series import Bucket


class BrokerOverview(BaseModel):
    """Broker-wide counters, current rates and recent history."""
    queues: int = Field(0, ge=0, description="Number of queues")
    consumers: int = Field(0, ge=0, description="Number of consumers")
    channels: int = Field(0, ge=0, description="Number of open channels")
    connections: int = Field(0, ge=0, description="Number of open connections")

    messages_ready: int = Field(0, ge=0, description="Messages ready for delivery")
    messages_unacknowledged: int = Field(0, ge=0, description="Messages delivered but not yet acknowledged")
    messages_total: int = Field(0, ge=0, description="Ready plus unacknowledged messages")

    publish_rate: float = Field(0.0, ge=0, description="Messages published per second")
    deliver_rate: float = Field(0.0, ge=0, description="Messages delivered per second")

    publish_rate_series: List[Bucket] = Field(default_factory=list, description="Publish rate history, oldest first")
    deliver_rate_series: List[Bucket] = Field(default_factory=list, description="Deliver rate history, oldest first")
    queued_messages_series: List[Bucket] = Field(default_factory=list, description="Queued message history, oldest first")


class QueueInfo(BaseModel):
    """One queue as listed by /api/queues."""
    virtual_host: str = Field("/", description="Virtual host")
    name: str = Field(..., description="Queue name")
    type: str = Field("classic", description="Queue type (classic, quorum, stream)")
    state: str = Field("unknown", description="Queue state, e.g. running or idle")
    ready: int = Field(0, ge=0, description="Messages ready for delivery")
    unacked: int = Field(0, ge=0, description="Messages awaiting acknowledgement")
    total: int = Field(0, ge=0, description="Ready plus unacknowledged messages")
    incoming_rate: float = Field(0.0, description="Change in ready messages per second; negative while draining")
    unacked_rate: float = Field(0.0, description="Change in unacknowledged messages per second")


class QueuePage(BaseModel):
    """One page of the paginated queue listing."""
    page: int = Field(1, ge=1, description="Page number, starting at 1")
    page_count: int = Field(0, ge=0, description="Number of pages")
    total_count: int = Field(0, ge=0, description="Number of queues across all pages")
    items: List[QueueInfo] = Field(default_factory=list, description="Queues on this page")
