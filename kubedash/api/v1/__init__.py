"""
API v1 Module

Exports the v1 routers:

1. Infrastructure - Nodes, CPU actuals, forecasts, cluster status
2. API Statistics - Request totals, error rates, latency percentiles
3. RabbitMQ - Broker overview and queue listing
4. Logs - Namespaces, pods and time-paged pod logs
5. System - Health and self-metrics
"""

from kubedash.api.v1 import (
    infrastructure,
    api_statistics,
    rabbitmq,
    logs,
    system
)

__all__ = [
    "infrastructure",
    "api_statistics",
    "rabbitmq",
    "logs",
    "system"
]
