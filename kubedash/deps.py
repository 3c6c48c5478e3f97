"""
FastAPI dependency providers.

Settings and the repository are process-wide; clients and services are
cheap wrappers built per request from the current settings so tests can
swap any layer through app.dependency_overrides.
"""

from functools import lru_cache
from typing import Optional

from fastapi import Depends

from kubedash.config import Settings, settings as default_settings
from kubedash.services.api_statistics import ApiStatisticsService
from kubedash.services.infrastructure import InfrastructureService
from kubedash.services.k8s import KubernetesNodeSource
from kubedash.services.logs import LogService
from kubedash.services.prometheus import PrometheusClient
from kubedash.services.rabbitmq import RabbitMQClient, RabbitMQService
from kubedash.services.repository import InMemoryMetricsRepository, MetricsRepository


def get_settings() -> Settings:
    return default_settings


@lru_cache
def _shared_repository() -> InMemoryMetricsRepository:
    return InMemoryMetricsRepository()


def get_repository() -> MetricsRepository:
    return _shared_repository()


@lru_cache
def _shared_node_source(in_cluster: bool, namespace: Optional[str]) -> KubernetesNodeSource:
    return KubernetesNodeSource(Settings(KUBECONFIG_IN_CLUSTER=in_cluster, POD_NAMESPACE=namespace))


def get_node_source(settings: Settings = Depends(get_settings)) -> KubernetesNodeSource:
    return _shared_node_source(settings.KUBECONFIG_IN_CLUSTER, settings.POD_NAMESPACE)


def get_prometheus_client(settings: Settings = Depends(get_settings)) -> PrometheusClient:
    return PrometheusClient(settings)


def get_api_prometheus_client(settings: Settings = Depends(get_settings)) -> PrometheusClient:
    return PrometheusClient(settings, base_url=settings.api_prometheus_url)


def get_infrastructure_service(
    settings: Settings = Depends(get_settings),
    prometheus: PrometheusClient = Depends(get_prometheus_client),
    repository: MetricsRepository = Depends(get_repository),
    node_source: KubernetesNodeSource = Depends(get_node_source),
) -> InfrastructureService:
    return InfrastructureService(
        prometheus=prometheus,
        repository=repository,
        node_source=node_source,
        thresholds=settings.usage_thresholds(),
        alignment=settings.alignment_config(),
        settings=settings,
    )


def get_api_statistics_service(
    settings: Settings = Depends(get_settings),
    prometheus: PrometheusClient = Depends(get_api_prometheus_client),
) -> ApiStatisticsService:
    return ApiStatisticsService(prometheus, percentile=settings.RESPONSE_TIME_PERCENTILE)


def get_rabbitmq_client(settings: Settings = Depends(get_settings)) -> RabbitMQClient:
    return RabbitMQClient(settings)


def get_rabbitmq_service(client: RabbitMQClient = Depends(get_rabbitmq_client)) -> RabbitMQService:
    return RabbitMQService(client)


def get_log_service(
    settings: Settings = Depends(get_settings),
    node_source: KubernetesNodeSource = Depends(get_node_source),
) -> LogService:
    return LogService(node_source, default_max_lines=settings.LOG_MAX_LINES)
