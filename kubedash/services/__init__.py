from .prometheus import PrometheusClient, PrometheusException, PROMETHEUS_QUERIES, build_query
from .repository import MetricsRepository, InMemoryMetricsRepository
from .k8s import KubernetesNodeSource, KubernetesException
from .infrastructure import InfrastructureService
from .api_statistics import ApiStatisticsService
from .polling import PollingService
from .forecasting import ForecastingService, ForecastApiException
from .rabbitmq import RabbitMQClient, RabbitMQService, RabbitMQException
from .logs import LogService
from .jobs import run_periodically, start_background_jobs, stop_background_jobs
