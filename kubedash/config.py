from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, Literal
from datetime import timedelta

from kubedash.models.forecasts import AlignmentConfig
from kubedash.models.infrastructure import UsageThresholds


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')

    # Prometheus (cluster metrics: node-exporter, cAdvisor)
    PROMETHEUS_URL: str = Field("http://localhost:9090", description="URL of the cluster Prometheus server")
    PROMETHEUS_TIMEOUT: int = Field(30, description="Timeout in seconds for Prometheus queries")
    PROMETHEUS_USERNAME: Optional[str] = Field(None, description="Username for Prometheus basic auth")
    PROMETHEUS_PASSWORD: Optional[str] = Field(None, description="Password for Prometheus basic auth")
    PROMETHEUS_CA_BUNDLE: Optional[str] = Field(None, description="Path to a CA bundle for verifying Prometheus TLS")

    # Prometheus scraping the monitored services (http_requests_total, http_response_time, ...)
    API_PROMETHEUS_URL: Optional[str] = Field(
        None, description="URL of the Prometheus holding API request metrics; defaults to PROMETHEUS_URL"
    )

    # Prediction API
    PREDICTION_API_URL: str = Field("http://localhost:8001", description="Base URL of the forecasting API")
    PREDICTION_TIMEOUT: int = Field(30, description="Timeout in seconds for prediction requests")

    # Sampling
    NODE_EXPORTER_PORT: int = Field(9100, description="node-exporter port used to derive instance names")
    SAMPLE_WINDOW_MINUTES: int = Field(60, description="Length of the historical window in minutes")
    SAMPLE_STEP_MINUTES: int = Field(5, description="Bucket width / forecast cadence in minutes")

    # Utilization thresholds (percent)
    CPU_THRESHOLD_PCT: float = Field(60.0, description="CPU usage above which cpu_status is raised")
    MEMORY_THRESHOLD_PCT: float = Field(80.0, description="Memory usage above which memory_status is raised")
    DISK_THRESHOLD_PCT: float = Field(80.0, description="Disk usage above which disk_status is raised")

    # API statistics
    RESPONSE_TIME_PERCENTILE: float = Field(0.9, description="Percentile reported as p90_response_ms")

    # Kubernetes
    NODE_USAGE_SOURCE: Literal["store", "prometheus"] = Field(
        "store", description="Where node CPU/memory usage comes from: latest stored poll row or live Prometheus"
    )
    POD_NAMESPACE: Optional[str] = Field("default", description="Namespace whose pods are counted; empty for all")
    KUBECONFIG_IN_CLUSTER: bool = Field(False, description="Use the in-cluster service account instead of kubeconfig")

    # RabbitMQ management API
    RABBITMQ_URL: str = Field("http://localhost:15672", description="Base URL of the RabbitMQ management API")
    RABBITMQ_USERNAME: str = Field("guest", description="Username for the RabbitMQ management API")
    RABBITMQ_PASSWORD: str = Field("guest", description="Password for the RabbitMQ management API")
    RABBITMQ_TIMEOUT: int = Field(10, description="Timeout in seconds for RabbitMQ management requests")

    # Pod logs
    LOG_MAX_LINES: int = Field(100, le=5000, description="Default number of log lines per page")

    # Background jobs
    BACKGROUND_JOBS_ENABLED: bool = Field(True, description="Run the poller and forecaster inside the API process")
    POLL_INTERVAL_SECONDS: int = Field(60, description="Seconds between cluster polls")
    FORECAST_INTERVAL_SECONDS: int = Field(300, description="Seconds between forecasting runs")

    # Logging
    LOG_LEVEL: str = Field("INFO", description="Logging level")

    @field_validator(
        "PROMETHEUS_TIMEOUT", "PREDICTION_TIMEOUT", "SAMPLE_WINDOW_MINUTES", "SAMPLE_STEP_MINUTES",
        "POLL_INTERVAL_SECONDS", "FORECAST_INTERVAL_SECONDS", "NODE_EXPORTER_PORT",
        "RABBITMQ_TIMEOUT", "LOG_MAX_LINES",
    )
    @classmethod
    def _positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be positive")
        return value

    @field_validator("CPU_THRESHOLD_PCT", "MEMORY_THRESHOLD_PCT", "DISK_THRESHOLD_PCT")
    @classmethod
    def _percentage(cls, value: float) -> float:
        if not 0 <= value <= 100:
            raise ValueError("must be between 0 and 100")
        return value

    @field_validator("RESPONSE_TIME_PERCENTILE")
    @classmethod
    def _fraction(cls, value: float) -> float:
        if not 0 < value <= 1:
            raise ValueError("must be in (0, 1]")
        return value

    @field_validator("LOG_LEVEL")
    @classmethod
    def _log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"):
            raise ValueError(f"unknown log level '{value}'")
        return level

    @property
    def api_prometheus_url(self) -> str:
        return self.API_PROMETHEUS_URL or self.PROMETHEUS_URL

    @property
    def sample_window(self) -> timedelta:
        return timedelta(minutes=self.SAMPLE_WINDOW_MINUTES)

    @property
    def sample_step(self) -> timedelta:
        return timedelta(minutes=self.SAMPLE_STEP_MINUTES)

    def usage_thresholds(self) -> UsageThresholds:
        return UsageThresholds(
            cpu_pct=self.CPU_THRESHOLD_PCT,
            memory_pct=self.MEMORY_THRESHOLD_PCT,
            disk_pct=self.DISK_THRESHOLD_PCT,
        )

    def alignment_config(self) -> AlignmentConfig:
        return AlignmentConfig(history_window=self.sample_window, interval=self.sample_step)


settings = Settings()
