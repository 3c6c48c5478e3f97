import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from kubedash import __version__
from kubedash.api.v1 import infrastructure, api_statistics, rabbitmq, logs, system
from kubedash.config import settings
from kubedash.core.management_decoder import ManagementResponseError
from kubedash.core.prometheus_decoder import PrometheusResponseError
from kubedash.deps import get_node_source, get_repository
from kubedash.middleware import MetricsMiddleware
from kubedash.models.responses import ErrorResponse, ErrorDetail
from kubedash.services.jobs import start_background_jobs, stop_background_jobs
from kubedash.services.k8s import KubernetesException
from kubedash.services.prometheus import PrometheusException
from kubedash.services.rabbitmq import RabbitMQException

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Kubernetes Monitoring Dashboard API - Starting up")
    logger.info(f"API Version: {__version__}")
    logger.info("Metrics middleware enabled - Prometheus metrics available at /api/v1/system/metrics")

    tasks = []
    if settings.BACKGROUND_JOBS_ENABLED:
        tasks = start_background_jobs(settings, get_repository(), get_node_source(settings))
    else:
        logger.info("Background jobs disabled (BACKGROUND_JOBS_ENABLED=false)")
    yield
    await stop_background_jobs(tasks)
    logger.info("Application shutdown")

app = FastAPI(
    title="Kubernetes Monitoring Dashboard API",
    description="Node and cluster utilization, usage forecasts, API statistics, RabbitMQ and pod logs.",
    version=__version__,
    lifespan=lifespan
)

# ============================================================================
# Middleware
# ============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Request tracking; feeds the http_* series the api-statistics endpoints read
app.add_middleware(MetricsMiddleware)

# ============================================================================
# Exception Handlers
# ============================================================================

def _error(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message)).model_dump(mode='json')
    )


@app.exception_handler(PrometheusException)
async def prometheus_exception_handler(request: Request, exc: PrometheusException):
    return _error(status.HTTP_503_SERVICE_UNAVAILABLE, "PROMETHEUS_ERROR", str(exc))


@app.exception_handler(PrometheusResponseError)
async def prometheus_response_handler(request: Request, exc: PrometheusResponseError):
    return _error(status.HTTP_502_BAD_GATEWAY, "PROMETHEUS_RESPONSE_ERROR", str(exc))


@app.exception_handler(KubernetesException)
async def kubernetes_exception_handler(request: Request, exc: KubernetesException):
    if exc.status == status.HTTP_404_NOT_FOUND:
        return _error(status.HTTP_404_NOT_FOUND, "KUBERNETES_NOT_FOUND", str(exc))
    return _error(status.HTTP_503_SERVICE_UNAVAILABLE, "KUBERNETES_ERROR", str(exc))


@app.exception_handler(RabbitMQException)
async def rabbitmq_exception_handler(request: Request, exc: RabbitMQException):
    return _error(status.HTTP_503_SERVICE_UNAVAILABLE, "RABBITMQ_ERROR", str(exc))


@app.exception_handler(ManagementResponseError)
async def rabbitmq_response_handler(request: Request, exc: ManagementResponseError):
    return _error(status.HTTP_502_BAD_GATEWAY, "RABBITMQ_RESPONSE_ERROR", str(exc))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return _error(status.HTTP_422_UNPROCESSABLE_ENTITY, "VALIDATION_ERROR", str(exc))

# ============================================================================
# API v1 Routers
# ============================================================================

app.include_router(infrastructure.router, prefix="/api/v1", tags=["Infrastructure"])
app.include_router(api_statistics.router, prefix="/api/v1", tags=["API Statistics"])
app.include_router(rabbitmq.router, prefix="/api/v1", tags=["RabbitMQ"])
app.include_router(logs.router, prefix="/api/v1", tags=["Logs"])
app.include_router(system.router, prefix="/api/v1", tags=["System"])

# ============================================================================
# Root Endpoint
# ============================================================================

@app.get("/")
def read_root():
    return {
        "message": "Kubernetes Monitoring Dashboard API",
        "version": __version__,
        "docs": "/docs",
        "domains": {
            "infrastructure": "/api/v1/infrastructure/*",
            "api_statistics": "/api/v1/api-statistics/*",
            "rabbitmq": "/api/v1/rabbitmq/*",
            "logs": "/api/v1/logs/*",
            "system": "/api/v1/system/*"
        }
    }
