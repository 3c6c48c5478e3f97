"""
Background Jobs - Periodic polling and forecasting inside the API process.

The repository is in-memory, so the poller and the forecaster have to share
the process with the API that reads their rows. Each job runs on a worker
thread (the Kubernetes and HTTP clients are blocking) and sleeps between runs.
"""

import asyncio
import logging
from typing import Callable, List

from kubedash.config import Settings
from kubedash.services.forecasting import ForecastingService
from kubedash.services.k8s import KubernetesNodeSource
from kubedash.services.polling import PollingService
from kubedash.services.repository import MetricsRepository

logger = logging.getLogger(__name__)


async def run_periodically(name: str, interval: float, job: Callable[[], object]) -> None:
    """
    Call `job` every `interval` seconds until cancelled.

    A failing run is logged and the loop carries on with the next one.
    """
    logger.info(f"Starting background job '{name}' (every {interval}s)")
    try:
        while True:
            try:
                await asyncio.to_thread(job)
            except Exception:
                logger.exception(f"Background job '{name}' failed")
            await asyncio.sleep(interval)
    except asyncio.CancelledError:
        logger.info(f"Background job '{name}' stopped")
        raise


def start_background_jobs(settings: Settings, repository: MetricsRepository,
                          node_source: KubernetesNodeSource) -> List[asyncio.Task]:
    """Schedule the poller and the forecaster on the running event loop."""
    poller = PollingService(node_source, repository)
    forecaster = ForecastingService(repository, settings)
    return [
        asyncio.create_task(run_periodically("poll", settings.POLL_INTERVAL_SECONDS, poller.poll_once)),
        asyncio.create_task(run_periodically("forecast", settings.FORECAST_INTERVAL_SECONDS, forecaster.run_once)),
    ]


async def stop_background_jobs(tasks: List[asyncio.Task]) -> None:
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)
