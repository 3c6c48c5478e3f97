"""
Forecasting Job - Feeds recent node usage to the prediction API and stores the forecasts.

Every run:
1. rounds the current time down to the sample step (5 minutes by default)
2. reads the stored node rows of the preceding window (60 minutes)
3. averages them per node into step-wide windows, separately for CPU and memory
4. POSTs each resource's rows to {PREDICTION_API_URL}/predict
5. stores the returned points as ForecastPoints

Item ids carry the resource suffix ("node-1_cpu", "node-1_memory"), which
is also the series key the dashboard looks forecasts up by.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

import requests
from pydantic import TypeAdapter, ValidationError

from kubedash.config import Settings
from kubedash.core.alignment import FORECAST_RESOURCES, forecast_item_id
from kubedash.core.bucketing import aggregate_forecast_input, as_utc, floor_to_interval
from kubedash.models.forecasts import ForecastInput, ForecastPoint, PredictionResult
from kubedash.models.infrastructure import NodeMetricRow
from kubedash.models.series import RawSample
from kubedash.services.repository import MetricsRepository

logger = logging.getLogger(__name__)

_RESOURCE_FIELDS = {"cpu": "cpu_usage", "memory": "memory_usage"}

_prediction_list = TypeAdapter(List[PredictionResult])


class ForecastApiException(Exception):
    """Custom exception for prediction API errors."""
    pass


def rows_to_samples(rows: List[NodeMetricRow], resource: str) -> List[RawSample]:
    """One RawSample per row for `resource`, keyed by the forecast item id."""
    attribute = _RESOURCE_FIELDS[resource]
    return [
        RawSample(
            timestamp=row.timestamp,
            value=getattr(row, attribute),
            series_key=forecast_item_id(row.node_name, resource),
        )
        for row in rows
    ]


class ForecastingService:
    def __init__(self, repository: MetricsRepository, settings: Settings):
        self.repository = repository
        self.predict_url = f"{settings.PREDICTION_API_URL.rstrip('/')}/predict"
        self.timeout = settings.PREDICTION_TIMEOUT
        self.window = settings.sample_window
        self.step = settings.sample_step
        self.session = requests.Session()

    def build_inputs(self, now: datetime) -> Dict[str, List[ForecastInput]]:
        """Prediction request bodies per resource for the window ending at floor(now)."""
        latest = floor_to_interval(now, self.step)
        window_start = latest - self.window
        rows = self.repository.node_metrics_between(window_start, latest)

        return {
            resource: aggregate_forecast_input(
                rows_to_samples(rows, resource), window_start, self.step, self.window
            )
            for resource in FORECAST_RESOURCES
        }

    def predict(self, inputs: List[ForecastInput]) -> List[PredictionResult]:
        """
        POST inputs to the prediction API.

        Raises:
            ForecastApiException: On transport errors, non-2xx responses or an
                unexpected response body
        """
        body = [row.model_dump(mode="json", by_alias=True) for row in inputs]
        try:
            response = self.session.post(self.predict_url, json=body, timeout=self.timeout)
            response.raise_for_status()
            return _prediction_list.validate_python(response.json())
        except requests.exceptions.Timeout as e:
            raise ForecastApiException(f"Prediction API timed out: {e}") from e
        except requests.exceptions.HTTPError as e:
            raise ForecastApiException(f"Prediction API error: {e}") from e
        except requests.exceptions.RequestException as e:
            raise ForecastApiException(f"Error calling prediction API: {e}") from e
        except (ValueError, ValidationError) as e:
            raise ForecastApiException(f"Prediction API returned an invalid body: {e}") from e

    def run_once(self, now: Optional[datetime] = None) -> List[ForecastPoint]:
        """
        Run one forecasting cycle.

        Prediction failures are logged and skip only the affected resource.

        Returns:
            List[ForecastPoint]: Points stored in this run
        """
        now = as_utc(now or datetime.now(timezone.utc))
        inputs = self.build_inputs(now)

        if not all(inputs.values()):
            logger.warning("Not enough historical data for forecasting.")
            return []

        stored: List[ForecastPoint] = []
        for resource, rows in inputs.items():
            try:
                results = self.predict(rows)
            except ForecastApiException as e:
                logger.error(f"{resource} forecast failed: {e}")
                continue

            if not results:
                logger.warning(f"{resource} forecast API returned no results.")
                continue

            points = [
                ForecastPoint(
                    series_key=result.item_id,
                    timestamp=as_utc(result.timestamp),
                    mean=result.mean,
                    lower_bound=result.lower_bound,
                    upper_bound=result.upper_bound,
                    created_at=now,
                )
                for result in results
            ]
            self.repository.add_forecasts(points)
            stored.extend(points)
            logger.info(f"Stored {len(points)} {resource} forecast points")

        return stored
