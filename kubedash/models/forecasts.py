"""
Forecast Data Models - Stored forecasts and actual-vs-predicted comparisons.

Forecast points are produced by the forecasting job from the external
prediction API and are read-only to the aggregation core.
"""

from typing import Optional
from datetime import datetime, timedelta
from pydantic import BaseModel, ConfigDict, Field


class ForecastPoint(BaseModel):
    """A single stored forecast for one series at one timestamp."""
    model_config = ConfigDict(frozen=True)

    series_key: str = Field(..., description="Forecast item id, e.g. 'node-1_cpu'")
    timestamp: datetime = Field(..., description="Timestamp the forecast applies to")
    mean: float = Field(..., description="Forecast mean")
    lower_bound: float = Field(..., description="Lower bound of the forecast interval")
    upper_bound: float = Field(..., description="Upper bound of the forecast interval")
    created_at: datetime = Field(..., description="When the forecast was generated")

    def has_ordered_bounds(self) -> bool:
        """True when lower_bound <= mean <= upper_bound."""
        return self.lower_bound <= self.mean <= self.upper_bound


class ForecastInput(BaseModel):
    """
    One row of the prediction API request body.

    Serialized with the API's camelCase names (itemId) via `by_alias`.
    """
    model_config = ConfigDict(populate_by_name=True)

    item_id: str = Field(..., alias="itemId", description="Series identifier with resource suffix")
    timestamp: datetime = Field(..., description="Window end timestamp")
    value: float = Field(..., description="Averaged value for the window")


class ForecastComparisonPoint(BaseModel):
    """A forecast point paired with the actual value observed at the same minute."""
    timestamp: datetime = Field(..., description="Forecast timestamp")
    actual: Optional[float] = Field(None, description="Actual value, null when nothing was observed")
    mean: float = Field(..., description="Forecast mean")
    lower_bound: float = Field(..., description="Forecast lower bound")
    upper_bound: float = Field(..., description="Forecast upper bound")


class AlignmentConfig(BaseModel):
    """Window and cadence used to align actual samples with forecasts."""
    history_window: timedelta = Field(timedelta(hours=1), description="Length of the historical window")
    interval: timedelta = Field(timedelta(minutes=5), description="Forecast cadence used when it cannot be inferred")
    fallback_sample_count: Optional[int] = Field(
        None, ge=1,
        description="Raw samples returned when fewer than two forecasts exist; defaults to history_window / interval"
    )

    @property
    def fallback_count(self) -> int:
        if self.fallback_sample_count is not None:
            return self.fallback_sample_count
        return max(int(self.history_window / self.interval), 1)


class PredictionResult(BaseModel):
    """One row of the prediction API response body."""
    model_config = ConfigDict(populate_by_name=True)

    item_id: str = Field(..., alias="itemId", description="Series identifier with resource suffix")
    timestamp: datetime = Field(..., description="Predicted timestamp")
    mean: float = Field(..., description="Predicted mean")
    lower_bound: float = Field(..., alias="lowerBound", description="Lower bound of the prediction interval")
    upper_bound: float = Field(..., alias="upperBound", description="Upper bound of the prediction interval")
