"""
Time-Series Data Models - Samples, buckets, and chart series.

This module defines the value objects that flow through the aggregation core:
- RawSample: a single timestamped observation from polling or a Prometheus query
- Bucket: a fixed-width time window holding an averaged value or "no data"
- MetricSeries: a zero-filled series for request/error/latency charts
"""

from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field


class RawSample(BaseModel):
    """A single observation. Immutable once created."""
    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(..., description="Observation timestamp (UTC)")
    value: float = Field(..., description="Observed value")
    series_key: str = Field("", description="Identity of the series the sample belongs to")


class Bucket(BaseModel):
    """
    A fixed-width interval of a bucketed series.

    `value` is None when no sample fell into the interval; this is distinct
    from an interval whose samples averaged to 0.
    """
    model_config = ConfigDict(frozen=True)

    bucket_start: datetime = Field(..., description="Start of the interval (UTC)")
    value: Optional[float] = Field(None, description="Mean of the samples in the interval, or null for no data")

    @property
    def has_data(self) -> bool:
        return self.value is not None


class MetricSeries(BaseModel):
    """Parallel timestamp/value lists used by the API statistics charts."""
    timestamps: List[datetime] = Field(default_factory=list, description="Series timestamps")
    values: List[float] = Field(default_factory=list, description="Series values, 0 where no data")
