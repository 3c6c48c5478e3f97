"""
Metrics Repository - Narrow read/write surface over persisted poll rows and forecasts.

The aggregation core never touches storage; services read rows through this
interface and hand plain models to the core. InMemoryMetricsRepository backs
a single API process (the poller and forecasting job run inside it); any
database-backed store only needs to satisfy MetricsRepository.
"""

import threading
from collections import defaultdict
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Protocol

from kubedash.core.assembler import latest_row
from kubedash.core.bucketing import as_utc
from kubedash.models.forecasts import ForecastPoint
from kubedash.models.infrastructure import NodeMetricRow, ClusterMetricRow, PodMetricRow


class MetricsRepository(Protocol):
    """Operations the poller, the forecasting job and the dashboard need from storage."""

    def add_node_metrics(self, rows: Iterable[NodeMetricRow]) -> None: ...

    def add_cluster_metric(self, row: ClusterMetricRow) -> None: ...

    def add_pod_metric(self, row: PodMetricRow) -> None: ...

    def latest_node_metric(self, node_name: str) -> Optional[NodeMetricRow]: ...

    def latest_cluster_metric(self) -> Optional[ClusterMetricRow]: ...

    def latest_pod_metric(self) -> Optional[PodMetricRow]: ...

    def node_metrics_between(self, start: datetime, end: datetime,
                             node_name: Optional[str] = None) -> List[NodeMetricRow]: ...

    def add_forecasts(self, points: Iterable[ForecastPoint]) -> None: ...

    def forecasts(self, series_key: str, limit: Optional[int] = None) -> List[ForecastPoint]: ...


class InMemoryMetricsRepository:
    """
    Thread-safe in-process implementation of MetricsRepository.

    Each series keeps at most `max_rows_per_series` entries; the oldest
    are dropped on insert.
    """

    def __init__(self, max_rows_per_series: int = 10_000):
        self._lock = threading.Lock()
        self._max_rows = max_rows_per_series
        self._node_rows: Dict[str, List[NodeMetricRow]] = defaultdict(list)
        self._cluster_rows: List[ClusterMetricRow] = []
        self._pod_rows: List[PodMetricRow] = []
        self._forecasts: Dict[str, Dict[datetime, ForecastPoint]] = defaultdict(dict)

    def _trim(self, rows: list) -> None:
        overflow = len(rows) - self._max_rows
        if overflow > 0:
            del rows[:overflow]

    # -- writes ---------------------------------------------------------------

    def add_node_metrics(self, rows: Iterable[NodeMetricRow]) -> None:
        with self._lock:
            for row in rows:
                series = self._node_rows[row.node_name]
                series.append(row)
                self._trim(series)

    def add_cluster_metric(self, row: ClusterMetricRow) -> None:
        with self._lock:
            self._cluster_rows.append(row)
            self._trim(self._cluster_rows)

    def add_pod_metric(self, row: PodMetricRow) -> None:
        with self._lock:
            self._pod_rows.append(row)
            self._trim(self._pod_rows)

    def add_forecasts(self, points: Iterable[ForecastPoint]) -> None:
        """Store forecasts; a newer forecast for the same series and timestamp replaces the old one."""
        with self._lock:
            for point in points:
                by_time = self._forecasts[point.series_key]
                by_time[as_utc(point.timestamp)] = point
                overflow = len(by_time) - self._max_rows
                if overflow > 0:
                    for ts in sorted(by_time)[:overflow]:
                        del by_time[ts]

    # -- reads ----------------------------------------------------------------

    def latest_node_metric(self, node_name: str) -> Optional[NodeMetricRow]:
        with self._lock:
            return latest_row(self._node_rows.get(node_name, []))

    def latest_cluster_metric(self) -> Optional[ClusterMetricRow]:
        with self._lock:
            return latest_row(self._cluster_rows)

    def latest_pod_metric(self) -> Optional[PodMetricRow]:
        with self._lock:
            return latest_row(self._pod_rows)

    def node_metrics_between(self, start: datetime, end: datetime,
                             node_name: Optional[str] = None) -> List[NodeMetricRow]:
        """Rows with start <= timestamp <= end, oldest first."""
        start, end = as_utc(start), as_utc(end)
        with self._lock:
            if node_name is not None:
                candidates = list(self._node_rows.get(node_name, []))
            else:
                candidates = [row for rows in self._node_rows.values() for row in rows]
        selected = [row for row in candidates if start <= as_utc(row.timestamp) <= end]
        selected.sort(key=lambda row: as_utc(row.timestamp))
        return selected

    def forecasts(self, series_key: str, limit: Optional[int] = None) -> List[ForecastPoint]:
        """Forecasts for a series, newest first."""
        with self._lock:
            points = list(self._forecasts.get(series_key, {}).values())
        points.sort(key=lambda point: as_utc(point.timestamp), reverse=True)
        return points[:limit] if limit is not None else points
