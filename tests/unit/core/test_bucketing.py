"""
Unit tests for interval bucketing

Tests:
- Epoch-aligned flooring
- Gap-preserving bucketing, completeness and idempotence
- Forecast input aggregation
- Zero-filled chart series
"""

import pytest
from datetime import datetime, timedelta, timezone

from kubedash.core.bucketing import (
    as_utc,
    floor_to_interval,
    enumerate_bucket_starts,
    bucket_samples,
    aggregate_forecast_input,
    zero_filled_series,
)
from kubedash.models.series import RawSample

FIVE_MIN = timedelta(minutes=5)
HOUR = timedelta(hours=1)
START = datetime(2024, 5, 1, 11, 0, tzinfo=timezone.utc)


def sample(minutes, value, key="node-1_cpu", seconds=0):
    return RawSample(timestamp=START + timedelta(minutes=minutes, seconds=seconds), value=value, series_key=key)


class TestTimeHelpers:
    """Test UTC normalization and flooring"""

    def test_as_utc_naive_is_utc(self):
        """Test naive datetimes are taken as UTC"""
        assert as_utc(datetime(2024, 5, 1, 12, 0)) == datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def test_as_utc_converts_offsets(self):
        """Test aware datetimes are converted to UTC"""
        kst = timezone(timedelta(hours=9))
        assert as_utc(datetime(2024, 5, 1, 21, 0, tzinfo=kst)) == datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def test_floor_to_interval(self):
        """Test flooring to epoch-aligned boundaries"""
        ts = datetime(2024, 5, 1, 12, 7, 31, tzinfo=timezone.utc)
        assert floor_to_interval(ts, FIVE_MIN) == datetime(2024, 5, 1, 12, 5, tzinfo=timezone.utc)
        assert floor_to_interval(ts, HOUR) == datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def test_floor_rejects_non_positive_interval(self):
        """Test a zero interval raises"""
        with pytest.raises(ValueError):
            floor_to_interval(START, timedelta(0))

    def test_enumerate_rejects_reversed_window(self):
        """Test end before start raises"""
        with pytest.raises(ValueError):
            enumerate_bucket_starts(START, START - FIVE_MIN, FIVE_MIN)


class TestBucketSamples:
    """Test gap-preserving bucketing"""

    def test_empty_input_gives_all_absent_buckets(self):
        """Test completeness with no samples at all"""
        buckets = bucket_samples([], START, START + HOUR, FIVE_MIN)

        assert len(buckets) == 13
        assert all(bucket.value is None for bucket in buckets)
        assert buckets[0].bucket_start == START
        assert buckets[-1].bucket_start == START + HOUR

    @pytest.mark.parametrize("span_minutes,step_minutes", [(60, 5), (30, 1), (10, 10), (0, 5)])
    def test_bucket_count(self, span_minutes, step_minutes):
        """Test len(output) == span / interval + 1 for sparse input"""
        buckets = bucket_samples(
            [sample(0, 1.0)], START, START + timedelta(minutes=span_minutes), timedelta(minutes=step_minutes)
        )
        assert len(buckets) == span_minutes // step_minutes + 1

    def test_averages_samples_in_same_bucket(self):
        """Test samples in one bucket are averaged"""
        buckets = bucket_samples([sample(1, 10.0), sample(3, 20.0)], START, START + HOUR, FIVE_MIN)
        assert buckets[0].value == 15.0
        assert buckets[1].value is None

    def test_zero_average_is_not_absent(self):
        """Test a bucket averaging to 0 differs from an empty bucket"""
        buckets = bucket_samples([sample(6, 0.0)], START, START + HOUR, FIVE_MIN)
        assert buckets[1].value == 0.0
        assert buckets[1].has_data
        assert not buckets[2].has_data

    def test_ignores_samples_outside_window(self):
        """Test samples before start or after end are dropped"""
        buckets = bucket_samples(
            [sample(-1, 99.0), sample(61, 99.0), sample(60, 7.0)], START, START + HOUR, FIVE_MIN
        )
        assert buckets[-1].value == 7.0
        assert sum(1 for bucket in buckets if bucket.has_data) == 1

    def test_unordered_input(self):
        """Test input order does not matter"""
        forward = bucket_samples([sample(2, 1.0), sample(12, 3.0)], START, START + HOUR, FIVE_MIN)
        backward = bucket_samples([sample(12, 3.0), sample(2, 1.0)], START, START + HOUR, FIVE_MIN)
        assert forward == backward

    def test_idempotent_on_gap_free_series(self):
        """Test re-bucketing a bucketed series returns it unchanged"""
        raw = [sample(m, float(m)) for m in range(0, 61)]
        first = bucket_samples(raw, START, START + HOUR, FIVE_MIN)
        again = bucket_samples(
            [RawSample(timestamp=b.bucket_start, value=b.value) for b in first],
            START, START + HOUR, FIVE_MIN,
        )
        assert again == first

    def test_naive_window_is_utc(self):
        """Test naive window bounds are treated as UTC"""
        buckets = bucket_samples([sample(0, 5.0)], START.replace(tzinfo=None), START + HOUR, FIVE_MIN)
        assert buckets[0].bucket_start == START
        assert buckets[0].value == 5.0

    def test_invalid_interval(self):
        """Test non-positive interval raises"""
        with pytest.raises(ValueError):
            bucket_samples([], START, START + HOUR, timedelta(minutes=-5))


class TestAggregateForecastInput:
    """Test prediction API input aggregation"""

    def test_windows_stamped_at_end_and_rounded(self):
        """Test each window is stamped with its end and its mean rounded"""
        rows = aggregate_forecast_input(
            [sample(1, 10.0), sample(2, 11.0), sample(7, 30.4)], START, FIVE_MIN, HOUR
        )

        assert [(row.timestamp, row.value) for row in rows] == [
            (START + FIVE_MIN, 10.0),
            (START + 2 * FIVE_MIN, 30.0),
        ]
        assert all(row.item_id == "node-1_cpu" for row in rows)

    def test_empty_windows_are_skipped(self):
        """Test windows without samples produce no rows"""
        rows = aggregate_forecast_input([sample(50, 1.0)], START, FIVE_MIN, HOUR)
        assert len(rows) == 1
        assert rows[0].timestamp == START + timedelta(minutes=55)

    def test_window_end_is_exclusive(self):
        """Test a sample exactly at start + window is excluded"""
        assert aggregate_forecast_input([sample(60, 1.0)], START, FIVE_MIN, HOUR) == []

    def test_multiple_series_sorted(self):
        """Test rows are ordered by timestamp then item id"""
        rows = aggregate_forecast_input(
            [sample(1, 1.0, key="node-2_cpu"), sample(1, 2.0, key="node-1_cpu"), sample(6, 3.0, key="node-2_cpu")],
            START, FIVE_MIN, HOUR,
        )
        assert [(row.item_id, row.timestamp) for row in rows] == [
            ("node-1_cpu", START + FIVE_MIN),
            ("node-2_cpu", START + FIVE_MIN),
            ("node-2_cpu", START + 2 * FIVE_MIN),
        ]

    def test_serializes_with_item_id_alias(self):
        """Test the request body uses itemId"""
        row = aggregate_forecast_input([sample(1, 1.0)], START, FIVE_MIN, HOUR)[0]
        assert "itemId" in row.model_dump(by_alias=True)


class TestZeroFilledSeries:
    """Test chart series construction"""

    def test_fills_missing_points_with_zero(self):
        """Test missing timestamps become 0 and values are floored"""
        end = START + HOUR
        series = zero_filled_series(
            [RawSample(timestamp=end, value=3.9), RawSample(timestamp=end - FIVE_MIN, value=2.2)],
            end, HOUR, FIVE_MIN,
        )

        assert len(series.timestamps) == 13
        assert series.timestamps[0] == START
        assert series.values[-2:] == [2.0, 3.0]
        assert series.values[:-2] == [0.0] * 11

    def test_exact_match_only(self):
        """Test samples off the step grid are not placed"""
        end = START + HOUR
        series = zero_filled_series([sample(2, 5.0, seconds=30)], end, HOUR, FIVE_MIN)
        assert series.values == [0.0] * 13
