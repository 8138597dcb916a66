"""
Unit tests for TimeSeries and alignment.
"""

import math
import pytest
import sys
import os
from datetime import datetime

import numpy as np

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from tradingsystem.core.alignment import align, fill_gaps
from tradingsystem.core.timeseries import TimeSeries
from tradingsystem.errors import InvalidInputError

from conftest import make_dates, make_series


class TestTimeSeries:
    """Tests for TimeSeries."""

    def test_length_mismatch(self):
        """Dates and values of different length should be rejected."""
        with pytest.raises(InvalidInputError):
            TimeSeries(make_dates(3), [1.0, 2.0])

    def test_from_pairs(self):
        """A series can be built from (date, value) pairs."""
        dates = make_dates(2)
        series = TimeSeries.from_pairs(zip(dates, [1.0, 2.0]))
        assert series.dates == tuple(dates)
        assert list(series.values) == [1.0, 2.0]

    def test_values_are_read_only(self):
        """Values should be exposed as a read-only array."""
        series = make_series([1.0, 2.0])
        with pytest.raises(ValueError):
            series.values[0] = 5.0

    def test_lookup_by_date(self):
        """value_at and position should find a date."""
        series = make_series([1.0, 2.0, 3.0])
        assert series.value_at(series.dates[1]) == 2.0
        assert series.position(series.dates[2]) == 2
        assert series.position(datetime(1999, 1, 1)) is None

    def test_value_at_missing_date(self):
        """value_at should raise for a missing date."""
        series = make_series([1.0])
        with pytest.raises(InvalidInputError):
            series.value_at(datetime(1999, 1, 1))

    def test_between_is_inclusive(self):
        """between should include both boundaries."""
        series = make_series([1.0, 2.0, 3.0, 4.0])
        sliced = series.between(series.dates[1], series.dates[2])
        assert list(sliced.values) == [2.0, 3.0]
        assert len(series.between(end=series.dates[1])) == 2
        assert len(series.between(start=series.dates[1])) == 3

    def test_equality_treats_nan_as_equal(self):
        """Series holding NaN at the same positions should be equal."""
        a = make_series([1.0, math.nan])
        b = make_series([1.0, math.nan])
        assert a == b
        assert hash(a) == hash(b)

    def test_iteration_yields_pairs(self):
        """Iteration should yield (date, value) pairs."""
        series = make_series([1.0, 2.0])
        assert list(series) == [(series.dates[0], 1.0), (series.dates[1], 2.0)]

    def test_unsorted_dates_fail_validation(self):
        """validate should reject unsorted dates but construction should not."""
        dates = make_dates(2)
        series = TimeSeries(list(reversed(dates)), [1.0, 2.0])
        with pytest.raises(InvalidInputError, match="not properly sorted"):
            series.validate()

    def test_duplicate_dates_fail_validation(self):
        """Duplicate dates are not strictly ascending."""
        date = datetime(2020, 1, 1)
        series = TimeSeries([date, date], [1.0, 2.0])
        assert not series.is_sorted_ascending()

    def test_nan_fails_validation(self):
        """validate should reject NaN values."""
        with pytest.raises(InvalidInputError):
            make_series([1.0, math.nan]).validate()


class TestAlign:
    """Tests for series alignment."""

    def _series(self):
        dates = make_dates(4)
        a = TimeSeries([dates[0], dates[1], dates[3]], [1.0, 2.0, 4.0])
        b = TimeSeries([dates[1], dates[2]], [10.0, 20.0])
        return dates, a, b

    def test_union_of_dates(self):
        """All aligned series should share the union of dates."""
        dates, a, b = self._series()
        aligned_a, aligned_b = align([a, b])
        assert aligned_a.dates == tuple(dates)
        assert aligned_b.dates == tuple(dates)

    def test_gap_filling(self):
        """Leading gaps are back-filled, trailing forward-filled, interior averaged."""
        _, a, b = self._series()
        aligned_a, aligned_b = align([a, b])
        assert list(aligned_a.values) == [1.0, 2.0, 3.0, 4.0]
        assert list(aligned_b.values) == [10.0, 10.0, 20.0, 20.0]

    def test_original_points_survive(self):
        """Every original (date, value) should be unchanged after alignment."""
        _, a, b = self._series()
        aligned_a, aligned_b = align([a, b])
        for original, aligned in ((a, aligned_a), (b, aligned_b)):
            for date, value in original:
                assert aligned.value_at(date) == value

    def test_idempotent(self):
        """Aligning aligned series should change nothing."""
        _, a, b = self._series()
        once = align([a, b])
        assert align(once) == once

    def test_inputs_not_mutated(self):
        """align should return new series."""
        _, a, b = self._series()
        align([a, b])
        assert len(a) == 3
        assert len(b) == 2

    def test_all_nan_row(self):
        """A series without a single value should be rejected."""
        series = make_series([math.nan, math.nan])
        with pytest.raises(InvalidInputError) as excinfo:
            align([series])
        assert excinfo.value.cause is not None

    def test_empty_list(self):
        """An empty list should be rejected."""
        with pytest.raises(InvalidInputError):
            align([])

    def test_unsorted_row(self):
        """An unsorted series should be rejected with its position named."""
        dates = make_dates(2)
        series = TimeSeries(list(reversed(dates)), [1.0, 2.0])
        with pytest.raises(InvalidInputError, match="position 1"):
            align([make_series([1.0]), series])

    def test_fill_gaps_interior_run(self):
        """An interior run should get the mean of both neighbours."""
        filled = fill_gaps(np.array([2.0, math.nan, math.nan, 6.0]))
        assert list(filled) == [2.0, 4.0, 4.0, 6.0]
