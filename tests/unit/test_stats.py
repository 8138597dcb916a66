"""
Unit tests for statistical primitives.
"""

import math
import pytest
import sys
import os

import numpy as np

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from tradingsystem.core.stats import (
    adjust_for_standard_deviation,
    calculate_average,
    calculate_correlation_of_rows,
    calculate_forecast_scalar,
    calculate_return,
    calculate_weights_for_three_correlations,
    get_position_from_forecast,
    pearson_correlation_matrix,
    standard_deviation,
    validate_positive,
)
from tradingsystem.errors import InvalidInputError


class TestBasics:
    """Tests for returns, averages and deviations."""

    def test_return(self):
        """Return should be latter / former - 1."""
        assert calculate_return(200.0, 300.0) == pytest.approx(0.5)

    def test_return_of_zero_price(self):
        """A zero former value should give NaN, not raise."""
        assert math.isnan(calculate_return(0.0, 1.0))

    def test_adjust_for_zero_deviation(self):
        """Dividing by a zero deviation should give NaN."""
        assert math.isnan(adjust_for_standard_deviation(1.0, 0.0))
        assert adjust_for_standard_deviation(3.0, 2.0) == 1.5

    def test_average_of_empty(self):
        """The average of nothing should raise."""
        with pytest.raises(InvalidInputError):
            calculate_average([])

    def test_sample_standard_deviation(self):
        """Standard deviation should be bias corrected."""
        assert standard_deviation([1.0, 2.0, 3.0, 4.0]) == pytest.approx(1.2909944)

    def test_validate_positive(self):
        """Zero, negatives and NaN are not positive."""
        for value in (0.0, -1.0, math.nan):
            with pytest.raises(InvalidInputError):
                validate_positive(value)
        validate_positive(0.1)

    def test_position_from_forecast(self):
        """Sign of the forecast should give the position."""
        assert get_position_from_forecast(3.0) == "Long"
        assert get_position_from_forecast(-0.1) == "Short"
        assert get_position_from_forecast(0.0) == "Hold"


class TestForecastScalar:
    """Tests for the forecast scalar."""

    def test_scalar(self):
        """Scalar should bring the mean absolute value to the base scale."""
        assert calculate_forecast_scalar([1.0, -3.0], 10.0) == pytest.approx(5.0)

    def test_zero_mean(self):
        """An all-zero input should give a scalar of 0."""
        assert calculate_forecast_scalar([0.0, 0.0], 10.0) == 0.0

    def test_invalid_base_scale(self):
        """A non-positive base scale should raise with a wrapped cause."""
        with pytest.raises(InvalidInputError) as excinfo:
            calculate_forecast_scalar([1.0], 0.0)
        assert "positive" in str(excinfo.value.cause)


class TestCorrelations:
    """Tests for correlation utilities and weighting."""

    def test_single_row(self):
        """A single row should correlate perfectly with itself."""
        assert pearson_correlation_matrix([[1.0, 2.0, 3.0]]).tolist() == [[1.0]]

    def test_row_order(self):
        """Pairwise correlations should be returned as AB, AC, BC."""
        a = [1.0, 2.0, 3.0, 4.0]
        b = [2.0, 4.0, 6.0, 8.0]
        c = [4.0, 3.0, 2.0, 1.0]
        ab, ac, bc = calculate_correlation_of_rows([a, b, c])
        assert ab == pytest.approx(1.0)
        assert ac == pytest.approx(-1.0)
        assert bc == pytest.approx(-1.0)

    def test_constant_row(self):
        """A row without variance should raise."""
        with pytest.raises(InvalidInputError, match="identical"):
            calculate_correlation_of_rows([[1.0, 2.0], [3.0, 3.0]])

    def test_equal_correlations(self):
        """Identical correlations should give exactly one third each."""
        weights = calculate_weights_for_three_correlations([0.4, 0.4, 0.4])
        assert list(weights) == [1 / 3, 1 / 3, 1 / 3]

    def test_less_correlated_gets_more_weight(self):
        """The rule correlating least with the others should weigh most."""
        weights = calculate_weights_for_three_correlations([0.9, 0.1, 0.1])
        assert weights.sum() == pytest.approx(1.0)
        assert weights[2] > weights[0]
        assert weights[0] == pytest.approx(weights[1])

    def test_negative_correlations_floored(self):
        """Negative correlations should count as 0."""
        floored = calculate_weights_for_three_correlations([-0.5, 0.2, 0.6])
        zeroed = calculate_weights_for_three_correlations([0.0, 0.2, 0.6])
        np.testing.assert_allclose(floored, zeroed)

    def test_out_of_range_correlation(self):
        """Correlations outside [-1, 1] should raise."""
        with pytest.raises(InvalidInputError):
            calculate_weights_for_three_correlations([1.5, 0.2, 0.1])
