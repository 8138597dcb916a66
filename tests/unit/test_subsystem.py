"""
Unit tests for the SubSystem backtest.
"""

import math
import pytest
import sys
import os

import numpy as np

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from tradingsystem.backtest.subsystem import SubSystem
from tradingsystem.core.base_value import BaseValue
from tradingsystem.errors import InvalidInputError
from tradingsystem.strategy.ewmac import EWMAC
from tradingsystem.strategy.volatility_difference import VolatilityDifference

from conftest import REFERENCE_END, make_series, wavy_prices

CAPITAL = 100000.0
BASE_SCALE = 10.0


def make_rules(base_value, window):
    start, end = window
    variations = [
        EWMAC(base_value, None, start, end, long, short, BASE_SCALE)
        for long, short in ((8, 2), (16, 4), (32, 8))
    ]
    return [
        VolatilityDifference(base_value, None, start, end, 8, BASE_SCALE),
        EWMAC(base_value, variations, start, end, 0, 0, BASE_SCALE),
    ]


@pytest.fixture
def subsystem(base_value, reference_window):
    return SubSystem(base_value, make_rules(base_value, reference_window), CAPITAL, BASE_SCALE)


class TestCombinedForecasts:
    """Tests for combining rule forecasts."""

    def test_formula(self, subsystem):
        """Combined forecast is the clipped, scaled mean of the rule forecasts."""
        rules = subsystem.rules
        mean = (rules[0].forecasts.values + rules[1].forecasts.values) / 2
        expected = np.clip(mean * subsystem.diversification_multiplier.value, -20.0, 20.0)
        np.testing.assert_allclose(subsystem.combined_forecasts.values, expected)

    def test_within_cap(self, subsystem):
        """Combined forecasts stay within twice the base scale."""
        assert np.all(np.abs(subsystem.combined_forecasts.values) <= 2 * BASE_SCALE)

    def test_multiplier_weights(self, subsystem):
        """Rules are equally weighted in the multiplier."""
        assert list(subsystem.diversification_multiplier.weights) == [0.5, 0.5]


class TestBacktest:
    """Tests for the performance simulation."""

    def test_length_and_first_value(self, subsystem, test_window):
        """One value per window date, starting at the capital."""
        start, end = test_window
        performance = subsystem.calculate_performance_values(start, end)
        assert len(performance) == len(subsystem.base_value.values.between(start, end))
        assert performance.values[0] == CAPITAL
        assert performance.first_date == start
        assert performance.last_date == end

    def test_backtest_returns_last_value(self, subsystem, test_window):
        """backtest should return the last performance value."""
        start, end = test_window
        performance = subsystem.calculate_performance_values(start, end)
        assert subsystem.backtest(start, end) == performance.values[-1]

    def test_default_window(self, subsystem):
        """Without arguments the whole forecast range is simulated."""
        results = subsystem.simulate()
        assert len(results.performance_values) == len(subsystem.combined_forecasts)
        assert results.final_value == subsystem.backtest()

    def test_values_stay_positive(self, subsystem, test_window):
        """Positions are fully funded, so the account cannot go negative."""
        performance = subsystem.calculate_performance_values(*test_window)
        assert np.all(performance.values > 0)

    def test_trades_are_recorded(self, subsystem, test_window):
        """Every opened position except the last is liquidated into a trade."""
        results = subsystem.simulate(*test_window)
        assert len(results.trades) > 0
        assert all(trade.units > 0 for trade in results.trades)

    def test_invalid_window(self, subsystem, prices):
        """Dates outside the forecasts should raise."""
        with pytest.raises(InvalidInputError, match="test window"):
            subsystem.backtest(prices.dates[0], prices.dates[-1])
        with pytest.raises(InvalidInputError):
            subsystem.backtest(prices.dates[-1], prices.dates[REFERENCE_END])


class TestValidation:
    """Tests for SubSystem construction checks."""

    def test_duplicate_rules(self, base_value, reference_window):
        """Equal rules anywhere in the list should raise."""
        start, end = reference_window
        rules = [
            EWMAC(base_value, None, start, end, 16, 4, BASE_SCALE),
            EWMAC(base_value, None, start, end, 32, 8, BASE_SCALE),
            EWMAC(base_value, None, start, end, 16, 4, BASE_SCALE),
        ]
        with pytest.raises(InvalidInputError, match="unique"):
            SubSystem(base_value, rules, CAPITAL, BASE_SCALE)

    def test_empty_rules(self, base_value):
        """At least one rule is needed."""
        with pytest.raises(InvalidInputError, match="rules"):
            SubSystem(base_value, [], CAPITAL, BASE_SCALE)

    def test_other_base_value(self, base_value, reference_window):
        """Rules must use the subsystem's base value."""
        other = BaseValue("OTHER", make_series([p * 2 for p in wavy_prices()]))
        start, end = reference_window
        rules = [EWMAC(other, None, start, end, 16, 4, BASE_SCALE)]
        with pytest.raises(InvalidInputError) as excinfo:
            SubSystem(base_value, rules, CAPITAL, BASE_SCALE)
        assert "base value" in str(excinfo.value.cause)

    def test_capital(self, base_value, reference_window):
        """Capital must be positive."""
        with pytest.raises(InvalidInputError, match="capital"):
            SubSystem(base_value, make_rules(base_value, reference_window), 0.0, BASE_SCALE)

    def test_rules_on_different_volatility_indices(self, base_value, reference_window):
        """Volatility rules differing only in their supplied indices are distinct."""
        start, end = reference_window
        n = len(base_value.values)
        rules = [
            VolatilityDifference(
                base_value, None, start, end, 8, BASE_SCALE,
                base_value.values.with_values([10.0 + math.sin(i / 3) for i in range(n)])
            ),
            VolatilityDifference(
                base_value, None, start, end, 8, BASE_SCALE,
                base_value.values.with_values([30.0 + 5 * math.cos(i / 5) for i in range(n)])
            ),
        ]
        subsystem = SubSystem(base_value, rules, CAPITAL, BASE_SCALE)
        assert len(subsystem.rules) == 2
        assert len(subsystem.combined_forecasts) > 0
