"""
Shared fixtures: a deterministic, wavy price series and the windows used on it.
"""

import math
import os
import sys
from datetime import datetime, timedelta

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from tradingsystem.core.base_value import BaseValue
from tradingsystem.core.timeseries import TimeSeries

NUMBER_OF_PRICES = 200
REFERENCE_START = 40
REFERENCE_END = 150


def make_dates(count, start=datetime(2020, 1, 1, 22, 0)):
    return [start + timedelta(days=i) for i in range(count)]


def make_series(values, start=datetime(2020, 1, 1, 22, 0)):
    return TimeSeries(make_dates(len(values), start), values)


def wavy_prices(count=NUMBER_OF_PRICES):
    """Trend plus two waves, so every rule sees ups, downs and changing volatility."""
    return [
        100.0 + 0.05 * i + 10.0 * math.sin(i / 7.0) + 3.0 * math.sin(i / 2.3) * (1 + (i % 17) / 17.0)
        for i in range(count)
    ]


@pytest.fixture
def prices():
    return make_series(wavy_prices())


@pytest.fixture
def base_value(prices):
    return BaseValue("TEST", prices)


@pytest.fixture
def reference_window(prices):
    return prices.dates[REFERENCE_START], prices.dates[REFERENCE_END]


@pytest.fixture
def test_window(prices):
    return prices.dates[REFERENCE_END + 1], prices.dates[-1]
