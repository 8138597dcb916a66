"""
Rolling volatility of a price series.

The volatility index at t is the sample standard deviation of the
trailing `lookback_window` prices ending at t. The first
`lookback_window - 1` points have no full window and are NaN.
"""

import math

import numpy as np

from ...core.stats import standard_deviation
from ...core.timeseries import TimeSeries
from ...errors import InvalidInputError


def calculate_volatility_indices(values: TimeSeries, lookback_window: int) -> TimeSeries:
    """
    Rolling sample standard deviation of values.

    Args:
        values: Price series (ascending, no NaN).
        lookback_window: Number of prices per window, at least 2.

    Returns:
        Series with the same dates as values.

    Raises:
        InvalidInputError: If the window is too small or longer than the series.
    """
    validate_lookback_window(lookback_window)

    if len(values) < lookback_window:
        raise InvalidInputError(
            "The amount of base values must not be smaller than the lookback window. "
            f"Number of base values: {len(values)}, lookback window: {lookback_window}."
        )

    prices = values.values
    indices = np.full(len(prices), math.nan)

    for i in range(lookback_window - 1, len(prices)):
        window = prices[i - lookback_window + 1:i + 1]
        indices[i] = standard_deviation(window)

    return values.with_values(indices)


def validate_lookback_window(lookback_window: int) -> None:
    if lookback_window < 2:
        raise InvalidInputError("Lookback window must be at least 2", field="lookback_window")
