"""
Exponentially Weighted Moving Average (EWMA) over a time series.
"""

import math

import numpy as np

from ...core.timeseries import TimeSeries
from ...errors import InvalidInputError


class EWMA:
    """
    Exponentially weighted moving average of a whole series.

    EWMA gives more weight to recent values:
    EWMA_t = value_t * k + EWMA_t-1 * (1 - k)
    k = 2 / (horizon + 1)

    The running value starts at 0. A NaN input produces a NaN output and
    resets the running value to 0, so the next valid input restarts the
    smoothing from zero.
    """

    def __init__(self, values: TimeSeries, horizon: int):
        """
        Initialize and calculate the EWMA.

        Args:
            values: Source series (ascending, unique; NaN allowed).
            horizon: Number of periods the average covers, at least 2.
        """
        self._validate_values(values)
        self._validate_horizon(horizon)

        self.horizon = horizon
        self.decay = self.calculate_decay(horizon)
        self.values = values
        self.ewma_values = self._calculate_ewma_values(values)

    @staticmethod
    def calculate_decay(horizon: int) -> float:
        return 2.0 / (horizon + 1.0)

    def calculate_ewma(self, previous_ewma: float, value: float) -> float:
        """One smoothing step."""
        return self.decay * value + previous_ewma * (1.0 - self.decay)

    def _calculate_ewma_values(self, values: TimeSeries) -> TimeSeries:
        ewma_values = np.empty(len(values))
        previous_ewma = 0.0

        for i, value in enumerate(values.values):
            if math.isnan(value):
                ewma_values[i] = math.nan
                previous_ewma = 0.0
            else:
                previous_ewma = self.calculate_ewma(previous_ewma, value)
                ewma_values[i] = previous_ewma

        return values.with_values(ewma_values)

    @staticmethod
    def _validate_values(values: TimeSeries) -> None:
        try:
            if values is None:
                raise InvalidInputError("The given values must not be None")
            if len(values) == 0:
                raise InvalidInputError("Values must not be an empty array")
            values.validate_dates()
        except InvalidInputError as e:
            raise InvalidInputError("The given values do not meet the specifications.") from e

    @staticmethod
    def _validate_horizon(horizon: int) -> None:
        if horizon < 2:
            raise InvalidInputError("The horizon must not be < 2", field="horizon")

    def __eq__(self, other) -> bool:
        if self is other:
            return True
        if not isinstance(other, EWMA):
            return NotImplemented
        return self.horizon == other.horizon

    def __hash__(self) -> int:
        return hash(self.horizon)

    def __repr__(self) -> str:
        return f"EWMA(horizon={self.horizon}, decay={self.decay:.6f}, n={len(self.values)})"


def calculate_ewma(values: TimeSeries, horizon: int) -> TimeSeries:
    """
    Convenience function returning only the smoothed series.

    Args:
        values: Source series.
        horizon: EWMA horizon.

    Returns:
        The EWMA series (same dates as values).
    """
    return EWMA(values, horizon).ewma_values
