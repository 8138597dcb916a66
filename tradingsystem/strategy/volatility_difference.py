"""
Volatility difference rule.

Forecasts the gap between the average volatility over the reference window
and the current volatility: calm markets (volatility below average) give a
positive forecast, turbulent ones a negative forecast.
"""

from datetime import datetime
from typing import Optional, Sequence

import numpy as np

from ..config.settings import SystemConfig
from ..core.base_value import BaseValue
from ..core.stats import calculate_average
from ..core.timeseries import TimeSeries
from ..errors import InvalidInputError
from ..observability.logger import get_logger
from .rule import Rule
from .signals.volatility import calculate_volatility_indices, validate_lookback_window

logger = get_logger(__name__)


class VolatilityDifference(Rule):
    """
    Rule on a volatility index of the base value.

    The volatility index is either supplied (e.g. an implied volatility
    index loaded alongside the prices and aligned to them) or computed as
    the rolling standard deviation of the last lookback_window prices.
    """

    def __init__(
        self,
        base_value: BaseValue,
        variations: Optional[Sequence[Rule]],
        start_of_reference_window: datetime,
        end_of_reference_window: datetime,
        lookback_window: int,
        base_scale: float,
        volatility_indices: Optional[TimeSeries] = None,
        config: Optional[SystemConfig] = None
    ):
        """
        Args:
            lookback_window: Prices per volatility estimate, >= 2.
            volatility_indices: Optional volatility series with exactly the
                dates of the base value and no NaN inside the reference window.
        """
        super().__init__(
            base_value, variations, start_of_reference_window,
            end_of_reference_window, base_scale, config
        )

        validate_lookback_window(lookback_window)
        self._lookback_window = lookback_window
        self._volatility_indices_supplied = volatility_indices is not None

        if volatility_indices is None:
            volatility_indices = calculate_volatility_indices(base_value.values, lookback_window)
        self._validate_volatility_indices(volatility_indices)
        self._volatility_indices = volatility_indices

        self._average_volatility = self._calculate_average_volatility()

        logger.debug(
            "VolatilityDifference created",
            lookback_window=lookback_window,
            supplied_indices=self._volatility_indices_supplied,
            average_volatility=self._average_volatility
        )

    @property
    def lookback_window(self) -> int:
        return self._lookback_window

    @property
    def volatility_indices(self) -> TimeSeries:
        return self._volatility_indices

    @property
    def average_volatility(self) -> float:
        """Mean volatility index over the reference window."""
        return self._average_volatility

    def calculate_raw_forecast(self, forecast_date: datetime) -> float:
        """Average volatility minus the volatility index at forecast_date."""
        return self._average_volatility - self._volatility_indices.value_at(forecast_date)

    def _signal_parameters(self) -> tuple:
        supplied = self._volatility_indices if self._volatility_indices_supplied else None
        return (self._lookback_window, supplied)

    def _calculate_average_volatility(self) -> float:
        start_position = self._volatility_indices.position(self.start_of_reference_window)
        if not self._volatility_indices_supplied and start_position < self._lookback_window - 1:
            raise InvalidInputError(
                "Reference window must not start before the lookback window is filled. "
                f"Start position: {start_position}, lookback window: {self._lookback_window}.",
                field="start_of_reference_window"
            )

        relevant = self._volatility_indices.between(
            self.start_of_reference_window, self.end_of_reference_window
        )
        return calculate_average(relevant.values)

    def _validate_volatility_indices(self, volatility_indices: TimeSeries) -> None:
        if len(volatility_indices) == 0:
            raise InvalidInputError(
                "Volatility indices must not be an empty array", field="volatility_indices"
            )
        try:
            volatility_indices.validate_dates()
        except InvalidInputError as e:
            raise InvalidInputError(
                "Given volatility indices do not meet specifications.", field="volatility_indices"
            ) from e

        if volatility_indices.dates != self.base_value.values.dates:
            raise InvalidInputError(
                "Base value and volatility index values are not properly aligned. "
                "Align them before creating a VolatilityDifference.",
                field="volatility_indices"
            )

        # Computed indices are checked by the lookback position instead
        if not self._volatility_indices_supplied:
            return

        relevant = volatility_indices.between(
            self.start_of_reference_window, self.end_of_reference_window
        )
        if np.isnan(relevant.values).any():
            raise InvalidInputError(
                "There must not be NaN values in the given volatility indices within the "
                "reference window.",
                field="volatility_indices"
            )
