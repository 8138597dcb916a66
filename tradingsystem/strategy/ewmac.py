"""
Exponentially Weighted Moving Average Crossover (EWMAC) rule.

The raw forecast is the distance between a fast and a slow EWMA of the
prices: positive while the fast average is above the slow one (uptrend),
negative otherwise.
"""

from datetime import datetime
from typing import Optional, Sequence

from ..config.settings import SystemConfig
from ..core.base_value import BaseValue
from ..errors import InvalidInputError
from .rule import Rule
from .signals.ewma import EWMA


class EWMAC(Rule):
    """Trend following rule on two EWMAs of the base value's prices."""

    def __init__(
        self,
        base_value: BaseValue,
        variations: Optional[Sequence[Rule]],
        start_of_reference_window: datetime,
        end_of_reference_window: datetime,
        long_horizon: int,
        short_horizon: int,
        base_scale: float,
        config: Optional[SystemConfig] = None
    ):
        """
        Args:
            long_horizon: Horizon of the slow EWMA, > short_horizon.
            short_horizon: Horizon of the fast EWMA, >= 2.

        Horizons are only validated and used when the rule has no
        variations; a parent forecasts from its variations instead.
        """
        self._long_horizon = long_horizon
        self._short_horizon = short_horizon

        super().__init__(
            base_value, variations, start_of_reference_window,
            end_of_reference_window, base_scale, config
        )

        self._long_horizon_ewma: Optional[EWMA] = None
        self._short_horizon_ewma: Optional[EWMA] = None

        if not self.has_variations:
            self._validate_horizons(long_horizon, short_horizon)
            self._long_horizon_ewma = EWMA(base_value.values, long_horizon)
            self._short_horizon_ewma = EWMA(base_value.values, short_horizon)

    @property
    def long_horizon(self) -> int:
        return self._long_horizon

    @property
    def short_horizon(self) -> int:
        return self._short_horizon

    @property
    def long_horizon_ewma(self) -> Optional[EWMA]:
        return self._long_horizon_ewma

    @property
    def short_horizon_ewma(self) -> Optional[EWMA]:
        return self._short_horizon_ewma

    def calculate_raw_forecast(self, forecast_date: datetime) -> float:
        """Short horizon EWMA minus long horizon EWMA at forecast_date."""
        short_value = self._short_horizon_ewma.ewma_values.value_at(forecast_date)
        long_value = self._long_horizon_ewma.ewma_values.value_at(forecast_date)
        return short_value - long_value

    def _signal_parameters(self) -> tuple:
        return (self._long_horizon, self._short_horizon)

    @staticmethod
    def _validate_horizons(long_horizon: int, short_horizon: int) -> None:
        if long_horizon <= short_horizon:
            raise InvalidInputError(
                "The long horizon must be greater than the short horizon", field="long_horizon"
            )
        if short_horizon < 2:
            raise InvalidInputError("The short horizon must not be < 2", field="short_horizon")
