"""
Base value: the price series of one instrument plus its derived series.
"""

import math
from typing import Optional

import numpy as np

from ..config.settings import DEFAULT_SYSTEM_CONFIG, SystemConfig
from ..errors import InvalidInputError
from ..observability.logger import get_logger
from ..strategy.signals.ewma import EWMA
from .alignment import align
from .stats import calculate_return
from .timeseries import TimeSeries

logger = get_logger(__name__)


class BaseValue:
    """
    An instrument's prices together with its short index and volatility.

    - values: the price series as given
    - short_index_values: a synthetic index moving inversely to values,
      used to price short positions. Computed unless supplied.
    - standard_deviation_values: price volatility, estimated as the square
      root of an EWMA of squared one-step returns, times the price. One point
      shorter than values (there is no return for the first date).

    Instances are immutable and may be shared by any number of rules.
    """

    def __init__(
        self,
        name: str,
        values: TimeSeries,
        short_index_values: Optional[TimeSeries] = None,
        config: Optional[SystemConfig] = None
    ):
        """
        Create a base value.

        Args:
            name: Label of the instrument, must not be empty.
            values: Prices (ascending, unique, no NaN, at least one point).
            short_index_values: Optional short index. Validated like values,
                then aligned to the dates of values.
            config: Calculation constants (defaults to SystemConfig()).
        """
        self._config = config or DEFAULT_SYSTEM_CONFIG

        if not name:
            raise InvalidInputError("Name must not be an empty String", field="name")
        self._validate_series(values, "values")

        self._name = name
        self._values = values

        if short_index_values is None:
            self._short_index_values = self._calculate_short_index_values(values)
        else:
            self._validate_series(short_index_values, "short index values")
            self._short_index_values = self._align_short_index_values(values, short_index_values)

        self._standard_deviation_values = self._calculate_standard_deviation_values(values)

        logger.debug(
            f"BaseValue {name} created",
            points=len(values),
            short_index_supplied=short_index_values is not None
        )

    @property
    def name(self) -> str:
        return self._name

    @property
    def values(self) -> TimeSeries:
        return self._values

    @property
    def short_index_values(self) -> TimeSeries:
        return self._short_index_values

    @property
    def standard_deviation_values(self) -> TimeSeries:
        return self._standard_deviation_values

    @property
    def config(self) -> SystemConfig:
        return self._config

    @staticmethod
    def _validate_series(series: TimeSeries, label: str) -> None:
        try:
            if series is None:
                raise InvalidInputError("The given series must not be None")
            series.validate()
        except InvalidInputError as e:
            raise InvalidInputError(
                f"Given {label} do not meet specifications.", field=label
            ) from e

    def _calculate_short_index_values(self, values: TimeSeries) -> TimeSeries:
        """
        Derive the short index from values.

        S[0] is the configured initial value. Each following point moves
        against the return of values; gains of values are capped so that the
        short index can at most halve in a single step.
        """
        prices = values.values
        short_index = np.empty(len(prices))
        short_index[0] = self._config.short_index_initial_value
        cap = self._config.short_index_return_cap

        for i in range(1, len(prices)):
            return_value = calculate_return(prices[i - 1], prices[i])
            if return_value > cap:
                return_value = cap
            short_index[i] = short_index[i - 1] * (1.0 - return_value)

        return values.with_values(short_index)

    @staticmethod
    def _align_short_index_values(values: TimeSeries, short_index_values: TimeSeries) -> TimeSeries:
        """Align the supplied short index to values and keep only their dates."""
        aligned_values, aligned_short = align([values, short_index_values])
        if len(aligned_short) == len(values):
            return aligned_short
        return TimeSeries(
            values.dates,
            [aligned_short.value_at(date) for date in values.dates]
        )

    def _calculate_standard_deviation_values(self, values: TimeSeries) -> TimeSeries:
        if len(values) < 2:
            return TimeSeries.empty()

        prices = values.values
        squared_returns = np.empty(len(prices) - 1)
        for t in range(len(prices) - 1):
            return_value = calculate_return(prices[t], prices[t + 1])
            squared_returns[t] = return_value ** 2 if not math.isnan(return_value) else math.nan

        ewma = EWMA(
            TimeSeries(values.dates[1:], squared_returns),
            self._config.volatility_horizon
        )

        standard_deviations = np.sqrt(ewma.ewma_values.values) * prices[1:]
        return TimeSeries(values.dates[1:], standard_deviations)

    def __eq__(self, other) -> bool:
        if self is other:
            return True
        if not isinstance(other, BaseValue):
            return NotImplemented
        return (
            self._name == other._name
            and self._values == other._values
            and self._short_index_values == other._short_index_values
        )

    def __hash__(self) -> int:
        return hash((self._name, self._values, self._short_index_values))

    def __repr__(self) -> str:
        return f"BaseValue(name={self._name!r}, values={self._values!r})"
