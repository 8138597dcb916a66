"""
Abstract forecasting rule.

A rule turns the prices of one base value into forecasts. Subclasses only
provide the raw signal for a date; calibration, weighting of variations and
scaling are shared and live here.

Pipeline:
1. Raw forecast per date (subclass), divided by the base value's volatility.
2. Forecast scalar so that the mean absolute forecast over the reference
   window equals the base scale.
3. Scaled forecasts, clipped to +-(forecast cap).

A rule may own up to three variations (rules of the same kind with other
parameters). A rule with variations forecasts the weighted sum of its
variations' forecasts instead of a signal of its own.
"""

import math
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

import numpy as np

from ..config.settings import DEFAULT_SYSTEM_CONFIG, SystemConfig
from ..core.base_value import BaseValue
from ..core.stats import (
    adjust_for_standard_deviation,
    calculate_correlation_of_rows,
    calculate_forecast_scalar,
    calculate_weights_for_three_correlations,
    validate_positive,
)
from ..core.timeseries import TimeSeries
from ..errors import InvalidInputError
from ..observability.logger import get_logger

logger = get_logger(__name__)

MAX_VARIATIONS = 3


@dataclass(frozen=True)
class Calibration:
    """Result of calibrating a rule."""
    sd_adjusted_forecasts: TimeSeries
    forecast_scalar: float
    forecasts: TimeSeries


def validate_time_window(start: datetime, end: datetime, values: TimeSeries) -> None:
    """Raise unless [start, end] is a proper window within the dates of values."""
    if start is None:
        raise InvalidInputError("Start of time window value must not be None")
    if end is None:
        raise InvalidInputError("End of time window value must not be None")
    if not end > start:
        raise InvalidInputError("End of time window value must be after start of time window value")
    if not values.contains_date(start):
        raise InvalidInputError(
            "Given values do not include given start value for time window", field="values"
        )
    if not values.contains_date(end):
        raise InvalidInputError(
            "Given values do not include given end value for time window", field="values"
        )


def validate_rules(rules: Sequence["Rule"]) -> None:
    """Raise if rules is None, empty or holds None."""
    if rules is None:
        raise InvalidInputError("Rules must not be None")
    if len(rules) == 0:
        raise InvalidInputError("Rules must not be an empty array")
    for index, rule in enumerate(rules):
        if rule is None:
            raise InvalidInputError(f"Rule at position {index} must not be None")


class Rule(ABC):
    """
    Base class for all forecasting rules.

    Subclasses implement calculate_raw_forecast() and _signal_parameters()
    and must set up whatever calculate_raw_forecast() reads before
    calibration runs. Calibration happens once, on calibrate() or on first
    access of a derived property.
    """

    def __init__(
        self,
        base_value: BaseValue,
        variations: Optional[Sequence["Rule"]],
        start_of_reference_window: datetime,
        end_of_reference_window: datetime,
        base_scale: float,
        config: Optional[SystemConfig] = None
    ):
        """
        Validate inputs and weigh the variations.

        Args:
            base_value: Prices the rule forecasts on. Shared, not copied.
            variations: Up to three rules sharing base value and window,
                or None/empty for a rule with a signal of its own.
            start_of_reference_window: First date used for calibration.
            end_of_reference_window: Last date used for calibration.
            base_scale: Target mean absolute forecast.
            config: Calculation constants (defaults to SystemConfig()).
        """
        variations = list(variations) if variations else []
        self._validate_inputs(
            base_value, variations, start_of_reference_window,
            end_of_reference_window, base_scale
        )

        self._config = config or DEFAULT_SYSTEM_CONFIG
        self._base_value = base_value
        self._variations: Tuple["Rule", ...] = tuple(variations)
        self._start_of_reference_window = start_of_reference_window
        self._end_of_reference_window = end_of_reference_window
        self._base_scale = float(base_scale)
        self._weight = 1.0

        self._calibration: Optional[Calibration] = None
        self._calibration_lock = threading.Lock()

        self._variation_weights = self._weigh_variations()

    # Abstract hooks

    @abstractmethod
    def calculate_raw_forecast(self, forecast_date: datetime) -> float:
        """Unscaled signal for the given date."""

    @abstractmethod
    def _signal_parameters(self) -> tuple:
        """Parameters that, together with base value and window, define the signal."""

    # Properties

    @property
    def base_value(self) -> BaseValue:
        return self._base_value

    @property
    def variations(self) -> Tuple["Rule", ...]:
        return self._variations

    @property
    def has_variations(self) -> bool:
        return len(self._variations) > 0

    @property
    def variation_weights(self) -> Tuple[float, ...]:
        return self._variation_weights

    @property
    def start_of_reference_window(self) -> datetime:
        return self._start_of_reference_window

    @property
    def end_of_reference_window(self) -> datetime:
        return self._end_of_reference_window

    @property
    def base_scale(self) -> float:
        return self._base_scale

    @property
    def config(self) -> SystemConfig:
        return self._config

    @property
    def weight(self) -> float:
        """Weight assigned by the parent rule (1.0 for a top-level rule)."""
        return self._weight

    @property
    def forecast_scalar(self) -> float:
        return self.calibrate().forecast_scalar

    @property
    def forecasts(self) -> TimeSeries:
        return self.calibrate().forecasts

    @property
    def sd_adjusted_forecasts(self) -> TimeSeries:
        return self.calibrate().sd_adjusted_forecasts

    def extract_relevant_forecasts(self) -> TimeSeries:
        """Forecasts within the reference window."""
        return self.forecasts.between(
            self._start_of_reference_window, self._end_of_reference_window
        )

    # Calibration

    def calibrate(self) -> Calibration:
        """
        Compute standard deviation adjusted forecasts, the forecast scalar
        and the scaled forecasts. Runs once; later calls return the cached
        result.

        Raises:
            InvalidInputError: If the reference window yields no usable
                forecast scalar.
        """
        if self._calibration is not None:
            return self._calibration

        with self._calibration_lock:
            if self._calibration is None:
                self._calibration = self._run_calibration()
        return self._calibration

    def _run_calibration(self) -> Calibration:
        forecast_dates = self._forecast_dates()
        sd_adjusted = self._calculate_sd_adjusted_forecasts(forecast_dates)

        if self.has_variations:
            combined = self._combine_variation_forecasts(forecast_dates)
            forecast_scalar = self._calculate_forecast_scalar(combined)
            forecasts = combined
        else:
            forecast_scalar = self._calculate_forecast_scalar(sd_adjusted)
            cap = self._config.forecast_cap(self._base_scale)
            forecasts = sd_adjusted.with_values(
                np.clip(sd_adjusted.values * forecast_scalar, -cap, cap)
            )

        logger.calibration(
            self._describe(),
            forecast_scalar,
            self._base_scale,
            variations=len(self._variations),
            forecasts=len(forecasts)
        )

        return Calibration(
            sd_adjusted_forecasts=sd_adjusted,
            forecast_scalar=forecast_scalar,
            forecasts=forecasts
        )

    def _forecast_dates(self) -> Tuple[datetime, ...]:
        """Base value dates from the window start to the end of the series."""
        values = self._base_value.values
        return values.dates[values.position(self._start_of_reference_window):]

    def _calculate_sd_adjusted_forecasts(self, forecast_dates: Tuple[datetime, ...]) -> TimeSeries:
        if self.has_variations:
            return TimeSeries(forecast_dates, np.full(len(forecast_dates), math.nan))

        standard_deviations = self._base_value.standard_deviation_values
        adjusted = np.empty(len(forecast_dates))
        for i, forecast_date in enumerate(forecast_dates):
            adjusted[i] = adjust_for_standard_deviation(
                self.calculate_raw_forecast(forecast_date),
                standard_deviations.value_at(forecast_date)
            )
        return TimeSeries(forecast_dates, adjusted)

    def _combine_variation_forecasts(self, forecast_dates: Tuple[datetime, ...]) -> TimeSeries:
        combined = np.zeros(len(forecast_dates))
        for variation, weight in zip(self._variations, self._variation_weights):
            combined += weight * variation.forecasts.values
        return TimeSeries(forecast_dates, combined)

    def _calculate_forecast_scalar(self, forecasts: TimeSeries) -> float:
        relevant = forecasts.between(
            self._start_of_reference_window, self._end_of_reference_window
        )
        forecast_scalar = calculate_forecast_scalar(relevant.values, self._base_scale)
        if forecast_scalar == 0 or not math.isfinite(forecast_scalar):
            raise InvalidInputError(
                "Illegal values in calculated forecast values. Adjust reference window."
            )
        return forecast_scalar

    # Weighting

    def _weigh_variations(self) -> Tuple[float, ...]:
        """
        Weights of the variations: 1 for one, halves for two, and for three
        weights derived from the pairwise correlations of their forecasts
        over the reference window.
        """
        count = len(self._variations)
        if count == 0:
            return ()
        if count == 1:
            weights = [1.0]
        elif count == 2:
            weights = [0.5, 0.5]
        else:
            rows = [variation.extract_relevant_forecasts().values for variation in self._variations]
            try:
                correlations = calculate_correlation_of_rows(rows)
                weights = list(calculate_weights_for_three_correlations(correlations))
            except InvalidInputError as e:
                raise InvalidInputError(
                    "Correlations cannot be calculated due to illegal values in given variations."
                ) from e

            logger.debug(
                "Weighed variations by correlation",
                rule=self._describe(),
                correlations=[round(float(c), 6) for c in correlations],
                weights=[round(float(w), 6) for w in weights]
            )

        for variation, weight in zip(self._variations, weights):
            variation._weight = float(weight)
        return tuple(float(weight) for weight in weights)

    # Validation

    @staticmethod
    def _validate_inputs(
        base_value: BaseValue,
        variations: List["Rule"],
        start_of_reference_window: datetime,
        end_of_reference_window: datetime,
        base_scale: float
    ) -> None:
        if base_value is None:
            raise InvalidInputError("Base value must not be None", field="base_value")

        try:
            validate_time_window(
                start_of_reference_window, end_of_reference_window, base_value.values
            )
        except InvalidInputError as e:
            if e.field == "values":
                raise InvalidInputError(
                    "Given base value and reference window do not fit.", field="reference_window"
                ) from e
            raise InvalidInputError(
                "The given reference window does not meet specifications.", field="reference_window"
            ) from e

        # No returns exist for the first date, so neither does a volatility
        if base_value.values.first_date == start_of_reference_window:
            raise InvalidInputError(
                "Reference window must not start on first time interval of base value data.",
                field="reference_window"
            )

        if variations:
            try:
                Rule._validate_variations(
                    variations, start_of_reference_window, end_of_reference_window, base_value
                )
            except InvalidInputError as e:
                raise InvalidInputError(
                    "The given variations do not meet specifications.", field="variations"
                ) from e

        try:
            validate_positive(base_scale)
        except InvalidInputError as e:
            raise InvalidInputError(
                "The given base scale does not meet specifications.", field="base_scale"
            ) from e

    @staticmethod
    def _validate_variations(
        variations: List["Rule"],
        start_of_reference_window: datetime,
        end_of_reference_window: datetime,
        base_value: BaseValue
    ) -> None:
        if len(variations) > MAX_VARIATIONS:
            raise InvalidInputError(
                f"A rule must not have more than {MAX_VARIATIONS} variations"
            )
        validate_rules(variations)

        for index, variation in enumerate(variations):
            if variation.base_value != base_value:
                raise InvalidInputError(
                    "The base value of all variations must be equal to given base value "
                    f"but the variation at position {index} does not fulfill this requirement."
                )
            if variation.start_of_reference_window != start_of_reference_window:
                raise InvalidInputError(
                    f"Start of reference window of variation at position {index} "
                    "does not match the given start of reference window."
                )
            if variation.end_of_reference_window != end_of_reference_window:
                raise InvalidInputError(
                    f"End of reference window of variation at position {index} "
                    "does not match the given end of reference window."
                )

    # Identity

    def _describe(self) -> str:
        params = ", ".join(str(p) for p in self._signal_parameters())
        return f"{type(self).__name__}({params})"

    def __eq__(self, other) -> bool:
        if self is other:
            return True
        if not isinstance(other, Rule):
            return NotImplemented
        return (
            type(self) is type(other)
            and self._base_scale == other._base_scale
            and self._start_of_reference_window == other._start_of_reference_window
            and self._end_of_reference_window == other._end_of_reference_window
            and self._signal_parameters() == other._signal_parameters()
            and self._variations == other._variations
            and self._base_value == other._base_value
        )

    def __hash__(self) -> int:
        return hash((
            type(self).__name__,
            self._base_value.name,
            self._start_of_reference_window,
            self._end_of_reference_window,
            self._base_scale,
            self._signal_parameters(),
        ))

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(params={self._signal_parameters()}, "
            f"base_value={self._base_value.name!r}, "
            f"variations={len(self._variations)})"
        )
