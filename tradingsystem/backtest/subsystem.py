"""
SubSystem: all rules on one base value, combined into one forecast and
simulated against historical prices.

Simulation flow per step:
1. Liquidate the position held since the previous step
2. Record the cash as the step's performance value
3. Open a new position sized from the step's combined forecast
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence

import numpy as np

from ..config.settings import DEFAULT_SYSTEM_CONFIG, SystemConfig
from ..core.base_value import BaseValue
from ..core.stats import calculate_average, calculate_return, validate_positive
from ..core.timeseries import TimeSeries
from ..errors import InvalidInputError
from ..observability.logger import get_logger
from ..risk.diversification import DiversificationMultiplier
from ..risk.position_sizer import LONG, PositionSizer
from ..strategy.rule import Rule, validate_rules, validate_time_window
from .position import CompletedTrade, SimulatedPosition

logger = get_logger(__name__)


@dataclass
class BacktestResults:
    """Outcome of one simulation run."""
    capital: float
    performance_values: TimeSeries
    trades: List[CompletedTrade] = field(default_factory=list)

    @property
    def final_value(self) -> float:
        return float(self.performance_values.values[-1])

    @property
    def net_return_percent(self) -> float:
        return calculate_return(self.capital, self.final_value) * 100

    @property
    def winning_trades(self) -> int:
        return sum(1 for t in self.trades if t.is_winner)

    @property
    def win_rate(self) -> float:
        if not self.trades:
            return 0.0
        return self.winning_trades / len(self.trades) * 100


class SubSystem:
    """
    Trading subsystem for a single base value.

    The rules are treated as equally weighted. Their averaged forecasts are
    scaled up by the diversification multiplier and clipped to the forecast
    cap.
    """

    def __init__(
        self,
        base_value: BaseValue,
        rules: Sequence[Rule],
        capital: float,
        base_scale: float,
        config: Optional[SystemConfig] = None
    ):
        """
        Initialize the subsystem and combine the forecasts of its rules.

        Args:
            base_value: Instrument all rules forecast on.
            rules: Pairwise distinct rules sharing base value and
                reference window.
            capital: Starting capital of every simulation, > 0.
            base_scale: Mean absolute forecast, > 0.
            config: Calculation constants (defaults to SystemConfig()).
        """
        self._config = config or DEFAULT_SYSTEM_CONFIG
        self._validate_inputs(base_value, rules, capital, base_scale)

        self._base_value = base_value
        self._rules = tuple(rules)
        self._capital = float(capital)
        self._base_scale = float(base_scale)

        self._diversification_multiplier = DiversificationMultiplier.from_rules(self._rules)
        self._combined_forecasts = self._calculate_combined_forecasts()

        logger.info(
            f"SubSystem {base_value.name} created",
            rules=len(self._rules),
            diversification_multiplier=round(self._diversification_multiplier.value, 6),
            forecasts=len(self._combined_forecasts)
        )

    @property
    def base_value(self) -> BaseValue:
        return self._base_value

    @property
    def rules(self) -> tuple:
        return self._rules

    @property
    def capital(self) -> float:
        return self._capital

    @property
    def base_scale(self) -> float:
        return self._base_scale

    @property
    def diversification_multiplier(self) -> DiversificationMultiplier:
        return self._diversification_multiplier

    @property
    def combined_forecasts(self) -> TimeSeries:
        return self._combined_forecasts

    def _calculate_combined_forecasts(self) -> TimeSeries:
        forecasts = np.vstack([rule.forecasts.values for rule in self._rules])
        cap = self._config.forecast_cap(self._base_scale)
        combined = forecasts.mean(axis=0) * self._diversification_multiplier.value
        return self._rules[0].forecasts.with_values(np.clip(combined, -cap, cap))

    def backtest(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> float:
        """
        Simulate trading between start and end.

        Args:
            start: First simulated date (defaults to the first forecast date).
            end: Last simulated date (defaults to the last forecast date).

        Returns:
            Account value at the end of the simulation.
        """
        return self.simulate(start, end).final_value

    def calculate_performance_values(self, start: datetime, end: datetime) -> TimeSeries:
        """Account value per date between start and end, starting at the capital."""
        return self.simulate(start, end).performance_values

    def simulate(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> BacktestResults:
        """
        Run the simulation and keep the liquidated trades.

        Raises:
            InvalidInputError: If the window is not within the combined forecasts.
        """
        start = start or self._combined_forecasts.first_date
        end = end or self._combined_forecasts.last_date
        try:
            validate_time_window(start, end, self._combined_forecasts)
        except InvalidInputError as e:
            raise InvalidInputError(
                "The given test window does not meet specifications.", field="test_window"
            ) from e

        forecasts = self._combined_forecasts.between(start, end)
        prices = self._base_value.values.between(start, end).values
        short_prices = self._base_value.short_index_values.between(start, end).values

        # Products are normalized so that their average price over the window is 1
        price_factor = 1.0 / calculate_average(prices)
        product_prices = prices * price_factor
        short_product_prices = short_prices * price_factor

        sizer = PositionSizer(self._capital, self._base_scale)
        cash = self._capital
        position: Optional[SimulatedPosition] = None
        trades: List[CompletedTrade] = []
        performance = np.empty(len(forecasts))

        for i, (date, forecast) in enumerate(forecasts):
            if position is not None:
                exit_price = product_prices[i] if position.side == LONG else short_product_prices[i]
                cash += position.market_value(exit_price)
                trades.append(CompletedTrade.close(position, exit_price, date))
                logger.position("close", position.side, position.units, exit_price, date=date)
                position = None

            performance[i] = cash

            size = sizer.calculate_position_size(forecast, product_prices[i], short_product_prices[i])
            if not size.is_flat:
                cash -= size.cost
                position = SimulatedPosition(
                    side=size.side,
                    units=size.units,
                    entry_price=size.price,
                    entry_time=date
                )
                logger.position("open", size.side, size.units, size.price, date=date)

        results = BacktestResults(
            capital=self._capital,
            performance_values=forecasts.with_values(performance),
            trades=trades
        )

        logger.info(
            "Backtest completed",
            base_value=self._base_value.name,
            start=start.isoformat(),
            end=end.isoformat(),
            final_value=round(results.final_value, 2),
            trades=len(trades)
        )
        return results

    def _validate_inputs(
        self,
        base_value: BaseValue,
        rules: Sequence[Rule],
        capital: float,
        base_scale: float
    ) -> None:
        if base_value is None:
            raise InvalidInputError("Base value must not be None", field="base_value")

        try:
            validate_rules(rules)
            self._validate_rule_consistency(base_value, rules)
        except InvalidInputError as e:
            raise InvalidInputError("The given rules do not meet specifications.", field="rules") from e

        for i in range(len(rules)):
            for j in range(i + 1, len(rules)):
                if rules[i] == rules[j]:
                    raise InvalidInputError(
                        "The given rules are not unique. Only unique rules can be used.",
                        field="rules"
                    )

        try:
            validate_positive(capital)
        except InvalidInputError as e:
            raise InvalidInputError("Given capital does not meet specifications.", field="capital") from e

        try:
            validate_positive(base_scale)
        except InvalidInputError as e:
            raise InvalidInputError(
                "The given base scale does not meet specifications.", field="base_scale"
            ) from e

    @staticmethod
    def _validate_rule_consistency(base_value: BaseValue, rules: Sequence[Rule]) -> None:
        first = rules[0]
        for index, rule in enumerate(rules):
            if rule.base_value != base_value:
                raise InvalidInputError(
                    "The base value of all rules must be equal to given base value "
                    f"but the rule at position {index} does not fulfill this requirement."
                )
            if (
                rule.start_of_reference_window != first.start_of_reference_window
                or rule.end_of_reference_window != first.end_of_reference_window
            ):
                raise InvalidInputError(
                    f"The reference window of the rule at position {index} differs "
                    "from the reference window of the first rule."
                )

    def __repr__(self) -> str:
        return (
            f"SubSystem(base_value={self._base_value.name!r}, rules={len(self._rules)}, "
            f"capital={self._capital})"
        )
