"""
Position sizing calculator.
Determines how many units a forecast buys.
"""

import math
from dataclasses import dataclass
from typing import Optional

from ..core.stats import validate_positive
from ..errors import InvalidInputError
from ..observability.logger import get_logger

logger = get_logger(__name__)

LONG = "long"
SHORT = "short"


@dataclass
class PositionSize:
    """Position size calculation result."""
    side: Optional[str]  # "long", "short" or None for no position
    units: int
    price: float

    @property
    def cost(self) -> float:
        """Cash needed to open the position."""
        return self.units * self.price

    @property
    def is_flat(self) -> bool:
        return self.side is None or self.units == 0


def side_from_forecast(forecast: float) -> Optional[str]:
    """Long for a positive, short for a negative forecast, None otherwise."""
    if forecast is None or not math.isfinite(forecast):
        return None
    if forecast > 0:
        return LONG
    if forecast < 0:
        return SHORT
    return None


def calculate_units(capital: float, price: float, base_scale: float, forecast: float) -> int:
    """
    Units bought for a forecast.

    A forecast of twice the base scale (the forecast cap) invests the full
    capital:

        units = floor((capital / price) / (2 * base_scale) * |forecast|)

    Args:
        capital: Capital the position is sized against.
        price: Price of one unit.
        base_scale: Mean absolute forecast the rules are scaled to.
        forecast: Combined forecast.

    Returns:
        Number of whole units, 0 for a non-finite forecast.
    """
    if forecast is None or not math.isfinite(forecast):
        return 0
    if price <= 0 or not math.isfinite(price):
        raise InvalidInputError(f"Price must be a positive number but is {price}", field="price")
    return int(math.floor((capital / price) / (2 * base_scale) * abs(forecast)))


class PositionSizer:
    """
    Fixed-capital position sizing from forecasts.

    Positions are always sized against the initial capital, never against
    the current account value.
    """

    def __init__(self, capital: float, base_scale: float):
        """
        Initialize position sizer.

        Args:
            capital: Capital every position is sized against.
            base_scale: Mean absolute forecast the rules are scaled to.
        """
        try:
            validate_positive(capital)
        except InvalidInputError as e:
            raise InvalidInputError("Given capital does not meet specifications.", field="capital") from e
        try:
            validate_positive(base_scale)
        except InvalidInputError as e:
            raise InvalidInputError(
                "Given base scale does not meet specifications.", field="base_scale"
            ) from e

        self.capital = capital
        self.base_scale = base_scale

    def calculate_position_size(
        self,
        forecast: float,
        price: float,
        short_price: float
    ) -> PositionSize:
        """
        Size a position for the given forecast.

        Args:
            forecast: Combined forecast.
            price: Price of the product for a long position.
            short_price: Price of the short product for a short position.

        Returns:
            PositionSize with side, units and the price paid per unit.
        """
        if forecast is None or not math.isfinite(forecast):
            logger.warning("Forecast is not a finite number, no position is opened", forecast=forecast)
            return PositionSize(side=None, units=0, price=0.0)

        side = side_from_forecast(forecast)
        if side is None:
            return PositionSize(side=None, units=0, price=0.0)

        unit_price = price if side == LONG else short_price
        units = calculate_units(self.capital, unit_price, self.base_scale, forecast)

        logger.debug(
            f"Position size calculated: {units} units {side}",
            forecast=forecast,
            price=unit_price,
            capital=self.capital
        )

        return PositionSize(side=side, units=units, price=unit_price)
