"""
Simulated position for backtesting.
Tracks units held on the product or the short product between two steps.
"""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class SimulatedPosition:
    """
    Simulated holding opened at one backtest step and liquidated at the next.

    A long position holds units of the product, a short position holds
    units of the short product. Both are bought, so both gain when their
    own price rises.
    """
    side: str  # "long" or "short"
    units: int
    entry_price: float
    entry_time: datetime

    @property
    def cost(self) -> float:
        """Cash paid to open the position."""
        return self.units * self.entry_price

    def market_value(self, price: float) -> float:
        """Cash received for liquidating at the given price."""
        return self.units * price

    def calculate_pnl(self, exit_price: float) -> float:
        return (exit_price - self.entry_price) * self.units

    def calculate_pnl_percent(self, exit_price: float) -> float:
        """
        Calculate P&L percentage.

        Args:
            exit_price: Price to exit at.

        Returns:
            P&L as percentage.
        """
        if self.entry_price == 0:
            return 0.0
        return ((exit_price - self.entry_price) / self.entry_price) * 100


@dataclass
class CompletedTrade:
    """A liquidated backtest position with entry and exit details."""
    side: str
    units: int
    entry_price: float
    exit_price: float
    entry_time: datetime
    exit_time: datetime
    pnl: float
    pnl_percent: float

    @classmethod
    def close(cls, position: SimulatedPosition, exit_price: float, exit_time: datetime) -> "CompletedTrade":
        """Liquidate a position at the given price."""
        return cls(
            side=position.side,
            units=position.units,
            entry_price=position.entry_price,
            exit_price=exit_price,
            entry_time=position.entry_time,
            exit_time=exit_time,
            pnl=position.calculate_pnl(exit_price),
            pnl_percent=position.calculate_pnl_percent(exit_price)
        )

    @property
    def is_winner(self) -> bool:
        """Check if this trade was profitable."""
        return self.pnl > 0

    def to_dict(self) -> dict:
        """Serialize trade to dictionary."""
        return {
            "side": self.side,
            "units": self.units,
            "entry_price": self.entry_price,
            "exit_price": self.exit_price,
            "entry_time": self.entry_time.isoformat(),
            "exit_time": self.exit_time.isoformat(),
            "pnl": self.pnl,
            "pnl_percent": self.pnl_percent,
            "is_winner": self.is_winner,
        }
