"""
Backtest configuration dataclass.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..config.settings import BacktestSettings


@dataclass
class BacktestConfig:
    """Configuration for backtesting."""

    # Instrument
    name: str = "DAX"

    # Capital and forecast scale
    capital: float = 100000.0
    base_scale: float = 10.0

    # Reference window for forecast calibration
    start_of_reference_window: datetime = field(default_factory=lambda: datetime(2015, 1, 2, 22, 0))
    end_of_reference_window: datetime = field(default_factory=lambda: datetime(2019, 12, 30, 22, 0))

    # Simulated window
    start_of_test_window: datetime = field(default_factory=lambda: datetime(2020, 1, 2, 22, 0))
    end_of_test_window: datetime = field(default_factory=lambda: datetime(2020, 3, 31, 22, 0))

    # VolatilityDifference lookback
    lookback_window: int = 8

    # Data files
    data_dir: str = "data"
    values_file: str = "DAX.csv"
    short_index_file: Optional[str] = None
    volatility_index_file: Optional[str] = None
    csv_format: str = "EU"

    def __post_init__(self):
        """Validate configuration."""
        if self.capital <= 0:
            raise ValueError("capital must be positive")

        if self.base_scale <= 0:
            raise ValueError("base_scale must be positive")

        if self.start_of_reference_window >= self.end_of_reference_window:
            raise ValueError("start_of_reference_window must be before end_of_reference_window")

        if self.start_of_test_window >= self.end_of_test_window:
            raise ValueError("start_of_test_window must be before end_of_test_window")

        if self.lookback_window < 2:
            raise ValueError("lookback_window must not be < 2")

    @classmethod
    def from_settings(cls, settings: BacktestSettings) -> "BacktestConfig":
        """Build a config from the loaded application settings."""
        return cls(
            name=settings.name,
            capital=settings.capital,
            base_scale=settings.base_scale,
            start_of_reference_window=settings.start_of_reference_window,
            end_of_reference_window=settings.end_of_reference_window,
            start_of_test_window=settings.start_of_test_window,
            end_of_test_window=settings.end_of_test_window,
            lookback_window=settings.lookback_window,
            data_dir=settings.data_dir,
            values_file=settings.values_file,
            short_index_file=settings.short_index_file,
            volatility_index_file=settings.volatility_index_file,
            csv_format=settings.csv_format,
        )

    def to_dict(self) -> dict:
        """Serialize config to dictionary."""
        return {
            "name": self.name,
            "capital": self.capital,
            "base_scale": self.base_scale,
            "start_of_reference_window": self.start_of_reference_window.isoformat(),
            "end_of_reference_window": self.end_of_reference_window.isoformat(),
            "start_of_test_window": self.start_of_test_window.isoformat(),
            "end_of_test_window": self.end_of_test_window.isoformat(),
            "lookback_window": self.lookback_window,
            "data_dir": self.data_dir,
            "values_file": self.values_file,
            "short_index_file": self.short_index_file,
            "volatility_index_file": self.volatility_index_file,
            "csv_format": self.csv_format,
        }
