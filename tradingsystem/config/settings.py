"""
Configuration loading and management.
Loads settings from YAML files and environment variables.
"""

import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional

import yaml


@dataclass(frozen=True)
class SystemConfig:
    """
    Calculation constants shared by base values, rules and subsystems.

    Frozen so that a single instance can be shared across the immutable
    objects built from it.
    """
    short_index_initial_value: float = 1000.0
    short_index_return_cap: float = 0.5  # Only positive returns are capped
    volatility_horizon: int = 25  # EWMA horizon of the squared returns
    forecast_cap_multiplier: float = 2.0  # Forecasts are clipped to +-(this * base scale)

    def __post_init__(self):
        if self.short_index_initial_value <= 0:
            raise ValueError("short_index_initial_value must be positive")
        if self.short_index_return_cap <= 0:
            raise ValueError("short_index_return_cap must be positive")
        if self.volatility_horizon < 2:
            raise ValueError("volatility_horizon must not be < 2")
        if self.forecast_cap_multiplier <= 0:
            raise ValueError("forecast_cap_multiplier must be positive")

    def forecast_cap(self, base_scale: float) -> float:
        """Absolute forecast limit for the given base scale."""
        return self.forecast_cap_multiplier * base_scale


DEFAULT_SYSTEM_CONFIG = SystemConfig()


@dataclass
class BacktestSettings:
    """Backtest-specific configuration."""
    name: str = "DAX"
    capital: float = 100000.0
    base_scale: float = 10.0

    # Reference window for forecast calibration
    start_of_reference_window: datetime = field(default_factory=lambda: datetime(2015, 1, 2, 22, 0))
    end_of_reference_window: datetime = field(default_factory=lambda: datetime(2019, 12, 30, 22, 0))

    # Window the simulation runs over
    start_of_test_window: datetime = field(default_factory=lambda: datetime(2020, 1, 2, 22, 0))
    end_of_test_window: datetime = field(default_factory=lambda: datetime(2020, 3, 31, 22, 0))

    lookback_window: int = 8

    # Data files, relative to data_dir
    data_dir: str = "data"
    values_file: str = "DAX.csv"
    short_index_file: Optional[str] = None
    volatility_index_file: Optional[str] = None
    csv_format: str = "EU"


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    format: str = "text"


@dataclass
class Settings:
    """Main application settings container."""
    system: SystemConfig = field(default_factory=SystemConfig)
    backtest: BacktestSettings = field(default_factory=BacktestSettings)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _find_config_file() -> Optional[Path]:
    """
    Find the configuration file.

    Returns:
        Path to config file or None if not found.
    """
    env_config = os.environ.get("CONFIG_PATH")
    if env_config:
        path = Path(env_config)
        if path.exists():
            return path

    search_paths = [
        Path("config/config.yaml"),
        Path("config.yaml"),
        Path(__file__).parent.parent.parent / "config" / "config.yaml",
    ]

    for path in search_paths:
        if path.exists():
            return path

    return None


def _parse_datetime(value) -> datetime:
    """YAML may already hand us a datetime; strings are parsed as ISO 8601."""
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _dict_to_config(data: dict, config_class, existing=None):
    """
    Convert dictionary to dataclass, preserving defaults for missing keys.

    Args:
        data: Dictionary with configuration data.
        config_class: The dataclass type to create.
        existing: Existing instance to update (optional).

    Returns:
        Instance of config_class with data applied.
    """
    if existing is None:
        existing = config_class()

    if data is None:
        return existing

    for key, value in data.items():
        if hasattr(existing, key):
            setattr(existing, key, value)

    return existing


def load_settings(config_path: Optional[str] = None) -> Settings:
    """
    Load settings from configuration file and environment.

    Args:
        config_path: Optional explicit path to config file.

    Returns:
        Settings instance with loaded configuration.
    """
    settings = Settings()

    if config_path:
        path = Path(config_path)
    else:
        path = _find_config_file()

    if path and path.exists():
        with open(path, "r") as f:
            data = yaml.safe_load(f)

        if data:
            # SystemConfig is frozen, so it is rebuilt rather than updated
            system_data = data.get("system")
            if system_data and isinstance(system_data, dict):
                known = {k: v for k, v in system_data.items() if hasattr(settings.system, k)}
                settings.system = SystemConfig(**known)

            settings.backtest = _dict_to_config(
                data.get("backtest"), BacktestSettings, settings.backtest
            )
            for key in (
                "start_of_reference_window",
                "end_of_reference_window",
                "start_of_test_window",
                "end_of_test_window",
            ):
                setattr(settings.backtest, key, _parse_datetime(getattr(settings.backtest, key)))

            settings.logging = _dict_to_config(
                data.get("logging"), LoggingConfig, settings.logging
            )

    _apply_env_overrides(settings)

    return settings


def _apply_env_overrides(settings: Settings) -> None:
    """
    Apply environment variable overrides to settings.

    Args:
        settings: Settings instance to modify.
    """
    if capital := os.environ.get("BACKTEST_CAPITAL"):
        settings.backtest.capital = float(capital)

    if base_scale := os.environ.get("BACKTEST_BASE_SCALE"):
        settings.backtest.base_scale = float(base_scale)

    if data_dir := os.environ.get("DATA_DIR"):
        settings.backtest.data_dir = data_dir

    if log_level := os.environ.get("LOG_LEVEL"):
        settings.logging.level = log_level.upper()

