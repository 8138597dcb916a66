"""
Backtesting framework for rule-based forecasts.

Simulates trading one base value on the combined forecasts of its rules
over a test window.

Components:
- BacktestConfig: Configuration for backtest parameters
- PriceDataManager: Loads and aligns CSV price files
- SimulatedPosition: Position tracking for backtest simulation
- SubSystem: Combines rule forecasts and runs the simulation
- ResultsReporter: Generates console reports
- BacktestRunner: Orchestrates the complete backtest process

Usage:
    from tradingsystem.backtest import BacktestRunner, BacktestConfig

    config = BacktestConfig(
        name="DAX",
        values_file="DAX.csv",
        volatility_index_file="DAX_VDAX.csv",
        capital=100000.0
    )

    runner = BacktestRunner(config)
    results = runner.run()
    runner.print_report()
"""

from .config import BacktestConfig
from .data import CsvFormat, DateOrder, PriceData, PriceDataManager, load_csv
from .position import CompletedTrade, SimulatedPosition
from .reporter import ResultsReporter
from .runner import BacktestRunner, run_backtest
from .subsystem import BacktestResults, SubSystem

__all__ = [
    # Config
    "BacktestConfig",

    # Data
    "CsvFormat",
    "DateOrder",
    "PriceData",
    "PriceDataManager",
    "load_csv",

    # Position
    "SimulatedPosition",
    "CompletedTrade",

    # Subsystem
    "SubSystem",
    "BacktestResults",

    # Reporter
    "ResultsReporter",

    # Runner
    "BacktestRunner",
    "run_backtest",
]
