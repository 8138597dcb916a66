#!/usr/bin/env python3
"""
Run a backtest of the default rule set on one base value.

Usage:
    python run_backtest.py
    python run_backtest.py --config config/config.yaml
    python run_backtest.py --values DAX.csv --volatility DAX_VDAX.csv
    python run_backtest.py --capital 21210 --base-scale 10 --verbose
"""

import argparse
import json
import sys
from datetime import datetime

from dotenv import load_dotenv

# Load environment variables before importing modules that read them
load_dotenv()

from tradingsystem.backtest import BacktestConfig, BacktestRunner
from tradingsystem.config.settings import load_settings
from tradingsystem.observability.logger import configure_logging, get_logger


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Backtest rule-based forecasts on historical prices"
    )

    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to config YAML (default: CONFIG_PATH or config/config.yaml)"
    )

    # Data
    parser.add_argument("--name", type=str, help="Name of the base value")
    parser.add_argument("--data-dir", type=str, help="Directory holding the CSV files")
    parser.add_argument("--values", type=str, help="Price file")
    parser.add_argument("--short-index", type=str, help="Short index file (optional)")
    parser.add_argument("--volatility", type=str, help="Volatility index file (optional)")
    parser.add_argument(
        "--csv-format",
        type=str,
        choices=["EU", "EU_YEAR_MONTH_DAY", "US", "US_YEAR_MONTH_DAY"],
        help="Notation of the CSV files"
    )

    # Capital and scale
    parser.add_argument("--capital", type=float, help="Capital to simulate with")
    parser.add_argument("--base-scale", type=float, help="Mean absolute forecast")

    # Test window
    parser.add_argument(
        "--start",
        type=datetime.fromisoformat,
        help="Start of the test window (ISO format, e.g. 2020-01-02T22:00)"
    )
    parser.add_argument(
        "--end",
        type=datetime.fromisoformat,
        help="End of the test window (ISO format)"
    )

    # Output
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the summary as JSON instead of the report"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Verbose output"
    )

    return parser.parse_args(argv)


def build_config(args, settings) -> BacktestConfig:
    """Settings from the config file, overridden by command line arguments."""
    backtest = settings.backtest
    overrides = {
        "name": args.name,
        "data_dir": args.data_dir,
        "values_file": args.values,
        "short_index_file": args.short_index,
        "volatility_index_file": args.volatility,
        "csv_format": args.csv_format,
        "capital": args.capital,
        "base_scale": args.base_scale,
        "start_of_test_window": args.start,
        "end_of_test_window": args.end,
    }
    for key, value in overrides.items():
        if value is not None:
            setattr(backtest, key, value)
    return BacktestConfig.from_settings(backtest)


def main(argv=None):
    args = parse_args(argv)
    settings = load_settings(args.config)

    configure_logging(
        level="DEBUG" if args.verbose else settings.logging.level,
        format_type=settings.logging.format
    )
    logger = get_logger(__name__)

    try:
        config = build_config(args, settings)
        runner = BacktestRunner(config, settings.system)
        runner.run()
    except (ValueError, OSError) as e:
        logger.error(f"Error running backtest: {e}")
        print(f"Error running backtest: {e}")
        return 1

    if args.json:
        print(json.dumps(runner.get_summary(), indent=2))
    else:
        runner.print_report()

    return 0


if __name__ == "__main__":
    sys.exit(main())
