"""
Backtest runner - orchestrates the backtesting process.
"""

from typing import List, Optional

from ..config.settings import SystemConfig
from ..core.base_value import BaseValue
from ..core.timeseries import TimeSeries
from ..observability.logger import get_logger
from ..strategy.ewmac import EWMAC
from ..strategy.rule import Rule
from ..strategy.volatility_difference import VolatilityDifference

from .config import BacktestConfig
from .data import PriceData, PriceDataManager
from .reporter import ResultsReporter
from .subsystem import BacktestResults, SubSystem

logger = get_logger(__name__)

# (long horizon, short horizon) of the EWMAC variations
EWMAC_VARIATION_HORIZONS = ((8, 2), (16, 4), (32, 8))


class BacktestRunner:
    """
    Orchestrates the complete backtesting process.

    Coordinates:
    - Loading and aligning the price files
    - Building the default rules and the subsystem
    - Running the simulation over the test window and reporting
    """

    def __init__(
        self,
        config: BacktestConfig,
        system_config: Optional[SystemConfig] = None,
        data_manager: Optional[PriceDataManager] = None
    ):
        """
        Initialize the backtest runner.

        Args:
            config: Backtest configuration.
            system_config: Calculation constants.
            data_manager: Optional PriceDataManager (created from config if
                not provided).
        """
        self.config = config
        self.system_config = system_config
        self.data_manager = data_manager or PriceDataManager(
            data_dir=config.data_dir,
            csv_format=config.csv_format,
            config=system_config
        )
        self.subsystem: Optional[SubSystem] = None
        self.results: Optional[BacktestResults] = None

    def load_data(self) -> PriceData:
        return self.data_manager.load(
            self.config.name,
            self.config.values_file,
            self.config.short_index_file,
            self.config.volatility_index_file
        )

    def build_rules(
        self,
        base_value: BaseValue,
        volatility_indices: Optional[TimeSeries] = None
    ) -> List[Rule]:
        """
        Build the default rule set: one VolatilityDifference and one EWMAC
        combining three EWMAC variations.
        """
        start = self.config.start_of_reference_window
        end = self.config.end_of_reference_window
        base_scale = self.config.base_scale

        volatility_difference = VolatilityDifference(
            base_value, None, start, end,
            self.config.lookback_window, base_scale,
            volatility_indices=volatility_indices,
            config=self.system_config
        )

        variations = [
            EWMAC(base_value, None, start, end, long_horizon, short_horizon, base_scale,
                  config=self.system_config)
            for long_horizon, short_horizon in EWMAC_VARIATION_HORIZONS
        ]
        ewmac = EWMAC(base_value, variations, start, end, 0, 0, base_scale, config=self.system_config)

        return [volatility_difference, ewmac]

    def run(self) -> BacktestResults:
        """
        Run the complete backtest.

        Returns:
            BacktestResults of the test window.
        """
        logger.info(
            "Starting backtest",
            name=self.config.name,
            start=self.config.start_of_test_window.isoformat(),
            end=self.config.end_of_test_window.isoformat()
        )

        price_data = self.load_data()
        rules = self.build_rules(price_data.base_value, price_data.volatility_indices)

        self.subsystem = SubSystem(
            price_data.base_value,
            rules,
            self.config.capital,
            self.config.base_scale,
            config=self.system_config
        )
        self.results = self.subsystem.simulate(
            self.config.start_of_test_window,
            self.config.end_of_test_window
        )

        logger.info(
            "Backtest finished",
            final_value=round(self.results.final_value, 2),
            net_return_percent=round(self.results.net_return_percent, 4)
        )
        return self.results

    def _reporter(self) -> ResultsReporter:
        if not self.results:
            raise ValueError("No results available. Run backtest first.")
        return ResultsReporter(
            self.config.name,
            self.results,
            self.subsystem.combined_forecasts
        )

    def print_report(self) -> None:
        """Print the backtest report to console."""
        self._reporter().print_summary()

    def get_summary(self) -> dict:
        """
        Get backtest summary as dictionary.

        Returns:
            Summary dictionary.
        """
        return self._reporter().get_summary_dict()


def run_backtest(
    config: Optional[BacktestConfig] = None,
    system_config: Optional[SystemConfig] = None,
    show_report: bool = True
) -> BacktestResults:
    """
    Convenience function to run a backtest.

    Args:
        config: Backtest configuration (defaults to BacktestConfig()).
        system_config: Calculation constants.
        show_report: Whether to print report to console.

    Returns:
        BacktestResults.
    """
    runner = BacktestRunner(config or BacktestConfig(), system_config)
    results = runner.run()

    if show_report:
        runner.print_report()

    return results
