"""
Results reporter for backtest output.
"""

from ..core.stats import get_position_from_forecast
from ..core.timeseries import TimeSeries
from .subsystem import BacktestResults


class ResultsReporter:
    """Console summary of a backtest."""

    def __init__(self, name: str, results: BacktestResults, combined_forecasts: TimeSeries):
        """
        Initialize the reporter.

        Args:
            name: Name of the simulated base value.
            results: BacktestResults from the subsystem.
            combined_forecasts: Combined forecasts; the last one gives the
                current position.
        """
        self.name = name
        self.results = results
        self.combined_forecasts = combined_forecasts

    @property
    def current_position(self) -> str:
        _, forecast = self.combined_forecasts[-1]
        return get_position_from_forecast(forecast)

    def print_summary(self) -> None:
        """Print a summary to console."""
        performance = self.results.performance_values

        print("=" * 80)
        print(f"{'BACKTEST RESULTS: ' + self.name:^80}")
        print("=" * 80)

        print(
            f"Period: {performance.first_date.strftime('%Y-%m-%d')} to "
            f"{performance.last_date.strftime('%Y-%m-%d')} ({len(performance)} steps)"
        )
        print(f"Capital: {self.results.capital:,.2f}")

        print()
        print("-" * 80)
        print(f"{'PERFORMANCE SUMMARY':^80}")
        print("-" * 80)

        print(f"{'Final Value:':<30} {self.results.final_value:,.2f}")
        print(f"{'Net Return:':<30} {self.results.net_return_percent:+.2f}%")
        print(f"{'Trades:':<30} {len(self.results.trades)}")
        print(f"{'Win Rate:':<30} {self.results.win_rate:.1f}%")
        print(f"{'Current position:':<30} {self.current_position}")

        print("=" * 80)

    def get_summary_dict(self) -> dict:
        """
        Get summary as dictionary.

        Returns:
            Summary dictionary.
        """
        performance = self.results.performance_values
        return {
            "name": self.name,
            "start": performance.first_date.isoformat(),
            "end": performance.last_date.isoformat(),
            "capital": self.results.capital,
            "final_value": self.results.final_value,
            "net_return_percent": self.results.net_return_percent,
            "trades": len(self.results.trades),
            "win_rate": self.results.win_rate,
            "current_position": self.current_position,
            "trade_log": [trade.to_dict() for trade in self.results.trades],
        }
