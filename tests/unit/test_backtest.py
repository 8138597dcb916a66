"""
Unit tests for CSV loading, the backtest runner and the reporter.
"""

import pytest
import sys
import os
from datetime import datetime

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from tradingsystem.backtest import (
    BacktestConfig,
    BacktestRunner,
    CsvFormat,
    PriceDataManager,
    load_csv,
)
from tradingsystem.errors import InvalidInputError

from conftest import REFERENCE_END, REFERENCE_START, make_dates, wavy_prices


def write_eu_csv(path, dates, values):
    lines = []
    for date, value in zip(dates, values):
        number = f"{value:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
        lines.append(f"{date:%d.%m.%Y};{date:%H:%M:%S};{number}")
    path.write_text("\n".join(lines) + "\n")


class TestLoadCsv:
    """Tests for CSV parsing."""

    def test_eu_format(self, tmp_path):
        """EU files use day-first dates and a decimal comma."""
        path = tmp_path / "eu.csv"
        path.write_text("02.01.2020;22:00:00;13.385,93\n03.01.2020;22:00:00;13.219,14\n")
        series = load_csv(path, CsvFormat.EU)
        assert series.dates == (datetime(2020, 1, 2, 22, 0), datetime(2020, 1, 3, 22, 0))
        assert list(series.values) == [13385.93, 13219.14]

    def test_us_format(self, tmp_path):
        """US files use month-first dates and a decimal point."""
        path = tmp_path / "us.csv"
        path.write_text("01/02/2020,22:00:00,\"3,257.85\"\n")
        series = load_csv(path, CsvFormat.US)
        assert series.dates == (datetime(2020, 1, 2, 22, 0),)
        assert series.values[0] == 3257.85

    def test_year_month_day(self, tmp_path):
        """Year-first notation should be supported."""
        path = tmp_path / "ymd.csv"
        path.write_text("2020.01.02;22:00:00;1,5\n")
        series = load_csv(path, CsvFormat.EU_YEAR_MONTH_DAY)
        assert series.dates == (datetime(2020, 1, 2, 22, 0),)
        assert series.values[0] == 1.5

    def test_missing_file(self, tmp_path):
        """A missing file should raise FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_csv(tmp_path / "missing.csv")

    def test_wrong_column_count(self, tmp_path):
        """Lines must have exactly three columns."""
        path = tmp_path / "bad.csv"
        path.write_text("02.01.2020;22:00:00\n")
        with pytest.raises(InvalidInputError, match="3 columns"):
            load_csv(path)

    def test_unparsable_value(self, tmp_path):
        """A non-numeric value should raise."""
        path = tmp_path / "bad.csv"
        path.write_text("02.01.2020;22:00:00;abc\n")
        with pytest.raises(InvalidInputError, match="abc"):
            load_csv(path)

    def test_unparsable_date(self, tmp_path):
        """An impossible date should raise."""
        path = tmp_path / "bad.csv"
        path.write_text("32.01.2020;22:00:00;1,0\n")
        with pytest.raises(InvalidInputError):
            load_csv(path)


class TestPriceDataManager:
    """Tests for loading an instrument."""

    def test_aligns_volatility_index(self, tmp_path):
        """The volatility index should be aligned to the prices."""
        dates = make_dates(10)
        write_eu_csv(tmp_path / "values.csv", dates, [100.0 + i for i in range(10)])
        write_eu_csv(tmp_path / "vol.csv", dates[::2], [20.0 + i for i in range(5)])

        data = PriceDataManager(tmp_path, "EU").load("X", "values.csv", volatility_index_file="vol.csv")

        assert data.volatility_indices.dates == data.base_value.values.dates
        assert data.volatility_indices.value_at(dates[1]) == 20.5

    def test_unknown_format(self, tmp_path):
        """An unknown format name should raise."""
        with pytest.raises(InvalidInputError):
            PriceDataManager(tmp_path, "ASIA")


class TestBacktestRunner:
    """Tests for the end-to-end runner."""

    def _config(self, tmp_path):
        prices = wavy_prices()
        dates = make_dates(len(prices))
        write_eu_csv(tmp_path / "values.csv", dates, prices)
        return BacktestConfig(
            name="TEST",
            capital=10000.0,
            base_scale=10.0,
            start_of_reference_window=dates[REFERENCE_START],
            end_of_reference_window=dates[REFERENCE_END],
            start_of_test_window=dates[REFERENCE_END + 1],
            end_of_test_window=dates[-1],
            data_dir=str(tmp_path),
            values_file="values.csv",
        )

    def test_run(self, tmp_path):
        """The runner should build rules and simulate the test window."""
        runner = BacktestRunner(self._config(tmp_path))
        results = runner.run()
        assert results.performance_values.values[0] == 10000.0
        assert len(runner.subsystem.rules) == 2
        assert len(runner.subsystem.rules[1].variations) == 3

    def test_summary(self, tmp_path, capsys):
        """The summary should report the return and current position."""
        runner = BacktestRunner(self._config(tmp_path))
        runner.run()

        summary = runner.get_summary()
        assert summary["name"] == "TEST"
        assert summary["current_position"] in ("Long", "Short", "Hold")
        assert len(summary["trade_log"]) == summary["trades"]
        for trade in summary["trade_log"]:
            assert trade["side"] in ("long", "short")
            assert trade["units"] > 0
            assert trade["exit_time"] > trade["entry_time"]

        runner.print_report()
        output = capsys.readouterr().out
        assert "Net Return" in output
        assert "Current position" in output

    def test_report_before_run(self, tmp_path):
        """Reporting without results should raise."""
        runner = BacktestRunner(self._config(tmp_path))
        with pytest.raises(ValueError):
            runner.print_report()

    def test_config_validation(self):
        """Inverted windows should be rejected by the config."""
        with pytest.raises(ValueError):
            BacktestConfig(
                start_of_test_window=datetime(2020, 2, 1),
                end_of_test_window=datetime(2020, 1, 1)
            )
