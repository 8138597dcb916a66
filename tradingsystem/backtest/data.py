"""
Price data loading for backtesting.
Reads date/time/value CSV files in European or US notation.
"""

import csv
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional, Union

from ..config.settings import SystemConfig
from ..core.alignment import align
from ..core.base_value import BaseValue
from ..core.timeseries import TimeSeries
from ..errors import InvalidInputError
from ..observability.logger import get_logger

logger = get_logger(__name__)


class DateOrder(Enum):
    """Order of day, month and year within a date field."""
    DAY_MONTH_YEAR = ("day", "month", "year")
    MONTH_DAY_YEAR = ("month", "day", "year")
    YEAR_MONTH_DAY = ("year", "month", "day")


class CsvFormat(Enum):
    """
    Notations of price files.

    Value: (field separator, date separator, time separator, decimal point,
    thousands separator, date order).
    """
    EU = (";", ".", ":", ",", ".", DateOrder.DAY_MONTH_YEAR)
    EU_YEAR_MONTH_DAY = (";", ".", ":", ",", ".", DateOrder.YEAR_MONTH_DAY)
    US = (",", "/", ":", ".", ",", DateOrder.MONTH_DAY_YEAR)
    US_YEAR_MONTH_DAY = (",", "/", ":", ".", ",", DateOrder.YEAR_MONTH_DAY)

    @property
    def field_separator(self) -> str:
        return self.value[0]

    @property
    def date_separator(self) -> str:
        return self.value[1]

    @property
    def time_separator(self) -> str:
        return self.value[2]

    @property
    def decimal_point(self) -> str:
        return self.value[3]

    @property
    def thousands_separator(self) -> str:
        return self.value[4]

    @property
    def date_order(self) -> DateOrder:
        return self.value[5]


def _parse_datetime(date_field: str, time_field: str, fmt: CsvFormat) -> datetime:
    date_parts = date_field.strip().split(fmt.date_separator)
    time_parts = time_field.strip().split(fmt.time_separator)

    if len(date_parts) != 3:
        raise InvalidInputError(f"The date value cannot be parsed. Failing value >{date_field}<")
    if len(time_parts) != 3:
        raise InvalidInputError(f"The time value cannot be parsed. Failing value >{time_field}<")

    try:
        date_values = dict(zip(fmt.date_order.value, (int(p) for p in date_parts)))
    except ValueError as e:
        raise InvalidInputError(
            f"The date values cannot be parsed into numbers. Failing value >{date_field}<"
        ) from e
    try:
        hour, minute, second = (int(p) for p in time_parts)
    except ValueError as e:
        raise InvalidInputError(
            f"The time values cannot be parsed into numbers. Failing value >{time_field}<"
        ) from e

    try:
        return datetime(
            date_values["year"], date_values["month"], date_values["day"],
            hour, minute, second
        )
    except ValueError as e:
        raise InvalidInputError(
            "The date or time values cannot be parsed into a datetime. "
            f"Failing values >{date_field}< and >{time_field}<"
        ) from e


def _parse_value(value_field: str, fmt: CsvFormat) -> float:
    normalized = (
        value_field.strip()
        .replace(fmt.thousands_separator, "")
        .replace(fmt.decimal_point, ".")
    )
    try:
        return float(normalized)
    except ValueError as e:
        raise InvalidInputError(
            f"The value cannot be parsed into a number. Failing value >{value_field}<"
        ) from e


def load_csv(path: Union[str, Path], fmt: CsvFormat = CsvFormat.EU) -> TimeSeries:
    """
    Load a price series from a CSV file.

    Each line holds exactly three fields: date, time and value.

    Args:
        path: Path to the file.
        fmt: Notation of the file.

    Returns:
        TimeSeries in file order (not validated).

    Raises:
        FileNotFoundError: If path does not point to a file.
        InvalidInputError: If a line cannot be parsed.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Given source path does not point to an existing file: {path}")

    dates: List[datetime] = []
    values: List[float] = []

    with open(path, "r", newline="") as f:
        reader = csv.reader(f, delimiter=fmt.field_separator)
        for line_number, row in enumerate(reader, start=1):
            if not row:
                continue
            if len(row) != 3:
                raise InvalidInputError(
                    f"Line {line_number} of {path.name} does not have exactly 3 columns "
                    f"but {len(row)}"
                )
            dates.append(_parse_datetime(row[0], row[1], fmt))
            values.append(_parse_value(row[2], fmt))

    logger.debug(f"Loaded {len(values)} values", file=str(path), format=fmt.name)
    return TimeSeries(dates, values)


@dataclass
class PriceData:
    """A base value plus the volatility index loaded alongside it."""
    base_value: BaseValue
    volatility_indices: Optional[TimeSeries] = None


class PriceDataManager:
    """
    Loads the price files of one instrument.

    Features:
    - Reads prices and optional short index and volatility index files
    - Aligns all files onto the price dates
    """

    def __init__(
        self,
        data_dir: Union[str, Path] = "data",
        csv_format: Union[str, CsvFormat] = CsvFormat.EU,
        config: Optional[SystemConfig] = None
    ):
        """
        Initialize the data manager.

        Args:
            data_dir: Directory holding the CSV files.
            csv_format: Notation of the files (member or member name).
            config: Calculation constants handed to the base value.
        """
        self.data_dir = Path(data_dir)
        if isinstance(csv_format, str):
            try:
                csv_format = CsvFormat[csv_format]
            except KeyError as e:
                raise InvalidInputError(
                    f"Unknown CSV format {csv_format}. "
                    f"Must be one of {[f.name for f in CsvFormat]}",
                    field="csv_format"
                ) from e
        self.csv_format = csv_format
        self.config = config

    def load(
        self,
        name: str,
        values_file: str,
        short_index_file: Optional[str] = None,
        volatility_index_file: Optional[str] = None
    ) -> PriceData:
        """
        Load an instrument.

        Args:
            name: Name of the base value.
            values_file: Price file, relative to data_dir.
            short_index_file: Optional short index file.
            volatility_index_file: Optional volatility index file.

        Returns:
            PriceData with the base value and the aligned volatility index.
        """
        values = load_csv(self.data_dir / values_file, self.csv_format)
        series = [values]

        if short_index_file:
            series.append(load_csv(self.data_dir / short_index_file, self.csv_format))
        if volatility_index_file:
            series.append(load_csv(self.data_dir / volatility_index_file, self.csv_format))

        if len(series) > 1:
            series = align(series)
            values = series[0]

        short_index_values = series[1] if short_index_file else None
        volatility_indices = series[-1] if volatility_index_file else None

        base_value = BaseValue(name, values, short_index_values, self.config)

        logger.info(
            f"Loaded base value {name}",
            points=len(values),
            first=values.first_date.isoformat(),
            last=values.last_date.isoformat(),
            short_index=short_index_file is not None,
            volatility_index=volatility_index_file is not None
        )
        return PriceData(base_value=base_value, volatility_indices=volatility_indices)
