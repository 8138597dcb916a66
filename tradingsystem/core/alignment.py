"""
Alignment of several time series onto one common date axis.

Series coming from different sources rarely share every timestamp. align()
extends each series to the union of all dates and fills the gaps:

- leading gap: backward-filled from the first known value
- trailing gap: forward-filled from the last known value
- interior gap: the mean of the known values right before and after it
"""

from typing import List, Sequence

import numpy as np

from ..errors import InvalidInputError
from ..observability.logger import get_logger
from .timeseries import TimeSeries

logger = get_logger(__name__)


def align(series_list: Sequence[TimeSeries]) -> List[TimeSeries]:
    """
    Align the given series to the union of their dates.

    Args:
        series_list: Series to align. Each must be non-empty, strictly
            ascending and hold at least one non-NaN value.

    Returns:
        New series in input order, all sharing the same dates and free of NaN.

    Raises:
        InvalidInputError: If the list or any series in it is invalid.
    """
    if series_list is None:
        raise InvalidInputError("Given list of series must not be None")
    if len(series_list) == 0:
        raise InvalidInputError("Given list of series must not be empty")

    for index, series in enumerate(series_list):
        try:
            _validate_row(series)
        except InvalidInputError as e:
            raise InvalidInputError(
                f"The series at position {index} does not meet specifications."
            ) from e

    union_dates = sorted(set().union(*(series.dates for series in series_list)))

    aligned = []
    for index, series in enumerate(series_list):
        values = _insert_missing_dates(series, union_dates)
        try:
            filled = fill_gaps(values)
        except InvalidInputError as e:
            raise InvalidInputError(f"Row at position {index} is not valid.") from e
        aligned.append(TimeSeries(union_dates, filled))

    logger.debug(
        "Aligned series",
        series=len(series_list),
        dates=len(union_dates)
    )
    return aligned


def fill_gaps(values: np.ndarray) -> np.ndarray:
    """
    Replace NaN runs in an array by values derived from their neighbours.

    Args:
        values: Array possibly holding NaN.

    Returns:
        A new array without NaN.

    Raises:
        InvalidInputError: If no value is known at all.
    """
    filled = np.array(values, dtype=np.float64)
    known = np.flatnonzero(~np.isnan(filled))

    if known.size == 0:
        raise InvalidInputError("Row must contain at least one value that is not NaN.")

    first_known = known[0]
    last_known = known[-1]
    filled[:first_known] = filled[first_known]
    filled[last_known + 1:] = filled[last_known]

    for before, after in zip(known[:-1], known[1:]):
        if after - before > 1:
            filled[before + 1:after] = (filled[before] + filled[after]) / 2

    return filled


def _validate_row(series: TimeSeries) -> None:
    if series is None:
        raise InvalidInputError("Given series must not be None")
    if len(series) == 0:
        raise InvalidInputError("Values must not be an empty array")
    series.validate_dates()
    if np.isnan(series.values).all():
        raise InvalidInputError("Row must contain at least one value that is not NaN.")


def _insert_missing_dates(series: TimeSeries, union_dates: Sequence) -> np.ndarray:
    """Spread the series' values over union_dates, NaN where a date is missing."""
    values = np.full(len(union_dates), np.nan)
    for index, date in enumerate(union_dates):
        position = series.position(date)
        if position is not None:
            values[index] = series.values[position]
    return values
