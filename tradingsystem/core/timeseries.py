"""
Ordered (timestamp, value) series.

A TimeSeries pairs a tuple of datetimes with a read-only float64 numpy
array. The type itself accepts any ordering so that loaders can hand over
raw data; consumers that need the ascending/unique invariant call
validate_dates() and validate_values().
"""

from datetime import datetime
from typing import Iterable, Iterator, Optional, Sequence, Tuple

import numpy as np

from ..errors import InvalidInputError


class TimeSeries:
    """Immutable series of (datetime, float) points."""

    def __init__(self, dates: Sequence[datetime], values: Iterable[float]):
        """
        Create a series.

        Args:
            dates: Timestamps, one per value.
            values: Float values (copied into a read-only array).
        """
        if dates is None or values is None:
            raise InvalidInputError("Given dates and values must not be None")

        if not isinstance(values, np.ndarray):
            values = list(values)
        values_array = np.array(values, dtype=np.float64)
        if values_array.ndim != 1:
            raise InvalidInputError("Values must be one-dimensional")
        if len(dates) != len(values_array):
            raise InvalidInputError(
                f"Dates and values differ in length: {len(dates)} != {len(values_array)}"
            )
        for date in dates:
            if date is None:
                raise InvalidInputError("Given dates must not contain None")

        values_array.setflags(write=False)
        self._dates: Tuple[datetime, ...] = tuple(dates)
        self._values = values_array
        self._positions = {date: i for i, date in enumerate(self._dates)}

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[datetime, float]]) -> "TimeSeries":
        """Build a series from (date, value) pairs."""
        pairs = list(pairs)
        return cls([date for date, _ in pairs], [value for _, value in pairs])

    @classmethod
    def empty(cls) -> "TimeSeries":
        return cls([], [])

    @property
    def dates(self) -> Tuple[datetime, ...]:
        return self._dates

    @property
    def values(self) -> np.ndarray:
        return self._values

    @property
    def first_date(self) -> datetime:
        if not self._dates:
            raise InvalidInputError("Series is empty")
        return self._dates[0]

    @property
    def last_date(self) -> datetime:
        if not self._dates:
            raise InvalidInputError("Series is empty")
        return self._dates[-1]

    def __len__(self) -> int:
        return len(self._dates)

    def __iter__(self) -> Iterator[Tuple[datetime, float]]:
        for date, value in zip(self._dates, self._values):
            yield date, float(value)

    def __getitem__(self, index: int) -> Tuple[datetime, float]:
        return self._dates[index], float(self._values[index])

    def __eq__(self, other) -> bool:
        if self is other:
            return True
        if not isinstance(other, TimeSeries):
            return NotImplemented
        return (
            self._dates == other._dates
            and np.array_equal(self._values, other._values, equal_nan=True)
        )

    def __hash__(self) -> int:
        return hash((self._dates, self._values.tobytes()))

    def __repr__(self) -> str:
        if not self._dates:
            return "TimeSeries([])"
        return (
            f"TimeSeries(n={len(self)}, first={self._dates[0].isoformat()}, "
            f"last={self._dates[-1].isoformat()})"
        )

    def contains_date(self, date: datetime) -> bool:
        if date is None:
            raise InvalidInputError("Given date must not be None")
        return date in self._positions

    def position(self, date: datetime) -> Optional[int]:
        """Index of the given date, or None if the series does not contain it."""
        if date is None:
            raise InvalidInputError("Given date must not be None")
        return self._positions.get(date)

    def value_at(self, date: datetime) -> float:
        """
        Value stored for the given date.

        Raises:
            InvalidInputError: If the date is not part of this series.
        """
        position = self.position(date)
        if position is None:
            raise InvalidInputError(f"Series does not contain date {date.isoformat()}")
        return float(self._values[position])

    def between(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> "TimeSeries":
        """
        Inclusive slice from start to end.

        Args:
            start: First date to include (None = first point).
            end: Last date to include (None = last point).

        Returns:
            New TimeSeries holding the selected points.

        Raises:
            InvalidInputError: If a given boundary is not part of this series.
        """
        from_index = 0 if start is None else self.position(start)
        to_index = len(self) - 1 if end is None else self.position(end)

        if from_index is None:
            raise InvalidInputError(f"Series does not contain start date {start.isoformat()}")
        if to_index is None:
            raise InvalidInputError(f"Series does not contain end date {end.isoformat()}")

        return TimeSeries(self._dates[from_index:to_index + 1], self._values[from_index:to_index + 1])

    def with_values(self, values: Iterable[float]) -> "TimeSeries":
        """Same dates, new values."""
        return TimeSeries(self._dates, values)

    def is_sorted_ascending(self) -> bool:
        """True if every date is strictly after its predecessor (implies uniqueness)."""
        return all(
            later > earlier
            for earlier, later in zip(self._dates, self._dates[1:])
        )

    def has_nan(self) -> bool:
        return bool(np.isnan(self._values).any())

    def validate_dates(self) -> None:
        """Raise if dates are not strictly ascending."""
        if not self.is_sorted_ascending():
            raise InvalidInputError(
                "Given values are not properly sorted or there are non-unique values."
            )

    def validate_values(self) -> None:
        """Raise if the series is empty or holds NaN."""
        if len(self) == 0:
            raise InvalidInputError("Values must not be an empty array")
        if self.has_nan():
            raise InvalidInputError("Given values must not contain NaN.")

    def validate(self) -> None:
        """Full validation: non-empty, no NaN, strictly ascending."""
        self.validate_values()
        self.validate_dates()
