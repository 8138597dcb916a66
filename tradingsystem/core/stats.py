"""
Statistical primitives used by rules, base values and the subsystem.

Plain functions over floats and numpy arrays. Degenerate numeric cases
(division by a zero price or a zero standard deviation) yield NaN rather
than raising; structural problems raise InvalidInputError.
"""

import math
from typing import Sequence

import numpy as np

from ..errors import InvalidInputError


def validate_positive(value: float) -> None:
    """Raise unless value is a positive, non-NaN number."""
    if value is None or math.isnan(value):
        raise InvalidInputError("Value must not be NaN")
    if value <= 0:
        raise InvalidInputError("Value must be a positive decimal")


def calculate_return(former_value: float, latter_value: float) -> float:
    """
    Relative change from former_value to latter_value.

    Returns:
        latter/former - 1, or NaN if former_value is 0.
    """
    if former_value == 0:
        return math.nan
    return latter_value / former_value - 1.0


def adjust_for_standard_deviation(value: float, standard_deviation: float) -> float:
    """Divide value by standard_deviation; NaN if the deviation is 0."""
    if standard_deviation == 0:
        return math.nan
    return value / standard_deviation


def calculate_average(values: Sequence[float]) -> float:
    """Arithmetic mean of a non-empty sequence."""
    if values is None:
        raise InvalidInputError("Given array must not be None")
    values = np.asarray(values, dtype=np.float64)
    if values.size == 0:
        raise InvalidInputError("Given array of values must not be empty")
    return float(values.mean())


def standard_deviation(values: Sequence[float]) -> float:
    """Bias-corrected sample standard deviation (n - 1 in the denominator)."""
    values = np.asarray(values, dtype=np.float64)
    if values.size < 2:
        return math.nan if values.size == 0 else 0.0
    return float(values.std(ddof=1))


def calculate_forecast_scalar(values: Sequence[float], base_scale: float) -> float:
    """
    Scalar that brings the mean absolute value of values to base_scale.

    Args:
        values: Unscaled forecast values.
        base_scale: Target mean absolute forecast.

    Returns:
        base_scale / mean(|values|). 0.0 if that mean is exactly 0; NaN if
        values hold NaN.
    """
    if values is None:
        raise InvalidInputError("Given array must not be None")
    values = np.asarray(values, dtype=np.float64)
    if values.size == 0:
        raise InvalidInputError("Given array of values must not be empty")

    try:
        validate_positive(base_scale)
    except InvalidInputError as e:
        raise InvalidInputError("Given base scale does not meet specifications.") from e

    average_of_absolutes = float(np.abs(values).mean())
    if average_of_absolutes == 0:
        return 0.0
    return base_scale / average_of_absolutes


def pearson_correlation_matrix(rows: Sequence[Sequence[float]]) -> np.ndarray:
    """
    Pearson correlation matrix of the given rows.

    Args:
        rows: One row per variable, all of equal length.

    Returns:
        Square matrix with one row/column per input row. A single row
        yields [[1.0]].
    """
    matrix = np.asarray(rows, dtype=np.float64)
    if matrix.ndim != 2 or matrix.shape[0] == 0:
        raise InvalidInputError("Correlations need a non-empty two-dimensional array of rows")

    if matrix.shape[0] == 1:
        return np.ones((1, 1))

    if matrix.shape[1] < 2:
        raise InvalidInputError("Correlations need at least two observations per row")

    for index, row in enumerate(matrix):
        if np.isnan(row).any():
            raise InvalidInputError(f"Row at position {index} contains NaN.")
        if np.all(row == row[0]):
            raise InvalidInputError(
                "Correlations cannot be calculated caused by all identical "
                f"values in row at position {index}."
            )

    correlations = np.corrcoef(matrix)
    # corrcoef can overshoot the unit interval by rounding
    np.fill_diagonal(correlations, 1.0)
    return np.clip(correlations, -1.0, 1.0)


def calculate_correlation_of_rows(rows: Sequence[Sequence[float]]) -> np.ndarray:
    """
    Pairwise correlations of the given rows, lower triangle in row-major order.

    For rows A, B, C the result is [AB, AC, BC].
    """
    correlations = pearson_correlation_matrix(rows)
    n = correlations.shape[0]
    return np.array(
        [correlations[i, j] for i in range(n) for j in range(i + 1, n)],
        dtype=np.float64
    )


def validate_correlations(correlations: Sequence[float]) -> None:
    """Raise unless all correlations are finite and within [-1, 1]."""
    correlations = np.asarray(correlations, dtype=np.float64)
    if correlations.size == 0:
        raise InvalidInputError("Given correlations must not be empty")
    if np.isnan(correlations).any():
        raise InvalidInputError("Given correlations must not contain NaN")
    if (correlations < -1).any() or (correlations > 1).any():
        raise InvalidInputError("Given correlations must be within [-1, 1]")


def calculate_weights_for_three_correlations(correlations: Sequence[float]) -> np.ndarray:
    """
    Weights for three rules from their pairwise correlations [AB, AC, BC].

    Rules that correlate less with the others receive more weight. This
    approximates the handcrafted weighting table for three assets.

    Returns:
        Array of three weights summing to 1.
    """
    correlations = np.array(correlations, dtype=np.float64)
    if correlations.shape != (3,):
        raise InvalidInputError("Exactly three correlations are needed")
    try:
        validate_correlations(correlations)
    except InvalidInputError as e:
        raise InvalidInputError("Given correlations do not meet specifications.") from e

    if correlations[0] == correlations[1] == correlations[2]:
        return np.full(3, 1.0 / 3.0)

    correlations = np.maximum(correlations, 0.0)

    ab, ac, bc = correlations
    average_correlations = np.array([
        (ab + ac) / 2,
        (ab + bc) / 2,
        (ac + bc) / 2,
    ])

    inverted = 1.0 - average_correlations
    return inverted / inverted.sum()


def get_position_from_forecast(forecast: float) -> str:
    """Human-readable position for a forecast."""
    if forecast > 0:
        return "Long"
    if forecast < 0:
        return "Short"
    return "Hold"
