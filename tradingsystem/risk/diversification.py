"""
Diversification multiplier.

Combining imperfectly correlated forecasts shrinks their average magnitude.
The multiplier scales the combination back up:

    value = 1 / sqrt(w' C w)

with w the component weights and C their correlation matrix.
"""

import math
from typing import Sequence

import numpy as np

from ..core.stats import pearson_correlation_matrix
from ..errors import InvalidInputError
from ..observability.logger import get_logger

logger = get_logger(__name__)

WEIGHT_SUM_TOLERANCE = 1e-9


class DiversificationMultiplier:
    """Multiplier for a set of weighted, correlated components."""

    def __init__(self, weights: Sequence[float], correlations: Sequence[Sequence[float]]):
        """
        Args:
            weights: Non-negative component weights summing to 1.
            correlations: Square, symmetric correlation matrix with one
                row per weight, unit diagonal and entries in [-1, 1].
        """
        weights = np.array(weights, dtype=np.float64)
        correlations = np.array(correlations, dtype=np.float64)

        self._validate_weights(weights)
        try:
            self._validate_correlations(correlations, len(weights))
        except InvalidInputError as e:
            raise InvalidInputError(
                "Given correlations do not meet specifications.", field="correlations"
            ) from e

        weights.setflags(write=False)
        correlations.setflags(write=False)
        self._weights = weights
        self._correlations = correlations
        self._value = self._calculate_value()

    @classmethod
    def from_rules(cls, rules: Sequence) -> "DiversificationMultiplier":
        """
        Equally weighted multiplier over the given rules, correlated by their
        forecasts within the reference window.
        """
        if not rules:
            raise InvalidInputError("Rules must not be an empty array", field="rules")

        weights = np.full(len(rules), 1.0 / len(rules))
        rows = [rule.extract_relevant_forecasts().values for rule in rules]
        try:
            correlations = pearson_correlation_matrix(rows)
        except InvalidInputError as e:
            raise InvalidInputError(
                "Correlations of the given rules cannot be calculated.", field="rules"
            ) from e

        multiplier = cls(weights, correlations)
        logger.debug(
            f"Diversification multiplier: {multiplier.value:.6f}",
            rules=len(rules)
        )
        return multiplier

    @property
    def value(self) -> float:
        return self._value

    @property
    def weights(self) -> np.ndarray:
        return self._weights

    @property
    def correlations(self) -> np.ndarray:
        return self._correlations

    def _calculate_value(self) -> float:
        weighted_sum = float(self._weights @ self._correlations @ self._weights)
        if weighted_sum <= 0:
            raise InvalidInputError(
                "Weighted sum of correlations must be positive to calculate a multiplier. "
                f"Sum: {weighted_sum}."
            )
        return 1.0 / math.sqrt(weighted_sum)

    @staticmethod
    def _validate_weights(weights: np.ndarray) -> None:
        if weights.ndim != 1 or weights.size == 0:
            raise InvalidInputError("Weights must be a non-empty array", field="weights")
        if np.isnan(weights).any():
            raise InvalidInputError("Weights must not contain NaN", field="weights")
        if (weights < 0).any():
            raise InvalidInputError("Weights must not be negative", field="weights")
        if abs(weights.sum() - 1.0) > WEIGHT_SUM_TOLERANCE:
            raise InvalidInputError(
                f"Weights must sum up to 1 but sum up to {weights.sum()}", field="weights"
            )

    @staticmethod
    def _validate_correlations(correlations: np.ndarray, size: int) -> None:
        if correlations.shape != (size, size):
            raise InvalidInputError(
                f"Correlation matrix must be of shape ({size}, {size}) "
                f"but is of shape {correlations.shape}"
            )
        if np.isnan(correlations).any():
            raise InvalidInputError("Correlations must not contain NaN")
        if (correlations < -1).any() or (correlations > 1).any():
            raise InvalidInputError("Correlations must be within [-1, 1]")
        if not np.allclose(np.diag(correlations), 1.0):
            raise InvalidInputError("Correlations of a component with itself must be 1")
        if not np.allclose(correlations, correlations.T):
            raise InvalidInputError("Correlation matrix must be symmetric")

    def __repr__(self) -> str:
        return f"DiversificationMultiplier(value={self._value:.6f}, components={len(self._weights)})"
