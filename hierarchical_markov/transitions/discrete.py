"""
Discrete-time Markov chain estimator.
"""

import logging
from typing import Optional

import numpy as np

from ..core.config import TransitionType
from ..core.exceptions import ArgumentError
from .base import BaseMarkovChain


logger = logging.getLogger(__name__)


def stochastic_matrix(counts: np.ndarray) -> np.ndarray:
    """
    Row-normalise a transition count matrix.

    Rows without outgoing observations become absorbing self-loops.
    """
    row_sums = counts.sum(axis=1)
    matrix = np.zeros_like(counts, dtype=float)
    observed = row_sums > 0
    matrix[observed] = counts[observed] / row_sums[observed, np.newaxis]
    unobserved = np.flatnonzero(~observed)
    matrix[unobserved, unobserved] = 1.0
    return matrix


class DiscreteTimeMarkovChain(BaseMarkovChain):
    """
    Discrete-time Markov chain over the base states.

    Q[i][j] is the fraction of observations in state i whose successor is
    state j. Aggregating to groups sums the counts of the member states,
    which weights each member row by how often that state was observed.
    """

    transition_type = TransitionType.DISCRETE

    def __init__(self, config=None):
        super().__init__()
        self.config = config

    def _estimate(self, states: np.ndarray, timestamps: np.ndarray, counts: np.ndarray) -> None:
        absorbing = np.flatnonzero(counts.sum(axis=1) == 0).tolist()
        self._log_absorbing(absorbing)

    def _derive_matrix(self, indicator: Optional[np.ndarray]) -> np.ndarray:
        counts = self._counts
        if indicator is not None:
            counts = indicator.T @ counts @ indicator
        return stochastic_matrix(counts)

    def transition_probs(self, horizon: float) -> np.ndarray:
        """
        Transition probabilities after ``horizon`` steps.

        Raises:
            ArgumentError: If horizon is not a non-negative whole number
        """
        if horizon < 0 or float(horizon) != np.floor(horizon):
            raise ArgumentError(
                "discrete-time horizon must be a non-negative whole number of steps",
                argument="horizon",
                actual=horizon
            )
        return np.linalg.matrix_power(self.matrix, int(horizon))
