"""
Continuous-time Markov chain estimator.

Rates are estimated from irregularly sampled observations: every pair of
consecutive observations contributes the elapsed time to the dwell time of
its first state, and every change of state contributes one jump. The rate
of i -> j is the number of such jumps divided by the total dwell time in i.
"""

import logging
from typing import Any, Dict, Optional

import numpy as np
from scipy.linalg import expm

from ..core.config import ContinuousTransitionsConfig, TransitionType
from ..core.exceptions import ArgumentError
from .base import BaseMarkovChain


logger = logging.getLogger(__name__)


def generator_matrix(counts: np.ndarray, dwell: np.ndarray) -> np.ndarray:
    """
    Build a generator matrix from jump counts and dwell times.

    Self-transitions are ignored, states with no dwell time get zero rates
    and every row sums to zero.
    """
    jumps = counts.astype(float).copy()
    np.fill_diagonal(jumps, 0.0)

    rates = np.zeros_like(jumps)
    observed = dwell > 0
    rates[observed] = jumps[observed] / dwell[observed, np.newaxis]
    np.fill_diagonal(rates, -rates.sum(axis=1))
    return rates


class ContinuousTimeMarkovChain(BaseMarkovChain):
    """
    Continuous-time Markov chain over the base states.

    Args:
        config: Time unit and the minimum distinguishable time step
    """

    transition_type = TransitionType.CONTINUOUS

    def __init__(self, config: ContinuousTransitionsConfig):
        super().__init__()
        self.config = config
        self._dwell: Optional[np.ndarray] = None

        logger.info("ContinuousTimeMarkovChain initialized with time unit %s, delta time %g",
                    config.time_unit.value, config.delta_time)

    def _estimate(self, states: np.ndarray, timestamps: np.ndarray, counts: np.ndarray) -> None:
        elapsed = np.diff(timestamps)
        if np.any(elapsed < 0):
            raise ArgumentError(
                "timestamps must be non-decreasing",
                argument="timestamps",
                details={'first_decrease': int(np.flatnonzero(elapsed < 0)[0]) + 1}
            )

        elapsed = elapsed / self.config.time_unit.milliseconds
        n_floored = int(np.sum(elapsed < self.config.delta_time))
        if n_floored > 0:
            logger.debug("Raised %d time steps to the delta time floor %g",
                         n_floored, self.config.delta_time)
        elapsed = np.maximum(elapsed, self.config.delta_time)

        dwell = np.zeros(counts.shape[0])
        np.add.at(dwell, states[:-1], elapsed)

        jumps = counts.copy()
        np.fill_diagonal(jumps, 0.0)
        absorbing = np.flatnonzero(jumps.sum(axis=1) == 0).tolist()
        self._log_absorbing(absorbing)

        self._dwell = dwell

    @property
    def dwell_times(self) -> np.ndarray:
        """Total time spent in each base state, in the configured time unit."""
        self._check_fitted("dwell_times")
        return self._dwell.copy()

    def _derive_matrix(self, indicator: Optional[np.ndarray]) -> np.ndarray:
        counts = self._counts
        dwell = self._dwell
        if indicator is not None:
            counts = indicator.T @ counts @ indicator
            dwell = indicator.T @ dwell
        return generator_matrix(counts, dwell)

    def transition_probs(self, horizon: float) -> np.ndarray:
        """Transition probability matrix expm(G * horizon)."""
        if horizon < 0:
            raise ArgumentError("horizon must be non-negative", argument="horizon",
                                actual=horizon)
        return expm(self.matrix * float(horizon))

    def get_state(self) -> Dict[str, Any]:
        state = super().get_state()
        state['dwell'] = self._dwell.copy()
        return state

    def set_state(self, state: Dict[str, Any]) -> None:
        self._dwell = np.asarray(state['dwell'], dtype=float)
        super().set_state(state)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data['timeUnit'] = self.config.time_unit.value
        data['dwellTimes'] = self._dwell.tolist()
        return data
