"""
Shared machinery for the Markov transition estimators.

Both estimators keep the raw transition counts between base states so
that transition models at coarser hierarchy levels can be derived from the
same observations by summing over the member states of each group.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from ..core.config import TransitionType
from ..core.exceptions import ArgumentError, NotFittedError


logger = logging.getLogger(__name__)


def group_indicator(groups: Sequence[Sequence[int]], n_states: int) -> np.ndarray:
    """
    Build the (n_states, n_groups) membership matrix of a partition.

    Raises:
        ArgumentError: If the groups do not partition range(n_states)
    """
    indicator = np.zeros((n_states, len(groups)))
    for g, members in enumerate(groups):
        indicator[list(members), g] = 1.0
    if not np.array_equal(indicator.sum(axis=1), np.ones(n_states)):
        raise ArgumentError(
            "groups must partition the base states",
            argument="groups",
            expected=n_states
        )
    return indicator


def aggregate_probs(probs: np.ndarray, groups: Sequence[Sequence[int]]) -> np.ndarray:
    """Sum a distribution over base states into a distribution over groups."""
    return np.array([probs[list(members)].sum() for members in groups])


def normalize_probs(probs: np.ndarray) -> np.ndarray:
    """Clip floating-point drift below zero and renormalise to sum 1."""
    probs = np.clip(probs, 0.0, None)
    return probs / probs.sum()


class BaseMarkovChain(ABC):
    """
    Base class for transition estimators.

    Subclasses turn the state sequence into sufficient statistics in
    ``_estimate`` and derive a transition matrix from (possibly
    aggregated) statistics in ``_derive_matrix``.
    """

    transition_type: TransitionType = None

    def __init__(self):
        self._counts: Optional[np.ndarray] = None
        self._is_fitted = False

    def estimate(self, states, timestamps, n_states: int) -> np.ndarray:
        """
        Estimate the base-resolution transition model.

        Args:
            states: Base cluster id of each observation, in arrival order
            timestamps: Timestamp of each observation in milliseconds
            n_states: Number of base states

        Returns:
            The estimated transition matrix

        Raises:
            ArgumentError: If states and timestamps are inconsistent
        """
        states = np.asarray(states)
        timestamps = np.asarray(timestamps, dtype=float)

        if states.ndim != 1 or timestamps.ndim != 1:
            raise ArgumentError("states and timestamps must be 1-dimensional",
                                argument="states", actual=(states.shape, timestamps.shape))
        if states.shape[0] != timestamps.shape[0]:
            raise ArgumentError(
                "states and timestamps must have the same length",
                argument="timestamps",
                expected=states.shape[0],
                actual=timestamps.shape[0]
            )
        if states.shape[0] == 0:
            raise ArgumentError("state sequence cannot be empty", argument="states")

        states = states.astype(int)
        if states.min() < 0 or states.max() >= n_states:
            raise ArgumentError("state ids out of range", argument="states",
                                expected=f"[0, {n_states})")

        counts = np.zeros((n_states, n_states))
        np.add.at(counts, (states[:-1], states[1:]), 1.0)

        self._estimate(states, timestamps, counts)
        self._counts = counts
        self._is_fitted = True

        logger.info("Estimated %s transition model over %d states from %d observations",
                    self.transition_type.value, n_states, states.shape[0])
        return self.matrix

    @abstractmethod
    def _estimate(self, states: np.ndarray, timestamps: np.ndarray, counts: np.ndarray) -> None:
        """Estimate additional statistics from a validated state sequence."""

    @abstractmethod
    def _derive_matrix(self, indicator: Optional[np.ndarray]) -> np.ndarray:
        """Derive the transition matrix, aggregated by indicator when given."""

    @abstractmethod
    def transition_probs(self, horizon: float) -> np.ndarray:
        """Matrix of transition probabilities over the given horizon."""

    def _check_fitted(self, operation: str) -> None:
        if not self._is_fitted:
            raise NotFittedError(
                f"{self.__class__.__name__} must be estimated before {operation}",
                operation=operation
            )

    @property
    def is_fitted(self) -> bool:
        return self._is_fitted

    @property
    def n_states(self) -> int:
        self._check_fitted("n_states")
        return self._counts.shape[0]

    @property
    def counts(self) -> np.ndarray:
        self._check_fitted("counts")
        return self._counts.copy()

    @property
    def matrix(self) -> np.ndarray:
        """Base-resolution transition matrix."""
        self._check_fitted("matrix")
        return self._derive_matrix(None)

    def get_model(self, groups: Sequence[Sequence[int]]) -> np.ndarray:
        """
        Transition matrix between groups of base states.

        Args:
            groups: Partition of the base states, one list of ids per group

        Returns:
            Square matrix with one row and column per group
        """
        self._check_fitted("get_model")
        return self._derive_matrix(group_indicator(groups, self.n_states))

    def future_probs(self, start_state: int, horizon: float) -> np.ndarray:
        """
        Distribution over base states after the given horizon.

        Raises:
            ArgumentError: If the start state or horizon is invalid
        """
        self._check_fitted("future_probs")
        if not 0 <= start_state < self.n_states:
            raise ArgumentError("start state out of range", argument="start_state",
                                expected=f"[0, {self.n_states})", actual=start_state)
        if not np.isfinite(horizon) or horizon < 0:
            raise ArgumentError("horizon must be a non-negative number",
                                argument="horizon", actual=horizon)

        return normalize_probs(self.transition_probs(horizon)[start_state])

    def get_state(self) -> Dict[str, Any]:
        self._check_fitted("get_state")
        return {'counts': self._counts.copy()}

    def set_state(self, state: Dict[str, Any]) -> None:
        self._counts = np.asarray(state['counts'], dtype=float)
        self._is_fitted = True

    def to_dict(self) -> Dict[str, Any]:
        self._check_fitted("to_dict")
        return {
            'type': self.transition_type.value,
            'matrix': self.matrix.tolist(),
            'counts': self._counts.tolist(),
        }

    def _log_absorbing(self, absorbing: List[int]) -> None:
        if absorbing:
            logger.warning("%d states have no outgoing transitions and are absorbing: %s",
                           len(absorbing), absorbing)
