"""
Shared machinery for the centroid-based clusterers.

Both clustering strategies partition feature vectors by Euclidean distance
to a set of centroids; this module holds the fit/assign contract and the
helpers for nearest-centroid assignment and centroid recomputation.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
from scipy.spatial.distance import cdist

from ..core.data_models import Cluster, ClusteringResult
from ..core.exceptions import NotFittedError
from ..core.validation import as_instance_matrix


logger = logging.getLogger(__name__)


def nearest_centroids(X: np.ndarray, centroids: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Assign every row of X to its nearest centroid.

    Ties go to the lowest centroid id.

    Returns:
        Tuple of (labels, distances to the assigned centroid)
    """
    distances = cdist(X, centroids, metric='euclidean')
    labels = np.argmin(distances, axis=1)
    return labels, distances[np.arange(X.shape[0]), labels]


def recompute_centroids(X: np.ndarray, labels: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """
    Recompute centroids as the mean of their assigned rows.

    Centroids without assigned rows keep their previous value.
    """
    updated = centroids.copy()
    for cluster_id in np.unique(labels):
        updated[cluster_id] = X[labels == cluster_id].mean(axis=0)
    return updated


class IterationBudget:
    """Cooperative iteration and wall-clock bound checked between passes."""

    def __init__(self, max_iter: int, max_time: Optional[float]):
        self.max_iter = max_iter
        self.max_time = max_time
        self._start = time.time()

    def exhausted(self, n_iter: int) -> bool:
        if n_iter >= self.max_iter:
            return True
        if self.max_time is not None and time.time() - self._start >= self.max_time:
            logger.warning("Clustering stopped after %.2fs wall-clock bound (%d passes)",
                           self.max_time, n_iter)
            return True
        return False


class BaseClusterer(ABC):
    """
    Base class for centroid-based clusterers.

    Subclasses implement ``_fit`` and return the fitted centroids and
    labels; this class handles validation, bookkeeping and assignment.
    """

    def __init__(self, config):
        self.config = config
        self._centroids: Optional[np.ndarray] = None
        self._sizes: Optional[np.ndarray] = None
        self._is_fitted = False

    @abstractmethod
    def _fit(self, X: np.ndarray) -> ClusteringResult:
        """Run the clustering algorithm on validated data."""

    def fit(self, X) -> ClusteringResult:
        """
        Partition the instances into clusters.

        Args:
            X: Input data of shape (n_samples, n_features)

        Returns:
            ClusteringResult with labels, centroids and populations

        Raises:
            ArgumentError: If the input data is invalid
        """
        X = as_instance_matrix(X)
        logger.info("Fitting %s on data shape: %s", self.__class__.__name__, X.shape)

        result = self._fit(X)

        self._centroids = result.centroids.copy()
        self._sizes = np.asarray(result.sizes, dtype=int).copy()
        self._is_fitted = True

        logger.info("%s finished after %d passes (converged=%s) with %d clusters",
                    self.__class__.__name__, result.n_iter, result.converged,
                    result.n_clusters)
        return result

    def assign(self, X) -> np.ndarray:
        """
        Map instances to the id of their nearest cluster.

        Raises:
            NotFittedError: If called before fit
            ArgumentError: If the data dimensionality does not match
        """
        self._check_fitted("assign")
        X = as_instance_matrix(X, n_features=self._centroids.shape[1])
        labels, _ = nearest_centroids(X, self._centroids)
        return labels

    def _check_fitted(self, operation: str) -> None:
        if not self._is_fitted:
            raise NotFittedError(
                f"{self.__class__.__name__} must be fitted before {operation}",
                operation=operation
            )

    @property
    def is_fitted(self) -> bool:
        """Check if the clusterer is fitted."""
        return self._is_fitted

    @property
    def n_clusters(self) -> int:
        self._check_fitted("n_clusters")
        return self._centroids.shape[0]

    @property
    def centroids(self) -> Optional[np.ndarray]:
        """Get cluster centroids if the clusterer is fitted."""
        return self._centroids.copy() if self._is_fitted else None

    @property
    def sizes(self) -> Optional[np.ndarray]:
        return self._sizes.copy() if self._is_fitted else None

    @property
    def clusters(self) -> List[Cluster]:
        self._check_fitted("clusters")
        return [
            Cluster(id=i, centroid=self._centroids[i].copy(), size=int(self._sizes[i]))
            for i in range(self._centroids.shape[0])
        ]

    def get_state(self) -> Dict[str, Any]:
        """Fitted state for persistence."""
        self._check_fitted("get_state")
        return {'centroids': self._centroids.copy(), 'sizes': self._sizes.copy()}

    def set_state(self, state: Dict[str, Any]) -> None:
        """Restore fitted state produced by get_state."""
        self._centroids = np.asarray(state['centroids'], dtype=float)
        self._sizes = np.asarray(state['sizes'], dtype=int)
        self._is_fitted = True
