"""
K-means clustering with a fixed number of clusters.
"""

import logging

import numpy as np
from sklearn.utils import check_random_state

from ..core.config import KMeansConfig
from ..core.data_models import ClusteringResult
from .base import BaseClusterer, IterationBudget, nearest_centroids, recompute_centroids


logger = logging.getLogger(__name__)


class KMeansClusterer(BaseClusterer):
    """
    Lloyd's K-means over Euclidean distance.

    Initial centroids are a seeded random selection of input rows. When K
    exceeds the number of rows the surplus centroids duplicate existing
    rows; the duplicates end up empty and keep their centroid frozen, so
    cluster ids 0..K-1 always exist.
    """

    def __init__(self, config: KMeansConfig):
        super().__init__(config)
        logger.info("KMeansClusterer initialized with k=%d, seed=%d",
                    config.k, config.rnd_seed)

    def _initial_centroids(self, X: np.ndarray) -> np.ndarray:
        rng = check_random_state(self.config.rnd_seed)
        n_samples = X.shape[0]
        k = self.config.k

        if k <= n_samples:
            idx = rng.choice(n_samples, size=k, replace=False)
        else:
            logger.warning("k=%d exceeds the %d available instances, some clusters will be empty",
                           k, n_samples)
            idx = np.concatenate([
                rng.permutation(n_samples),
                rng.choice(n_samples, size=k - n_samples, replace=True)
            ])
        return X[idx].copy()

    def _fit(self, X: np.ndarray) -> ClusteringResult:
        centroids = self._initial_centroids(X)
        budget = IterationBudget(self.config.max_iter, self.config.max_time)

        labels = None
        converged = False
        n_iter = 0
        while True:
            new_labels, _ = nearest_centroids(X, centroids)
            n_iter += 1

            if labels is not None and np.array_equal(new_labels, labels):
                converged = True
                break

            labels = new_labels
            centroids = recompute_centroids(X, labels, centroids)
            logger.debug("K-means pass %d done", n_iter)

            # labels stay the ones the centroids were just averaged from
            if budget.exhausted(n_iter):
                break

        sizes = np.bincount(labels, minlength=self.config.k)
        n_empty = int(np.sum(sizes == 0))
        if n_empty > 0:
            logger.warning("K-means left %d empty clusters with frozen centroids", n_empty)

        return ClusteringResult(
            labels=labels,
            centroids=centroids,
            sizes=sizes,
            n_iter=n_iter,
            converged=converged
        )
