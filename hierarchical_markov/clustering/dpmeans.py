"""
DP-means clustering.

DP-means does not need the number of clusters up front: a new cluster is
spawned whenever an instance lies farther than ``lambda`` from every
existing centroid. The distance threshold plays the role that K plays in
K-means.
"""

import logging
from typing import List

import numpy as np
from sklearn.utils import check_random_state

from ..core.config import DPMeansConfig
from ..core.data_models import ClusteringResult
from .base import BaseClusterer, IterationBudget, nearest_centroids, recompute_centroids


logger = logging.getLogger(__name__)


class DPMeansClusterer(BaseClusterer):
    """
    DP-means with optional lower and upper bounds on the cluster count.

    The first pass is online: rows are processed in order and each
    assignment moves its centroid as a running mean. Later passes reassign
    all rows (still spawning for far rows) and recompute centroids as
    means until the assignment is stable or the budget runs out.
    """

    def __init__(self, config: DPMeansConfig):
        super().__init__(config)
        logger.info("DPMeansClusterer initialized with lambda=%.4f, min=%d, max=%s, seed=%d",
                    config.lambda_, config.min_clusts, config.max_clusts, config.rnd_seed)

    def _can_spawn(self, n_clusters: int) -> bool:
        return self.config.max_clusts is None or n_clusters < self.config.max_clusts

    def _online_pass(self, X: np.ndarray, first: int):
        lam = self.config.lambda_
        centroids: List[np.ndarray] = [X[first].copy()]
        counts: List[int] = [0]
        labels = np.empty(X.shape[0], dtype=int)

        for i, x in enumerate(X):
            distances = np.linalg.norm(np.asarray(centroids) - x, axis=1)
            nearest = int(np.argmin(distances))

            if distances[nearest] > lam and self._can_spawn(len(centroids)):
                centroids.append(x.copy())
                counts.append(1)
                labels[i] = len(centroids) - 1
            else:
                counts[nearest] += 1
                centroids[nearest] += (x - centroids[nearest]) / counts[nearest]
                labels[i] = nearest

        return np.asarray(centroids), labels

    def _spawn_far_rows(self, X: np.ndarray, centroids: np.ndarray,
                        distances: np.ndarray) -> np.ndarray:
        """Spawn clusters for rows farther than lambda, in row order."""
        lam = self.config.lambda_
        spawned: List[np.ndarray] = []

        for i in np.flatnonzero(distances > lam):
            if not self._can_spawn(centroids.shape[0] + len(spawned)):
                break
            if spawned and np.min(np.linalg.norm(np.asarray(spawned) - X[i], axis=1)) <= lam:
                continue
            spawned.append(X[i].copy())

        if not spawned:
            return centroids
        return np.vstack([centroids, np.asarray(spawned)])

    def _refine(self, X: np.ndarray, centroids: np.ndarray, labels: np.ndarray,
                budget: IterationBudget, n_iter: int, spawn: bool):
        converged = False
        while not budget.exhausted(n_iter):
            new_labels, distances = nearest_centroids(X, centroids)
            n_spawned = 0
            if spawn:
                grown = self._spawn_far_rows(X, centroids, distances)
                n_spawned = grown.shape[0] - centroids.shape[0]
                if n_spawned > 0:
                    centroids = grown
                    new_labels, _ = nearest_centroids(X, centroids)
            n_iter += 1

            if n_spawned == 0 and np.array_equal(new_labels, labels):
                converged = True
                break

            labels = new_labels
            centroids = recompute_centroids(X, labels, centroids)
            logger.debug("DP-means pass %d done with %d clusters", n_iter, centroids.shape[0])

        return centroids, labels, n_iter, converged

    @staticmethod
    def _drop_empty(centroids: np.ndarray, labels: np.ndarray):
        sizes = np.bincount(labels, minlength=centroids.shape[0])
        keep = np.flatnonzero(sizes > 0)
        if keep.shape[0] == centroids.shape[0]:
            return centroids, labels
        remap = np.full(centroids.shape[0], -1, dtype=int)
        remap[keep] = np.arange(keep.shape[0])
        return centroids[keep], remap[labels]

    def _split_most_dispersed(self, X: np.ndarray, centroids: np.ndarray,
                              labels: np.ndarray):
        """Seed a new centroid at the member farthest from its cluster centre."""
        sq_dist = np.sum((X - centroids[labels]) ** 2, axis=1)
        dispersion = np.bincount(labels, weights=sq_dist, minlength=centroids.shape[0])
        target = int(np.argmax(dispersion))
        if dispersion[target] <= 0.0:
            return None

        members = np.flatnonzero(labels == target)
        farthest = members[int(np.argmax(sq_dist[members]))]
        return np.vstack([centroids, X[farthest][np.newaxis, :]])

    def _fit(self, X: np.ndarray) -> ClusteringResult:
        rng = check_random_state(self.config.rnd_seed)
        budget = IterationBudget(self.config.max_iter, self.config.max_time)

        first = int(rng.randint(X.shape[0]))
        centroids, labels = self._online_pass(X, first)
        n_iter = 1

        centroids, labels, n_iter, converged = self._refine(
            X, centroids, labels, budget, n_iter, spawn=True
        )
        centroids, labels = self._drop_empty(centroids, labels)

        while centroids.shape[0] < self.config.min_clusts:
            grown = self._split_most_dispersed(X, centroids, labels)
            if grown is None:
                logger.warning("Cannot reach minClusts=%d, all clusters are degenerate",
                               self.config.min_clusts)
                break
            n_before = centroids.shape[0]
            logger.info("Forcing split to reach minClusts=%d (currently %d)",
                        self.config.min_clusts, centroids.shape[0])
            labels, _ = nearest_centroids(X, grown)
            centroids = recompute_centroids(X, labels, grown)
            split_budget = IterationBudget(self.config.max_iter, self.config.max_time)
            centroids, labels, _, converged = self._refine(
                X, centroids, labels, split_budget, 0, spawn=False
            )
            centroids, labels = self._drop_empty(centroids, labels)
            if centroids.shape[0] <= n_before:
                logger.warning("Forced split collapsed, stopping at %d clusters",
                               centroids.shape[0])
                break

        sizes = np.bincount(labels, minlength=centroids.shape[0])

        return ClusteringResult(
            labels=labels,
            centroids=centroids,
            sizes=sizes,
            n_iter=n_iter,
            converged=converged
        )
