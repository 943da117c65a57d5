"""
Agglomerative construction of the cluster hierarchy.
"""

import logging

import numpy as np
from scipy.spatial.distance import cdist

from ..core.data_models import HierarchyNode
from ..core.exceptions import ArgumentError
from .hierarchy import Hierarchy


logger = logging.getLogger(__name__)


def weighted_centroid(centroids: np.ndarray, sizes: np.ndarray) -> np.ndarray:
    """Size-weighted mean of centroids, plain mean when every size is zero."""
    total = sizes.sum()
    if total == 0:
        return centroids.mean(axis=0)
    return (centroids * sizes[:, np.newaxis]).sum(axis=0) / total


class HierarchyBuilder:
    """
    Centroid-linkage agglomeration of the base clusters.

    At every step the two current groups whose centroids are closest are
    merged. Among equally close pairs the one with the lowest lower node
    index wins, then the lowest higher index. Merge heights are the
    merge distances, raised just above the tallest child when needed so
    that heights strictly increase towards the root.
    """

    def build(self, centroids, sizes) -> Hierarchy:
        """
        Build the hierarchy over the base clusters.

        Args:
            centroids: Base cluster centroids of shape (K, n_features)
            sizes: Base cluster populations of shape (K,)

        Returns:
            Hierarchy with K leaves and K-1 merges

        Raises:
            ArgumentError: If centroids and sizes are inconsistent
        """
        centroids = np.asarray(centroids, dtype=float)
        sizes = np.asarray(sizes, dtype=float)
        if centroids.ndim != 2 or centroids.shape[0] == 0:
            raise ArgumentError("centroids must be a non-empty 2-D array",
                                argument="centroids", actual=centroids.shape)
        if sizes.shape != (centroids.shape[0],):
            raise ArgumentError("sizes must have one entry per centroid",
                                argument="sizes", expected=centroids.shape[0],
                                actual=sizes.shape)

        n_leaves = centroids.shape[0]
        nodes = [
            HierarchyNode(index=i, height=0.0, centroid=centroids[i].copy(), size=int(sizes[i]))
            for i in range(n_leaves)
        ]
        active = list(range(n_leaves))

        while len(active) > 1:
            points = np.vstack([nodes[i].centroid for i in active])
            distances = cdist(points, points)
            # only pairs (a, b) with a < b; argmin scans row-major
            distances[np.tril_indices(len(active))] = np.inf
            a, b = np.unravel_index(np.argmin(distances), distances.shape)
            left, right = active[a], active[b]
            distance = float(distances[a, b])

            height = distance
            tallest = max(nodes[left].height, nodes[right].height)
            if height <= tallest:
                height = float(np.nextafter(tallest, np.inf))

            index = len(nodes)
            members = np.array([nodes[left].size, nodes[right].size], dtype=float)
            nodes.append(HierarchyNode(
                index=index,
                height=height,
                centroid=weighted_centroid(
                    np.vstack([nodes[left].centroid, nodes[right].centroid]), members),
                size=nodes[left].size + nodes[right].size,
                children=(left, right),
            ))
            nodes[left].parent = index
            nodes[right].parent = index

            active = [i for i in active if i not in (left, right)] + [index]
            logger.debug("Merged nodes %d and %d into %d at height %.6g",
                         left, right, index, height)

        logger.info("Built hierarchy over %d clusters with root height %.6g",
                    n_leaves, nodes[-1].height)
        return Hierarchy(nodes, n_leaves)
