"""
Core data models for the Hierarchical Markov Chain engine.

This module defines the primary data structures shared between the
clusterers, the hierarchy builder and the orchestrator.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import numpy as np


@dataclass
class Cluster:
    """
    A base-resolution state of the model.

    Attributes:
        id: Dense 0-based cluster identifier, stable for the model lifetime
        centroid: Cluster centroid in feature space
        size: Number of fitted instances assigned to the cluster
    """
    id: int
    centroid: np.ndarray
    size: int

    def __post_init__(self):
        """Validate cluster data."""
        if self.id < 0:
            raise ValueError("id must be non-negative")
        if not isinstance(self.centroid, np.ndarray) or self.centroid.ndim != 1:
            raise ValueError("centroid must be a 1-dimensional numpy array")
        if self.size < 0:
            raise ValueError("size must be non-negative")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': int(self.id),
            'centroid': self.centroid.tolist(),
            'size': int(self.size),
        }


@dataclass
class ClusteringResult:
    """
    Result of a clustering fit.

    Attributes:
        labels: Cluster id for each fitted instance
        centroids: Centroid matrix of shape (n_clusters, n_features)
        sizes: Population of each cluster
        n_iter: Number of refinement passes performed
        converged: Whether assignments stopped changing before any cap was hit
    """
    labels: np.ndarray
    centroids: np.ndarray
    sizes: np.ndarray
    n_iter: int
    converged: bool

    def __post_init__(self):
        """Validate clustering result data."""
        if not isinstance(self.labels, np.ndarray):
            raise ValueError("labels must be a numpy array")
        if not isinstance(self.centroids, np.ndarray) or self.centroids.ndim != 2:
            raise ValueError("centroids must be a 2-dimensional numpy array")
        if len(self.sizes) != self.centroids.shape[0]:
            raise ValueError("sizes must have one entry per centroid")

    @property
    def n_clusters(self) -> int:
        return self.centroids.shape[0]


@dataclass
class HierarchyNode:
    """
    Entry in the hierarchy arena.

    Leaves (``children`` is None) are the base clusters and have height 0.
    Internal nodes record a merge of two earlier nodes, addressed by
    their arena index.

    Attributes:
        index: Position of the node in the arena
        height: Scale at which the node was formed
        centroid: Size-weighted centroid of all base clusters below the node
        size: Total population below the node
        children: Arena indices of the merged nodes, None for leaves
        parent: Arena index of the parent node, None for the root
    """
    index: int
    height: float
    centroid: np.ndarray
    size: int
    children: Optional[Tuple[int, int]] = None
    parent: Optional[int] = None

    @property
    def is_leaf(self) -> bool:
        return self.children is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': int(self.index),
            'height': float(self.height),
            'centroid': self.centroid.tolist(),
            'size': int(self.size),
            'children': list(self.children) if self.children is not None else None,
            'parent': self.parent,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'HierarchyNode':
        children = data.get('children')
        return cls(
            index=int(data['id']),
            height=float(data['height']),
            centroid=np.asarray(data['centroid'], dtype=float),
            size=int(data['size']),
            children=tuple(children) if children is not None else None,
            parent=data.get('parent'),
        )


@dataclass
class StateGroup:
    """
    Group of base clusters visible at one hierarchy level.

    Attributes:
        index: Position of the group in level order
        node: Arena index of the hierarchy node the group corresponds to
        clusters: Sorted base cluster ids in the group
        centroid: Size-weighted centroid of the group
    """
    index: int
    node: int
    clusters: List[int] = field(default_factory=list)
    centroid: Optional[np.ndarray] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': int(self.index),
            'node': int(self.node),
            'clusters': [int(c) for c in self.clusters],
            'centroid': self.centroid.tolist() if self.centroid is not None else None,
        }
