"""
Clustering components for the Hierarchical Markov Chain engine.

This module contains the centroid-based clusterers that produce the
base-resolution states of the model.
"""

from ..core.config import DPMeansConfig, KMeansConfig
from .base import BaseClusterer
from .kmeans import KMeansClusterer
from .dpmeans import DPMeansClusterer


def build_clusterer(config) -> BaseClusterer:
    """Create the clusterer matching a validated clustering configuration."""
    if isinstance(config, KMeansConfig):
        return KMeansClusterer(config)
    if isinstance(config, DPMeansConfig):
        return DPMeansClusterer(config)
    raise TypeError(f"Unsupported clustering configuration: {type(config).__name__}")


__all__ = ['BaseClusterer', 'KMeansClusterer', 'DPMeansClusterer', 'build_clusterer']
