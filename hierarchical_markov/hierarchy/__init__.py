"""
Cluster hierarchy for the Hierarchical Markov Chain engine.
"""

from .builder import HierarchyBuilder, weighted_centroid
from .hierarchy import Hierarchy

__all__ = ['Hierarchy', 'HierarchyBuilder', 'weighted_centroid']
