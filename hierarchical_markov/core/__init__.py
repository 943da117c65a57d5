"""
Core components for the Hierarchical Markov Chain engine.

This module contains the fundamental data models, configuration classes,
and exception definitions used throughout the package.
"""

from .data_models import Cluster, ClusteringResult, HierarchyNode, StateGroup
from .config import (
    HMCConfig,
    SVCConfig,
    RecLinRegConfig,
    KMeansConfig,
    DPMeansConfig,
    ContinuousTransitionsConfig,
    DiscreteTransitionsConfig,
    TimeUnit,
    TransitionType,
    ClusteringType,
    SVCAlgorithm,
    load_config,
)
from .exceptions import (
    MarkovModelError,
    ConfigurationError,
    ArgumentError,
    NotFittedError,
    NumericInstabilityError,
    MLflowIntegrationError,
)

__all__ = [
    "Cluster",
    "ClusteringResult",
    "HierarchyNode",
    "StateGroup",
    "HMCConfig",
    "SVCConfig",
    "RecLinRegConfig",
    "KMeansConfig",
    "DPMeansConfig",
    "ContinuousTransitionsConfig",
    "DiscreteTransitionsConfig",
    "TimeUnit",
    "TransitionType",
    "ClusteringType",
    "SVCAlgorithm",
    "load_config",
    "MarkovModelError",
    "ConfigurationError",
    "ArgumentError",
    "NotFittedError",
    "NumericInstabilityError",
    "MLflowIntegrationError",
]
