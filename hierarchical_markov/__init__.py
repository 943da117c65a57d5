"""
Hierarchical Markov Chain engine

Clusters timestamped state observations, estimates a discrete- or
continuous-time Markov chain between the clusters and answers predictive
queries at any level of a merge hierarchy built over them.
"""

__version__ = "1.0.0"
__author__ = "Hierarchical Markov Chain Team"

from .core.config import HMCConfig, SVCConfig, RecLinRegConfig
from .core.exceptions import (
    MarkovModelError,
    ConfigurationError,
    ArgumentError,
    NotFittedError,
    NumericInstabilityError,
)
from .pipeline.hierarchical_markov_chain import HierarchicalMarkovChain
from .models import LinearSVC, RecLinReg

__all__ = [
    "HierarchicalMarkovChain",
    "LinearSVC",
    "RecLinReg",
    "HMCConfig",
    "SVCConfig",
    "RecLinRegConfig",
    "MarkovModelError",
    "ConfigurationError",
    "ArgumentError",
    "NotFittedError",
    "NumericInstabilityError",
]
