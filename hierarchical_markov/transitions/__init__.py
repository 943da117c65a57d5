"""
Transition estimators for the Hierarchical Markov Chain engine.

This module contains the discrete- and continuous-time Markov chain
estimators built over the base clusters.
"""

from ..core.config import ContinuousTransitionsConfig, DiscreteTransitionsConfig
from .base import BaseMarkovChain, aggregate_probs, group_indicator
from .discrete import DiscreteTimeMarkovChain
from .continuous import ContinuousTimeMarkovChain


def build_markov_chain(config) -> BaseMarkovChain:
    """Create the estimator matching a validated transitions configuration."""
    if isinstance(config, ContinuousTransitionsConfig):
        return ContinuousTimeMarkovChain(config)
    if isinstance(config, DiscreteTransitionsConfig):
        return DiscreteTimeMarkovChain(config)
    raise TypeError(f"Unsupported transitions configuration: {type(config).__name__}")


__all__ = [
    'BaseMarkovChain',
    'DiscreteTimeMarkovChain',
    'ContinuousTimeMarkovChain',
    'aggregate_probs',
    'group_indicator',
    'build_markov_chain',
]
