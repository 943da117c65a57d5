"""
Model orchestration for the Hierarchical Markov Chain engine.
"""

from .hierarchical_markov_chain import HierarchicalMarkovChain

__all__ = ['HierarchicalMarkovChain']
