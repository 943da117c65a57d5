"""
Reporting for fitted hierarchical Markov chains.
"""

from .hierarchy_reporter import HierarchyReporter

__all__ = ['HierarchyReporter']
