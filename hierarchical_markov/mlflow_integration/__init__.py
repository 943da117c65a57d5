"""
MLflow integration components for the Hierarchical Markov Chain engine.

This module provides the MLflow-aware component logger and local plus
MLflow artifact storage for fitted models and report figures.
"""

from .logging_utils import PipelineLogger, setup_pipeline_logging
from .artifact_manager import ArtifactManager

__all__ = [
    "ArtifactManager",
    "PipelineLogger",
    "setup_pipeline_logging",
]
