"""
Pytest configuration and shared fixtures for the hierarchical Markov tests.
"""

import sys
from pathlib import Path

import matplotlib
import numpy as np
import pytest

matplotlib.use("Agg")

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))


@pytest.fixture
def four_points():
    """Two well separated pairs visited in alternating order."""
    X = np.array([[0.0, 0.0], [10.0, 10.0], [0.1, 0.0], [10.0, 10.1]])
    timestamps = np.array([0, 1000, 2000, 3000])
    return X, timestamps


@pytest.fixture
def blob_sequence():
    """Observations drifting between three blobs with irregular timestamps."""
    rng = np.random.RandomState(42)
    centers = np.array([[0.0, 0.0], [5.0, 0.0], [20.0, 20.0]])
    path = rng.choice(3, size=120, p=[0.4, 0.4, 0.2])
    X = centers[path] + rng.normal(scale=0.3, size=(120, 2))
    timestamps = np.cumsum(rng.randint(500, 5000, size=120))
    return X, timestamps


@pytest.fixture
def kmeans_discrete_config():
    return {
        "transitions": {"type": "discrete"},
        "clustering": {"type": "kmeans", "k": 3, "rndseed": 1},
    }


@pytest.fixture
def dpmeans_continuous_config():
    return {
        "transitions": {"type": "continuous", "timeUnit": "second"},
        "clustering": {"type": "dpmeans", "lambda": 2.0, "rndseed": 3},
    }


@pytest.fixture
def separable_data():
    """Linearly separable two-class data with labels in {-1, 1}."""
    rng = np.random.RandomState(7)
    positives = rng.normal(loc=[3.0, 3.0], scale=0.5, size=(40, 2))
    negatives = rng.normal(loc=[-3.0, -3.0], scale=0.5, size=(40, 2))
    X = np.vstack([positives, negatives])
    y = np.concatenate([np.ones(40), -np.ones(40)])
    return X, y
