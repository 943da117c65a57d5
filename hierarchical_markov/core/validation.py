"""
Input validation helpers shared by the models.
"""

from typing import Any, Optional

import numpy as np
from sklearn.utils import check_array

from .exceptions import ArgumentError


def as_instance_matrix(X: Any, argument: str = "instances",
                       n_features: Optional[int] = None) -> np.ndarray:
    """
    Convert and validate a 2-D instance matrix.

    Args:
        X: Array-like of shape (n_samples, n_features)
        argument: Argument name reported in errors
        n_features: Expected number of columns, if already known

    Returns:
        Float array of shape (n_samples, n_features)

    Raises:
        ArgumentError: If the data is empty, not 2-dimensional or non-finite
    """
    try:
        X = np.asarray(X, dtype=float)
    except (TypeError, ValueError) as e:
        raise ArgumentError(f"{argument} must be numeric", argument=argument) from e

    if X.ndim != 2:
        raise ArgumentError(
            f"{argument} must be 2-dimensional",
            argument=argument,
            expected="(n_samples, n_features)",
            actual=X.shape
        )
    if X.shape[0] == 0 or X.shape[1] == 0:
        raise ArgumentError(f"{argument} cannot be empty", argument=argument, actual=X.shape)
    if n_features is not None and X.shape[1] != n_features:
        raise ArgumentError(
            f"{argument} has the wrong dimensionality",
            argument=argument,
            expected=n_features,
            actual=X.shape[1]
        )
    if not np.all(np.isfinite(X)):
        raise ArgumentError(f"{argument} contains NaN or infinite values", argument=argument)

    return X


def as_feature_vector(x: Any, dim: int, argument: str = "vector") -> np.ndarray:
    """Convert and validate a single feature vector of known dimension."""
    try:
        x = np.asarray(x, dtype=float)
    except (TypeError, ValueError) as e:
        raise ArgumentError(f"{argument} must be numeric", argument=argument) from e

    if x.ndim != 1 or x.shape[0] != dim:
        raise ArgumentError(
            f"{argument} dimension does not match the model dimension",
            argument=argument,
            expected=dim,
            actual=x.shape
        )
    return x


def as_sparse_or_dense_matrix(X: Any, argument: str = "instances",
                              n_features: Optional[int] = None):
    """
    Validate a 2-D instance matrix that may be a scipy sparse matrix.

    Sparse input is converted to CSR, dense input to a float array.

    Raises:
        ArgumentError: If the data is empty, not 2-dimensional, non-numeric
            or non-finite, or has the wrong number of columns
    """
    try:
        X = check_array(X, accept_sparse="csr", dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise ArgumentError(f"invalid {argument}: {e}", argument=argument) from e

    if n_features is not None and X.shape[1] != n_features:
        raise ArgumentError(
            f"{argument} has the wrong dimensionality",
            argument=argument,
            expected=n_features,
            actual=X.shape[1]
        )
    return X
