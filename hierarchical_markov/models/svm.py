"""
Linear support vector classifier.

Two solvers are available. ``SGD`` runs mini-batch Pegasos on the
L2-regularised hinge loss with an unregularised bias. ``PR_LOQO`` solves
the quadratic program through scikit-learn's libsvm wrapper with a
linear kernel. Both produce a single weight vector and bias; the
prediction is the signed margin ``w.x + b``. Training and prediction
accept dense arrays and scipy sparse matrices.
"""

import logging
import time
from typing import Any, BinaryIO, Dict, Optional, Tuple, Union

import joblib
import numpy as np
import scipy.sparse as sp
from sklearn.svm import SVC
from sklearn.utils import check_random_state

from ..core.config import SVCAlgorithm, SVCConfig, load_config
from ..core.exceptions import ArgumentError, NotFittedError
from ..core.validation import as_sparse_or_dense_matrix


logger = logging.getLogger(__name__)

FORMAT_TAG = "hierarchical_markov.LinearSVC/1"

# batch sampling is seeded so that repeated fits give identical models
_BATCH_SEED = 1


class LinearSVC:
    """
    Binary linear classifier trained with a configurable solver.

    Labels greater than zero form the positive class, everything else the
    negative class.

    Args:
        config: SVCConfig instance or its dictionary form

    Raises:
        ConfigurationError: If the configuration is invalid
    """

    def __init__(self, config: Union[SVCConfig, Dict[str, Any], None] = None):
        self.config = load_config(SVCConfig, config if config is not None else {})
        self._weights: Optional[np.ndarray] = None
        self._bias = 0.0
        self._n_iter: Optional[int] = None

    @property
    def is_fitted(self) -> bool:
        return self._weights is not None

    @property
    def weights(self) -> np.ndarray:
        if self._weights is None:
            raise NotFittedError("LinearSVC must be fitted before weights", operation="weights")
        return self._weights.copy()

    @property
    def bias(self) -> float:
        if self._weights is None:
            raise NotFittedError("LinearSVC must be fitted before bias", operation="bias")
        return self._bias

    @property
    def n_iter(self) -> Optional[int]:
        """Solver iterations run by the last ``fit``, None before fitting."""
        return self._n_iter

    def get_params(self) -> Dict[str, Any]:
        """Current parameters in camelCase form."""
        return self.config.to_dict()

    def set_params(self, params: Dict[str, Any]) -> 'LinearSVC':
        """
        Update a subset of the parameters.

        The fitted weights are kept; they are replaced on the next ``fit``.
        """
        merged = self.config.to_dict()
        merged.update(params)
        self.config = load_config(SVCConfig, merged)
        return self

    def fit(self, X, y) -> 'LinearSVC':
        """
        Train the classifier.

        Args:
            X: Training instances of shape (n_samples, n_features), dense or sparse
            y: Labels, positive class where y > 0

        Returns:
            self

        Raises:
            ArgumentError: If X and y are inconsistent
        """
        self._weights = None
        self._bias = 0.0
        self._n_iter = None

        X = as_sparse_or_dense_matrix(X)
        y = np.asarray(y, dtype=float)
        if y.ndim != 1 or y.shape[0] != X.shape[0]:
            raise ArgumentError("labels must have one entry per instance", argument="y",
                                expected=X.shape[0], actual=y.shape)
        signs = np.where(y > 0, 1.0, -1.0)

        logger.info("Training LinearSVC (%s) on data shape: %s",
                    self.config.algorithm.value, X.shape)
        if self.config.algorithm == SVCAlgorithm.SGD:
            weights, bias, n_iter = self._solve_sgd(X, signs)
        else:
            weights, bias, n_iter = self._solve_qp(X, signs)

        self._weights = weights
        self._bias = bias
        self._n_iter = n_iter
        return self

    def _objective(self, X, signs: np.ndarray, costs: np.ndarray,
                   weights: np.ndarray, bias: float, lam: float) -> float:
        hinge = np.maximum(0.0, 1.0 - signs * (X @ weights + bias))
        return 0.5 * lam * float(weights @ weights) + float(np.mean(costs * hinge))

    def _solve_sgd(self, X, signs: np.ndarray) -> Tuple[np.ndarray, float, int]:
        n_samples, n_features = X.shape
        lam = 1.0 / (self.config.c * n_samples)
        costs = np.where(signs > 0, self.config.j, 1.0)
        batch_size = min(self.config.batch_size, n_samples)
        radius = 1.0 / np.sqrt(lam)
        random_state = check_random_state(_BATCH_SEED)
        log_level = logging.INFO if self.config.verbose else logging.DEBUG

        weights = np.zeros(n_features)
        bias = 0.0
        previous = self._objective(X, signs, costs, weights, bias, lam)
        start = time.time()
        stop_reason = "maxIterations"

        for t in range(1, self.config.max_iterations + 1):
            batch = random_state.randint(0, n_samples, size=batch_size)
            X_b, s_b, c_b = X[batch], signs[batch], costs[batch]
            violated = s_b * (X_b @ weights + bias) < 1.0
            step = 1.0 / (lam * t)

            coef = c_b * s_b * violated
            grad_w = lam * weights - (X_b.T @ coef) / batch_size
            grad_b = -coef.sum() / batch_size

            weights = weights - step * grad_w
            bias -= step * grad_b
            norm = np.linalg.norm(weights)
            if norm > radius:
                weights *= radius / norm

            objective = self._objective(X, signs, costs, weights, bias, lam)
            logger.log(log_level, "SGD iteration %d: objective %.8f", t, objective)
            if abs(previous - objective) < self.config.min_diff:
                stop_reason = "minDiff"
                break
            previous = objective
            if time.time() - start >= self.config.max_time:
                stop_reason = "maxTime"
                break

        logger.info("SGD stopped after %d iterations (%s), objective %.6f",
                    t, stop_reason, objective)
        return weights, float(bias), t

    def _solve_qp(self, X, signs: np.ndarray) -> Tuple[np.ndarray, float, int]:
        if np.unique(signs).shape[0] < 2:
            raise ArgumentError("PR_LOQO needs both positive and negative examples",
                                argument="y")

        model = SVC(
            kernel="linear",
            C=self.config.c,
            class_weight={1.0: self.config.j, -1.0: 1.0},
            max_iter=-1,
            verbose=self.config.verbose,
        )
        model.fit(X, signs)
        logger.info("QP solver finished with %d support vectors", int(model.n_support_.sum()))

        # coef_ is sparse when the model was fitted on sparse input
        coef = model.coef_.toarray() if sp.issparse(model.coef_) else model.coef_
        # classes_ is sorted, so the decision function is positive for +1
        return (np.asarray(coef[0], dtype=float).copy(), float(model.intercept_[0]),
                int(np.sum(model.n_iter_)))

    def predict(self, x) -> Union[float, np.ndarray]:
        """
        Signed margin of one instance, or of each row of a matrix.

        A sparse input is always a matrix, so a single sparse row gives an
        array of length one.

        Raises:
            NotFittedError: If called before fit
            ArgumentError: If the input is invalid or the dimension does not match
        """
        if self._weights is None:
            raise NotFittedError("LinearSVC must be fitted before predict", operation="predict")

        if not sp.issparse(x) and np.ndim(x) == 1:
            X = as_sparse_or_dense_matrix([x], argument="x", n_features=self._weights.shape[0])
            return float(X[0] @ self._weights + self._bias)

        X = as_sparse_or_dense_matrix(x, argument="x", n_features=self._weights.shape[0])
        return np.asarray(X @ self._weights + self._bias, dtype=float)

    def save(self, sink: Union[str, BinaryIO]) -> None:
        payload: Dict[str, Any] = {
            'format': FORMAT_TAG,
            'params': self.config.to_dict(),
            'fitted': self.is_fitted,
        }
        if self.is_fitted:
            payload['weights'] = self._weights.copy()
            payload['bias'] = self._bias
        joblib.dump(payload, sink)

    @classmethod
    def load(cls, source: Union[str, BinaryIO]) -> 'LinearSVC':
        """
        Restore a classifier written by ``save``.

        Raises:
            ArgumentError: If the payload is not a saved classifier
        """
        try:
            payload = joblib.load(source)
        except Exception as e:
            raise ArgumentError(f"failed to read classifier payload: {e}", argument="source") from e
        if not isinstance(payload, dict) or payload.get('format') != FORMAT_TAG:
            raise ArgumentError("source does not contain a saved LinearSVC",
                                argument="source", expected=FORMAT_TAG)

        model = cls(payload.get('params'))
        if payload.get('fitted'):
            model._weights = np.asarray(payload['weights'], dtype=float)
            model._bias = float(payload['bias'])
        return model
