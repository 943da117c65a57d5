"""
Recursive least-squares linear regression with a forgetting factor.
"""

import logging
from typing import Any, BinaryIO, Dict, Union

import joblib
import numpy as np

from ..core.config import RecLinRegConfig, load_config
from ..core.exceptions import ArgumentError, NumericInstabilityError
from ..core.validation import as_feature_vector


logger = logging.getLogger(__name__)

FORMAT_TAG = "hierarchical_markov.RecLinReg/1"


class RecLinReg:
    """
    Online linear regressor updated one example at a time.

    Keeps the weight vector and the inverse correlation matrix P, which
    starts at I / regFact. A forgetting factor below 1 discounts older
    examples exponentially.

    Args:
        config: RecLinRegConfig instance or its dictionary form
    """

    def __init__(self, config: Union[RecLinRegConfig, Dict[str, Any]]):
        self.config = load_config(RecLinRegConfig, config)
        self._weights = np.zeros(self.config.dim)
        self._inv_corr = np.eye(self.config.dim) / self.config.reg_fact
        self._unstable = False

    @property
    def dim(self) -> int:
        return self.config.dim

    @property
    def weights(self) -> np.ndarray:
        return self._weights.copy()

    @property
    def is_unstable(self) -> bool:
        return self._unstable

    def get_params(self) -> Dict[str, Any]:
        return self.config.to_dict()

    def learn(self, x, y: float) -> 'RecLinReg':
        """
        Update the model with one example.

        Raises:
            ArgumentError: If x has the wrong dimension
            NumericInstabilityError: If the update produces non-finite
                values, or a previous update already did
        """
        if self._unstable:
            raise NumericInstabilityError(
                "model diverged in an earlier update and can no longer learn",
                model_type="RecLinReg"
            )
        x = as_feature_vector(x, self.config.dim, argument="x")
        forget = self.config.forget_fact

        p_x = self._inv_corr @ x
        gain = p_x / (forget + x @ p_x)
        weights = self._weights + gain * (float(y) - self._weights @ x)
        inv_corr = (self._inv_corr - np.outer(gain, p_x)) / forget

        if not (np.all(np.isfinite(weights)) and np.all(np.isfinite(inv_corr))):
            self._unstable = True
            logger.error("RecLinReg update produced non-finite values")
            raise NumericInstabilityError(
                "update produced non-finite values",
                model_type="RecLinReg",
                details={'dim': self.config.dim}
            )

        self._weights = weights
        self._inv_corr = inv_corr
        return self

    def predict(self, x) -> float:
        """Predicted target for one feature vector."""
        x = as_feature_vector(x, self.config.dim, argument="x")
        return float(self._weights @ x)

    def save(self, sink: Union[str, BinaryIO]) -> None:
        joblib.dump({
            'format': FORMAT_TAG,
            'params': self.config.to_dict(),
            'weights': self._weights.copy(),
            'inv_corr': self._inv_corr.copy(),
        }, sink)

    @classmethod
    def load(cls, source: Union[str, BinaryIO]) -> 'RecLinReg':
        try:
            payload = joblib.load(source)
        except Exception as e:
            raise ArgumentError(f"failed to read regressor payload: {e}", argument="source") from e
        if not isinstance(payload, dict) or payload.get('format') != FORMAT_TAG:
            raise ArgumentError("source does not contain a saved RecLinReg",
                                argument="source", expected=FORMAT_TAG)

        model = cls(payload['params'])
        weights = np.asarray(payload['weights'], dtype=float)
        inv_corr = np.asarray(payload['inv_corr'], dtype=float)
        if weights.shape != (model.dim,) or inv_corr.shape != (model.dim, model.dim):
            raise ArgumentError("saved state does not match the model dimension",
                                argument="source", expected=model.dim)
        model._weights = weights
        model._inv_corr = inv_corr
        return model
