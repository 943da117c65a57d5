"""
Tests for the linear classifier and the recursive linear regressor.
"""

import io

import numpy as np
import pytest
import scipy.sparse as sp

from hierarchical_markov.core.exceptions import (
    ArgumentError,
    ConfigurationError,
    NotFittedError,
    NumericInstabilityError,
)
from hierarchical_markov.models import LinearSVC, RecLinReg


class TestLinearSVC:
    """Training and prediction."""

    def test_sgd_separates_blobs(self, separable_data):
        X, y = separable_data
        model = LinearSVC({"algorithm": "SGD", "maxIterations": 2000}).fit(X, y)

        predictions = np.sign(model.predict(X))
        assert np.mean(predictions == y) >= 0.95
        assert model.predict([4.0, 4.0]) > 0
        assert model.predict([-4.0, -4.0]) < 0

    def test_qp_separates_blobs(self, separable_data):
        X, y = separable_data
        model = LinearSVC({"algorithm": "PR_LOQO"}).fit(X, y)

        np.testing.assert_array_equal(np.sign(model.predict(X)), y)
        assert model.weights.shape == (2,)

    def test_labels_above_zero_are_positive(self, separable_data):
        X, y = separable_data
        labels = np.where(y > 0, 2.0, 0.0)
        model = LinearSVC({"algorithm": "PR_LOQO"}).fit(X, labels)

        assert model.predict([3.0, 3.0]) > 0

    def test_sgd_is_deterministic(self, separable_data):
        X, y = separable_data
        first = LinearSVC({"maxIterations": 200}).fit(X, y)
        second = LinearSVC({"maxIterations": 200}).fit(X, y)
        np.testing.assert_array_equal(first.weights, second.weights)

    def test_predict_before_fit(self):
        with pytest.raises(NotFittedError):
            LinearSVC().predict([1.0, 2.0])

    def test_predict_dimension_mismatch(self, separable_data):
        X, y = separable_data
        model = LinearSVC({"algorithm": "PR_LOQO"}).fit(X, y)
        with pytest.raises(ArgumentError):
            model.predict([1.0, 2.0, 3.0])

    def test_label_length_mismatch(self, separable_data):
        X, y = separable_data
        with pytest.raises(ArgumentError):
            LinearSVC().fit(X, y[:-1])

    def test_predict_rejects_non_finite_instance(self, separable_data):
        X, y = separable_data
        model = LinearSVC({"algorithm": "PR_LOQO"}).fit(X, y)
        with pytest.raises(ArgumentError):
            model.predict([np.nan, 1.0])
        with pytest.raises(ArgumentError):
            model.predict(np.array([[1.0, np.inf]]))


class TestLinearSVCSparse:
    """Training and prediction on scipy sparse matrices."""

    def test_sgd_on_sparse_input(self, separable_data):
        X, y = separable_data
        X_sparse = sp.csr_matrix(X)
        model = LinearSVC({"algorithm": "SGD", "maxIterations": 2000}).fit(X_sparse, y)

        margins = model.predict(X_sparse)
        assert isinstance(margins, np.ndarray)
        assert np.mean(np.sign(margins) == y) >= 0.95
        np.testing.assert_allclose(margins, model.predict(X))

    def test_qp_on_sparse_input(self, separable_data):
        X, y = separable_data
        X_sparse = sp.csr_matrix(X)
        model = LinearSVC({"algorithm": "PR_LOQO"}).fit(X_sparse, y)

        assert model.weights.shape == (2,)
        assert model.n_iter >= 1
        np.testing.assert_array_equal(np.sign(model.predict(X_sparse)), y)

    def test_sparse_predict_on_dense_model(self, separable_data):
        X, y = separable_data
        model = LinearSVC({"algorithm": "PR_LOQO"}).fit(X, y)

        margins = model.predict(sp.csr_matrix(X[:1]))
        assert margins.shape == (1,)
        assert margins[0] == pytest.approx(model.predict(X[0]))

    def test_other_sparse_formats_accepted(self, separable_data):
        X, y = separable_data
        model = LinearSVC({"algorithm": "PR_LOQO"}).fit(sp.coo_matrix(X), y)
        np.testing.assert_array_equal(np.sign(model.predict(sp.csc_matrix(X))), y)

    def test_sparse_dimension_mismatch(self, separable_data):
        X, y = separable_data
        model = LinearSVC({"algorithm": "PR_LOQO"}).fit(X, y)
        with pytest.raises(ArgumentError):
            model.predict(sp.csr_matrix(np.ones((1, 3))))


class TestLinearSVCStopping:
    """Iteration, wall-clock and convergence bounds of the SGD solver."""

    def test_wall_clock_bound(self, separable_data):
        X, y = separable_data
        model = LinearSVC({"maxIterations": 100000, "maxTime": 1e-9, "minDiff": 0.0})
        model.fit(X, y)

        assert model.n_iter < 100

    def test_large_min_diff_stops_after_first_step(self, separable_data):
        X, y = separable_data
        model = LinearSVC({"maxIterations": 100000, "minDiff": 1e6}).fit(X, y)
        assert model.n_iter == 1

    def test_max_iterations_reached_without_other_bounds(self, separable_data):
        X, y = separable_data
        model = LinearSVC({"maxIterations": 50, "minDiff": 0.0}).fit(X, y)
        assert model.n_iter == 50

    def test_n_iter_unset_before_fit(self):
        assert LinearSVC().n_iter is None


class TestLinearSVCParams:
    """Parameter handling and persistence."""

    def test_get_and_set_params(self):
        model = LinearSVC({"c": 2.0})
        model.set_params({"j": 3.0, "maxTime": 5})
        params = model.get_params()

        assert params["c"] == 2.0
        assert params["j"] == 3.0
        assert params["maxTime"] == 5.0
        assert params["algorithm"] == "SGD"

    def test_set_invalid_param(self):
        with pytest.raises(ConfigurationError):
            LinearSVC().set_params({"algorithm": "SMO"})

    def test_save_load(self, separable_data):
        X, y = separable_data
        model = LinearSVC({"algorithm": "PR_LOQO", "c": 0.5}).fit(X, y)

        buffer = io.BytesIO()
        model.save(buffer)
        buffer.seek(0)
        restored = LinearSVC.load(buffer)

        assert restored.get_params() == model.get_params()
        np.testing.assert_array_equal(restored.weights, model.weights)
        assert restored.predict(X[0]) == pytest.approx(model.predict(X[0]))

    def test_save_load_unfitted(self):
        buffer = io.BytesIO()
        LinearSVC({"batchSize": 10}).save(buffer)
        buffer.seek(0)
        restored = LinearSVC.load(buffer)

        assert not restored.is_fitted
        assert restored.get_params()["batchSize"] == 10


class TestRecLinReg:
    """Recursive least squares."""

    def test_recovers_noiseless_target(self):
        rng = np.random.RandomState(0)
        true_weights = np.array([2.0, -3.0, 0.5])
        model = RecLinReg({"dim": 3, "regFact": 1e-6})

        for x in rng.normal(size=(50, 3)):
            model.learn(x, float(x @ true_weights))

        np.testing.assert_allclose(model.weights, true_weights, atol=1e-3)
        assert model.predict([1.0, 1.0, 1.0]) == pytest.approx(-0.5, abs=1e-3)

    def test_forgetting_tracks_changed_target(self):
        rng = np.random.RandomState(1)
        model = RecLinReg({"dim": 2, "regFact": 1e-3, "forgetFact": 0.9})

        for x in rng.normal(size=(100, 2)):
            model.learn(x, float(x @ np.array([1.0, 1.0])))
        for x in rng.normal(size=(100, 2)):
            model.learn(x, float(x @ np.array([-1.0, 2.0])))

        np.testing.assert_allclose(model.weights, [-1.0, 2.0], atol=1e-3)

    def test_nan_input_raises_and_blocks_learning(self):
        model = RecLinReg({"dim": 2})
        with pytest.raises(NumericInstabilityError):
            model.learn([np.nan, 1.0], 1.0)

        assert model.is_unstable
        with pytest.raises(NumericInstabilityError):
            model.learn([1.0, 1.0], 1.0)

    def test_dimension_mismatch(self):
        model = RecLinReg({"dim": 2})
        with pytest.raises(ArgumentError):
            model.learn([1.0, 2.0, 3.0], 1.0)
        with pytest.raises(ArgumentError):
            model.predict([1.0])

    def test_params_and_dim(self):
        model = RecLinReg({"dim": 4, "regFact": 2.0, "forgetFact": 0.95})

        assert model.dim == 4
        assert model.get_params() == {"dim": 4, "regFact": 2.0, "forgetFact": 0.95}
        np.testing.assert_array_equal(model.weights, np.zeros(4))

    def test_save_load(self, tmp_path):
        model = RecLinReg({"dim": 2, "forgetFact": 0.99})
        model.learn([1.0, 0.0], 3.0).learn([0.0, 1.0], -1.0)

        path = tmp_path / "rls.joblib"
        model.save(str(path))
        restored = RecLinReg.load(str(path))

        np.testing.assert_array_equal(restored.weights, model.weights)
        restored.learn([1.0, 1.0], 2.0)
        model.learn([1.0, 1.0], 2.0)
        np.testing.assert_allclose(restored.weights, model.weights)
