"""
Tests for the reporter, the artifact manager and the pipeline logger.
"""

import json
import logging

import numpy as np
import pytest

from hierarchical_markov import HierarchicalMarkovChain, RecLinReg
from hierarchical_markov.mlflow_integration import (
    ArtifactManager,
    PipelineLogger,
    setup_pipeline_logging,
)
from hierarchical_markov.reporting import HierarchyReporter


@pytest.fixture
def fitted_model(blob_sequence, kmeans_discrete_config):
    X, timestamps = blob_sequence
    return HierarchicalMarkovChain(kmeans_discrete_config).init(X, timestamps)


class TestHierarchyReporter:
    """DataFrame and figure reports."""

    def test_cluster_table(self, fitted_model):
        table = HierarchyReporter(fitted_model).cluster_table()

        assert list(table.index) == [0, 1, 2]
        assert table["size"].sum() == 120
        assert {"x0", "x1"} <= set(table.columns)

    def test_hierarchy_table(self, fitted_model):
        table = HierarchyReporter(fitted_model).hierarchy_table()

        assert len(table) == 5
        assert table.loc[4, "members"] == [0, 1, 2]
        assert table["height"].is_monotonic_increasing

    def test_level_table(self, fitted_model):
        table = HierarchyReporter(fitted_model).level_table()
        assert table["n_groups"].tolist() == [3, 2, 1]

    def test_group_table(self, fitted_model):
        root_level = fitted_model.heights[-1]
        table = HierarchyReporter(fitted_model).group_table(root_level)

        assert len(table) == 1
        assert table.loc[0, "node"] == 4
        assert table.loc[0, "clusters"] == [0, 1, 2]

    def test_transition_table_rows_sum_to_one(self, fitted_model):
        table = HierarchyReporter(fitted_model).transition_table(0.0)

        assert table.shape == (3, 3)
        np.testing.assert_allclose(table.sum(axis=1).to_numpy(), 1.0)
        assert list(table.index) == ["{0}", "{1}", "{2}"]

    def test_future_states_table(self, fitted_model):
        table = HierarchyReporter(fitted_model).future_states_table(0.0, 0, [0, 1, 5])

        assert list(table.index) == [0, 1, 5]
        np.testing.assert_allclose(table.sum(axis=1).to_numpy(), 1.0)

    def test_future_states_table_accepts_generator(self, fitted_model):
        horizons = (h for h in [0, 2, 4])
        table = HierarchyReporter(fitted_model).future_states_table(0.0, 1, horizons)

        assert list(table.index) == [0, 2, 4]
        assert table.shape == (3, 3)

    def test_heatmap_saved(self, fitted_model, tmp_path):
        path = HierarchyReporter(fitted_model).plot_transition_heatmap(
            0.0, save_path=str(tmp_path / "plots" / "level0.png"))
        assert path.exists()


class TestArtifactManager:
    """Local artifact storage outside an MLflow run."""

    def test_model_round_trip(self, fitted_model, tmp_path):
        manager = ArtifactManager(tmp_path)
        path = manager.save_model_artifact(fitted_model, "hmc", metadata={"source": "test"})

        assert path.exists()
        snapshot = json.loads((tmp_path / "models" / "hmc.json").read_text())
        assert len(snapshot["clusters"]) == 3

        metadata = manager.load_metadata(path)
        assert metadata["model_class"] == "HierarchicalMarkovChain"
        assert metadata["fitted"] is True
        assert metadata["source"] == "test"

        restored = manager.load_model_artifact(path, HierarchicalMarkovChain)
        np.testing.assert_array_equal(
            restored.get_transition_model(0.0), fitted_model.get_transition_model(0.0))

    def test_model_without_snapshot(self, tmp_path):
        manager = ArtifactManager(tmp_path)
        model = RecLinReg({"dim": 2}).learn([1.0, 2.0], 1.0)
        path = manager.save_model_artifact(model, "rls")

        assert not (tmp_path / "models" / "rls.json").exists()
        restored = manager.load_model_artifact(path, RecLinReg)
        np.testing.assert_array_equal(restored.weights, model.weights)

    def test_figure_artifact(self, fitted_model, tmp_path):
        figure = HierarchyReporter(fitted_model).plot_transition_heatmap(0.0)
        path = ArtifactManager(tmp_path).save_figure_artifact(figure, "transitions")

        assert path.name == "transitions.png"
        assert path.exists()


class TestPipelineLogger:
    """Local logging without an active MLflow run."""

    def test_no_active_run(self):
        assert PipelineLogger.mlflow_active() is False

    def test_parameters_logged_locally(self, caplog):
        pipeline_logger = PipelineLogger("test_component")
        with caplog.at_level(logging.INFO, logger="pipeline.test_component"):
            pipeline_logger.log_parameters({"k": 3}, prefix="clustering")
            pipeline_logger.log_metrics({"n_states": 3})

        assert "Parameter clustering.k: 3" in caplog.text
        assert "Metric n_states: 3.0" in caplog.text

    def test_setup_pipeline_logging_installs_one_handler(self):
        pipeline_root = logging.getLogger("pipeline")
        try:
            setup_pipeline_logging(logging.DEBUG)
            setup_pipeline_logging(logging.DEBUG)

            assert len(pipeline_root.handlers) == 1
            assert pipeline_root.level == logging.DEBUG
            assert pipeline_root.propagate is False
        finally:
            for handler in pipeline_root.handlers[:]:
                pipeline_root.removeHandler(handler)
            pipeline_root.propagate = True
            pipeline_root.setLevel(logging.NOTSET)
