"""
Artifact management for the Hierarchical Markov Chain engine.

Fitted models are written with joblib next to a JSON snapshot and a small
metadata file. When an MLflow run is active the files are also logged as
run artifacts under a common prefix.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Type, Union

import joblib
import mlflow

from ..core.exceptions import MLflowIntegrationError
from .logging_utils import PipelineLogger


class ArtifactManager:
    """
    Stores models and report figures in a local directory and MLflow.

    Args:
        artifact_dir: Local directory the artifacts are written to
        artifact_prefix: Artifact path prefix inside the MLflow run
    """

    def __init__(self, artifact_dir: Union[str, Path], artifact_prefix: str = "hierarchical_markov"):
        self.artifact_dir = Path(artifact_dir)
        self.artifact_prefix = artifact_prefix
        self.logger = PipelineLogger("artifact_manager")

    def _log_to_mlflow(self, paths, artifact_subdir: str, operation: str) -> None:
        if not PipelineLogger.mlflow_active():
            return
        target = f"{self.artifact_prefix}/{artifact_subdir}"
        try:
            for path in paths:
                mlflow.log_artifact(str(path), target)
        except Exception as e:
            raise MLflowIntegrationError(
                f"Failed to log artifacts to {target}: {e}",
                operation=operation,
                run_id=mlflow.active_run().info.run_id,
                details={"paths": [str(p) for p in paths]}
            ) from e

    def save_model_artifact(self, model: Any, artifact_name: str,
                            metadata: Optional[Dict[str, Any]] = None) -> Path:
        """
        Save a model, its JSON snapshot and metadata.

        Args:
            model: Object with a ``save`` method; its ``to_json`` snapshot
                is written too when the model offers one and is fitted
            artifact_name: Base file name of the artifacts
            metadata: Extra metadata entries

        Returns:
            Path to the saved joblib file
        """
        model_dir = self.artifact_dir / "models"
        model_dir.mkdir(parents=True, exist_ok=True)

        model_path = model_dir / f"{artifact_name}.joblib"
        model.save(str(model_path))
        written = [model_path]

        if hasattr(model, 'to_json') and getattr(model, 'is_fitted', False):
            snapshot_path = model_dir / f"{artifact_name}.json"
            with open(snapshot_path, 'w') as f:
                json.dump(model.to_json(), f, indent=2)
            written.append(snapshot_path)

        meta = {
            "model_class": type(model).__name__,
            "artifact_name": artifact_name,
            "fitted": bool(getattr(model, 'is_fitted', False)),
            "saved_at": datetime.now().isoformat(),
            "joblib_version": joblib.__version__,
        }
        if metadata:
            meta.update(metadata)
        metadata_path = model_dir / f"{artifact_name}.meta.json"
        with open(metadata_path, 'w') as f:
            json.dump(meta, f, indent=2, default=str)
        written.append(metadata_path)

        self._log_to_mlflow(written, "models", "save_model_artifact")
        self.logger.info(f"Saved {meta['model_class']} artifact: {model_path}")
        return model_path

    def load_model_artifact(self, artifact_path: Union[str, Path], model_cls: Type) -> Any:
        """
        Load a model saved by ``save_model_artifact``.

        Args:
            artifact_path: Path to the joblib file
            model_cls: Class whose ``load`` restores the model

        Returns:
            Restored model instance
        """
        model = model_cls.load(str(artifact_path))
        self.logger.info(f"Loaded {model_cls.__name__} artifact: {artifact_path}")
        return model

    def load_metadata(self, artifact_path: Union[str, Path]) -> Dict[str, Any]:
        """Metadata written alongside a saved model."""
        artifact_path = Path(artifact_path)
        metadata_path = artifact_path.with_name(f"{artifact_path.stem}.meta.json")
        with open(metadata_path, 'r') as f:
            return json.load(f)

    def save_figure_artifact(self, figure, figure_name: str, figure_type: str = "png") -> Path:
        """
        Save a matplotlib figure as a report artifact.

        Returns:
            Path to the saved image
        """
        report_dir = self.artifact_dir / "reports"
        report_dir.mkdir(parents=True, exist_ok=True)

        if not figure_name.endswith(f".{figure_type}"):
            figure_name = f"{figure_name}.{figure_type}"
        figure_path = report_dir / figure_name
        figure.savefig(figure_path, dpi=150, bbox_inches='tight')

        self._log_to_mlflow([figure_path], "reports", "save_figure_artifact")
        self.logger.info(f"Saved figure artifact: {figure_path}")
        return figure_path
