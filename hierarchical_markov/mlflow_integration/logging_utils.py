"""
Logging utilities for the Hierarchical Markov Chain engine.

This module provides a component logger that writes plain text records
locally and mirrors parameters and metrics to MLflow whenever an MLflow
run is active. Outside a run nothing is sent to MLflow, so fitting a
model never requires a tracking server.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional, Union

import mlflow

from ..core.exceptions import MLflowIntegrationError


class PipelineLogger:
    """
    Component logger with optional MLflow mirroring.

    Args:
        component_name: Name of the component using this logger
        log_level: Logging level (default: INFO)
    """

    def __init__(self, component_name: str, log_level: int = logging.INFO):
        self.component_name = component_name
        self.logger = logging.getLogger(f"pipeline.{component_name}")
        self.logger.setLevel(log_level)

    @staticmethod
    def mlflow_active() -> bool:
        """Whether an MLflow run is currently active."""
        return mlflow.active_run() is not None

    def log_parameters(self, params: Dict[str, Any], prefix: str = "") -> None:
        """
        Log parameters locally and, inside an active run, to MLflow.

        Raises:
            MLflowIntegrationError: If MLflow rejects the parameters
        """
        full_params = {
            (f"{prefix}.{name}" if prefix else name): value
            for name, value in params.items()
        }
        for name, value in full_params.items():
            self.logger.info("Parameter %s: %s", name, value)

        if not self.mlflow_active():
            return
        try:
            mlflow.log_params(full_params)
        except Exception as e:
            self.logger.error("Failed to log parameters: %s", e)
            raise MLflowIntegrationError(
                f"Failed to log parameters for {self.component_name}: {e}",
                operation="log_parameters",
                run_id=mlflow.active_run().info.run_id,
                details={"component": self.component_name}
            ) from e

    def log_metrics(self, metrics: Dict[str, Union[int, float]],
                    step: Optional[int] = None, prefix: str = "") -> None:
        """
        Log metrics locally and, inside an active run, to MLflow.

        Raises:
            MLflowIntegrationError: If MLflow rejects the metrics
        """
        full_metrics = {
            (f"{prefix}.{name}" if prefix else name): float(value)
            for name, value in metrics.items()
        }
        step_info = f" (step {step})" if step is not None else ""
        for name, value in full_metrics.items():
            self.logger.info("Metric %s: %s%s", name, value, step_info)

        if not self.mlflow_active():
            return
        try:
            mlflow.log_metrics(full_metrics, step=step)
        except Exception as e:
            self.logger.error("Failed to log metrics: %s", e)
            raise MLflowIntegrationError(
                f"Failed to log metrics for {self.component_name}: {e}",
                operation="log_metrics",
                run_id=mlflow.active_run().info.run_id,
                details={"component": self.component_name}
            ) from e

    def log_error(self, error: Exception, context: Dict[str, Any] = None) -> None:
        """
        Log an error locally and tag the active MLflow run with it.

        Failures while tagging are logged and not raised, so the original
        error stays the one the caller sees.
        """
        self.logger.error("Error in %s: %s", self.component_name, error)
        if not self.mlflow_active():
            return

        error_tags = {
            "error_type": type(error).__name__,
            "error_message": str(error),
            "component": self.component_name,
            "timestamp": datetime.now().isoformat()
        }
        if context:
            error_tags.update({f"context_{k}": str(v) for k, v in context.items()})
        try:
            mlflow.set_tags(error_tags)
        except Exception as mlflow_error:
            self.logger.error("Failed to log error to MLflow: %s", mlflow_error)

    def info(self, message: str) -> None:
        self.logger.info("[%s] %s", self.component_name, message)


def setup_pipeline_logging(log_level: int = logging.INFO) -> None:
    """
    Set up a console handler for all component loggers.

    Args:
        log_level: Logging level for the ``pipeline`` logger tree
    """
    pipeline_logger = logging.getLogger("pipeline")
    pipeline_logger.setLevel(log_level)

    for handler in pipeline_logger.handlers[:]:
        pipeline_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter(
        fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    pipeline_logger.addHandler(console_handler)
    pipeline_logger.propagate = False

    pipeline_logger.info("Pipeline logging configured")
