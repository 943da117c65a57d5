"""
Main model controller for the Hierarchical Markov Chain engine.

This module implements the HierarchicalMarkovChain class that ties the
three fitted components together:
1. A clusterer that maps feature vectors to base states
2. A transition estimator over the base states
3. A merge hierarchy that groups base states into coarser levels

Predictive queries are answered at any level of the hierarchy by
aggregating the base-resolution model over the groups visible there.
"""

import logging
from typing import Any, BinaryIO, Dict, List, Union

import joblib
import numpy as np

from ..core.config import HMCConfig, load_config
from ..core.data_models import Cluster, StateGroup
from ..core.exceptions import ArgumentError, NotFittedError
from ..core.validation import as_feature_vector, as_instance_matrix
from ..clustering import BaseClusterer, build_clusterer
from ..transitions import BaseMarkovChain, aggregate_probs, build_markov_chain
from ..hierarchy import Hierarchy, HierarchyBuilder
from ..mlflow_integration.logging_utils import PipelineLogger


logger = logging.getLogger(__name__)

FORMAT_TAG = "hierarchical_markov.HierarchicalMarkovChain/1"


class HierarchicalMarkovChain:
    """
    Hierarchical Markov chain over clustered observations.

    The model is unfitted after construction and becomes fitted through
    ``init`` or ``load``. All query methods are read-only.

    Args:
        config: HMCConfig instance or its dictionary form

    Raises:
        ConfigurationError: If the configuration is invalid
    """

    def __init__(self, config: Union[HMCConfig, Dict[str, Any]]):
        self.config = load_config(HMCConfig, config)
        self.pipeline_logger = PipelineLogger(
            "hierarchical_markov_chain",
            log_level=logging.DEBUG if self.config.verbose else logging.INFO
        )
        self.hierarchy_builder = HierarchyBuilder()

        self._clusterer: BaseClusterer = None
        self._markov_chain: BaseMarkovChain = None
        self._hierarchy: Hierarchy = None
        self._is_fitted = False

        logger.info("HierarchicalMarkovChain initialized with %s clustering and %s transitions",
                    self.config.clustering.type, self.config.transitions.type)

    def init(self, instances, timestamps) -> 'HierarchicalMarkovChain':
        """
        Fit clusters, transition model and hierarchy from observations.

        Components are built fresh and only replace the current ones once
        every step has succeeded, so a failure leaves the model as it was.

        Args:
            instances: Feature vectors of shape (n_observations, n_features),
                in arrival order
            timestamps: Observation times in milliseconds, one per instance

        Returns:
            self

        Raises:
            ArgumentError: If instances or timestamps are invalid
        """
        X = as_instance_matrix(instances)
        timestamps = self._validate_timestamps(timestamps, X.shape[0])

        self.pipeline_logger.info(
            f"Starting model fit with {X.shape[0]} observations, {X.shape[1]} features")
        try:
            clusterer = build_clusterer(self.config.clustering)
            clustering_result = clusterer.fit(X)

            markov_chain = build_markov_chain(self.config.transitions)
            markov_chain.estimate(clustering_result.labels, timestamps,
                                  clustering_result.n_clusters)

            hierarchy = self.hierarchy_builder.build(clusterer.centroids, clusterer.sizes)
        except Exception as e:
            self.pipeline_logger.log_error(e, context={"operation": "init"})
            raise

        self._clusterer = clusterer
        self._markov_chain = markov_chain
        self._hierarchy = hierarchy
        self._is_fitted = True

        config_dict = self.config.to_dict()
        self.pipeline_logger.log_parameters(config_dict['transitions'], prefix="transitions")
        self.pipeline_logger.log_parameters(config_dict['clustering'], prefix="clustering")
        self.pipeline_logger.log_metrics({
            "n_observations": X.shape[0],
            "n_states": clustering_result.n_clusters,
            "clustering_iterations": clustering_result.n_iter,
            "clustering_converged": int(clustering_result.converged),
            "n_levels": len(hierarchy.heights),
            "root_height": hierarchy.heights[-1],
        })
        self.pipeline_logger.info(
            f"Model fit completed with {clustering_result.n_clusters} states")
        return self

    @staticmethod
    def _validate_timestamps(timestamps, n_instances: int) -> np.ndarray:
        try:
            timestamps = np.asarray(timestamps, dtype=float)
        except (TypeError, ValueError) as e:
            raise ArgumentError("timestamps must be numeric", argument="timestamps") from e

        if timestamps.ndim != 1:
            raise ArgumentError("timestamps must be 1-dimensional", argument="timestamps",
                                actual=timestamps.shape)
        if timestamps.shape[0] != n_instances:
            raise ArgumentError(
                "timestamps must have one entry per instance",
                argument="timestamps",
                expected=n_instances,
                actual=timestamps.shape[0]
            )
        if not np.all(np.isfinite(timestamps)):
            raise ArgumentError("timestamps contain NaN or infinite values",
                                argument="timestamps")
        return timestamps

    def _check_fitted(self, operation: str) -> None:
        if not self._is_fitted:
            raise NotFittedError(
                f"HierarchicalMarkovChain must be initialized before {operation}",
                operation=operation
            )

    @property
    def is_fitted(self) -> bool:
        return self._is_fitted

    @property
    def n_states(self) -> int:
        """Number of base states."""
        self._check_fitted("n_states")
        return self._clusterer.n_clusters

    @property
    def heights(self) -> List[float]:
        """Levels at which the partition changes, ascending from 0."""
        self._check_fitted("heights")
        return self._hierarchy.heights

    @property
    def clusters(self) -> List[Cluster]:
        self._check_fitted("clusters")
        return self._clusterer.clusters

    @property
    def hierarchy(self) -> Hierarchy:
        self._check_fitted("hierarchy")
        return self._hierarchy

    @property
    def transition_type(self) -> str:
        return self.config.transitions.type

    def future_states(self, level: float, start_state: int, horizon: float) -> np.ndarray:
        """
        Distribution over the groups at a level after a time horizon.

        Args:
            level: Hierarchy level the result is expressed at
            start_state: Base cluster id the system is currently in
            horizon: Number of steps (discrete) or time in the configured
                unit (continuous)

        Returns:
            Probability of each group at the level, in group order

        Raises:
            NotFittedError: If called before init
            ArgumentError: If start_state or horizon is invalid
        """
        self._check_fitted("future_states")
        if isinstance(start_state, (bool, np.bool_)) or not isinstance(start_state, (int, np.integer)):
            raise ArgumentError("start state must be an integer cluster id",
                                argument="start_state", actual=start_state)

        groups = self._hierarchy.groups(level)
        probs = self._markov_chain.future_probs(int(start_state), horizon)
        return aggregate_probs(probs, groups)

    def get_transition_model(self, level: float) -> np.ndarray:
        """
        Transition model between the groups at a level.

        Returns the stochastic matrix for discrete transitions and the
        generator matrix for continuous transitions.
        """
        self._check_fitted("get_transition_model")
        return self._markov_chain.get_model(self._hierarchy.groups(level))

    def get_state_groups(self, level: float) -> List[List[int]]:
        """Base cluster ids of every group at a level."""
        self._check_fitted("get_state_groups")
        return self._hierarchy.groups(level)

    def get_group_details(self, level: float) -> List[StateGroup]:
        self._check_fitted("get_group_details")
        return self._hierarchy.state_groups(level)

    def get_state(self, instance) -> int:
        """
        Base cluster id of the nearest centroid to a feature vector.

        Raises:
            NotFittedError: If called before init
            ArgumentError: If the dimension does not match
        """
        self._check_fitted("get_state")
        x = as_feature_vector(instance, self._clusterer.centroids.shape[1], argument="instance")
        return int(self._clusterer.assign(x[np.newaxis, :])[0])

    def to_json(self) -> Dict[str, Any]:
        """
        Structural snapshot of the fitted model.

        Contains the clusters, the hierarchy arena and, for every distinct
        level, its groups and aggregated transition model.
        """
        self._check_fitted("to_json")
        levels = []
        for height in self._hierarchy.heights:
            groups = self._hierarchy.groups(height)
            levels.append({
                'height': height,
                'groups': groups,
                'transitionModel': self._markov_chain.get_model(groups).tolist(),
            })

        return {
            'config': self.config.to_dict(),
            'clusters': [cluster.to_dict() for cluster in self._clusterer.clusters],
            'transitions': self._markov_chain.to_dict(),
            'hierarchy': {
                'root': self._hierarchy.root,
                'nodes': [node.to_dict() for node in self._hierarchy.nodes],
            },
            'heights': self._hierarchy.heights,
            'levels': levels,
        }

    def save(self, sink: Union[str, BinaryIO]) -> None:
        """
        Persist the model to a path or a binary file object.

        The payload holds, in order: the format tag, the configuration,
        the fitted flag and, when fitted, the transition model state, the
        cluster set and the hierarchy arena.
        """
        payload: Dict[str, Any] = {
            'format': FORMAT_TAG,
            'config': self.config.to_dict(),
            'fitted': self._is_fitted,
        }
        if self._is_fitted:
            payload['transitions'] = self._markov_chain.get_state()
            payload['clusters'] = self._clusterer.get_state()
            payload['hierarchy'] = self._hierarchy.to_dict()

        joblib.dump(payload, sink)
        logger.info("Saved HierarchicalMarkovChain (fitted=%s)", self._is_fitted)

    @classmethod
    def load(cls, source: Union[str, BinaryIO]) -> 'HierarchicalMarkovChain':
        """
        Restore a model written by ``save``.

        Raises:
            ArgumentError: If the payload is not a saved model
            ConfigurationError: If the stored configuration is invalid
        """
        try:
            payload = joblib.load(source)
        except Exception as e:
            raise ArgumentError(f"failed to read model payload: {e}", argument="source") from e

        if not isinstance(payload, dict) or payload.get('format') != FORMAT_TAG:
            raise ArgumentError("source does not contain a saved HierarchicalMarkovChain",
                                argument="source", expected=FORMAT_TAG)

        model = cls(payload.get('config'))
        if not payload.get('fitted'):
            return model

        try:
            clusterer = build_clusterer(model.config.clustering)
            clusterer.set_state(payload['clusters'])
            markov_chain = build_markov_chain(model.config.transitions)
            markov_chain.set_state(payload['transitions'])
            hierarchy = Hierarchy.from_dict(payload['hierarchy'])
        except (KeyError, TypeError, ValueError) as e:
            raise ArgumentError(f"malformed model payload: {e}", argument="source") from e

        n_states = clusterer.n_clusters
        if markov_chain.n_states != n_states or hierarchy.n_leaves != n_states:
            raise ArgumentError(
                "saved components disagree on the number of states",
                argument="source",
                expected=n_states,
                actual=(markov_chain.n_states, hierarchy.n_leaves)
            )

        model._clusterer = clusterer
        model._markov_chain = markov_chain
        model._hierarchy = hierarchy
        model._is_fitted = True
        logger.info("Loaded HierarchicalMarkovChain with %d states", n_states)
        return model
