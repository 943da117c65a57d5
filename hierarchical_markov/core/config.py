"""
Configuration management for the Hierarchical Markov Chain engine.

This module provides the Pydantic models that describe every configurable
model in the package. The polymorphic choices (clustering algorithm,
transition model, classifier solver) are closed tagged variants: the raw
``type`` string is validated once here and the rest of the package
dispatches on the resulting model class.

**Usage Example:**

```python
from hierarchical_markov.core.config import HMCConfig, load_config

config = load_config(HMCConfig, {
    "transitions": {"type": "continuous", "timeUnit": "hour"},
    "clustering": {"type": "dpmeans", "lambda": 0.8, "minClusts": 2},
})
```
"""

from enum import Enum
from typing import Annotated, Any, Dict, Literal, Optional, Type, TypeVar, Union

from pydantic import BaseModel, Field, ValidationError, model_validator

from .exceptions import ConfigurationError


class TransitionType(str, Enum):
    """Kind of Markov transition model estimated between clusters."""
    CONTINUOUS = "continuous"
    DISCRETE = "discrete"


class TimeUnit(str, Enum):
    """Unit in which continuous-time rates are expressed."""
    SECOND = "second"
    MINUTE = "minute"
    HOUR = "hour"
    DAY = "day"

    @property
    def milliseconds(self) -> int:
        """Length of one unit in raw timestamp units (milliseconds)."""
        return _TIME_UNIT_MSECS[self]


_TIME_UNIT_MSECS = {
    TimeUnit.SECOND: 1000,
    TimeUnit.MINUTE: 60 * 1000,
    TimeUnit.HOUR: 60 * 60 * 1000,
    TimeUnit.DAY: 24 * 60 * 60 * 1000,
}


class ClusteringType(str, Enum):
    """Clustering algorithm used for the base partition."""
    DPMEANS = "dpmeans"
    KMEANS = "kmeans"


class SVCAlgorithm(str, Enum):
    """Solver used to train the linear classifier."""
    SGD = "SGD"
    PR_LOQO = "PR_LOQO"


_MODEL_CONFIG = {
    "validate_assignment": True,
    "extra": "forbid",
    "populate_by_name": True,
}


class ContinuousTransitionsConfig(BaseModel):
    """Continuous-time transition model parameters."""
    type: Literal["continuous"] = "continuous"
    time_unit: TimeUnit = Field(..., alias="timeUnit",
                                description="Unit the transition rates are expressed in")
    delta_time: float = Field(default=1e-3, gt=0.0, alias="deltaTime",
                              description="Minimum distinguishable time step in time_unit")

    model_config = _MODEL_CONFIG

    @property
    def transition_type(self) -> TransitionType:
        return TransitionType.CONTINUOUS


class DiscreteTransitionsConfig(BaseModel):
    """Discrete-time transition model parameters."""
    type: Literal["discrete"] = "discrete"

    model_config = _MODEL_CONFIG

    @property
    def transition_type(self) -> TransitionType:
        return TransitionType.DISCRETE


class KMeansConfig(BaseModel):
    """K-means clustering parameters."""
    type: Literal["kmeans"] = "kmeans"
    k: int = Field(..., ge=1, description="Number of clusters")
    rnd_seed: int = Field(default=0, ge=0, alias="rndseed")
    max_iter: int = Field(default=100, ge=1, alias="maxIter")
    max_time: Optional[float] = Field(default=None, gt=0.0, alias="maxTime",
                                      description="Wall-clock bound in seconds")

    model_config = _MODEL_CONFIG

    @property
    def clustering_type(self) -> ClusteringType:
        return ClusteringType.KMEANS


class DPMeansConfig(BaseModel):
    """DP-means clustering parameters."""
    type: Literal["dpmeans"] = "dpmeans"
    lambda_: float = Field(..., gt=0.0, alias="lambda",
                           description="Distance above which a new cluster is spawned")
    min_clusts: int = Field(default=1, ge=1, alias="minClusts")
    max_clusts: Optional[int] = Field(default=None, ge=1, alias="maxClusts",
                                      description="Upper bound on clusters, None for unbounded")
    rnd_seed: int = Field(default=0, ge=0, alias="rndseed")
    max_iter: int = Field(default=100, ge=1, alias="maxIter")
    max_time: Optional[float] = Field(default=None, gt=0.0, alias="maxTime",
                                      description="Wall-clock bound in seconds")

    model_config = _MODEL_CONFIG

    @model_validator(mode='after')
    def validate_cluster_bounds(self):
        """Validate that minClusts does not exceed maxClusts."""
        if self.max_clusts is not None and self.min_clusts > self.max_clusts:
            raise ValueError("minClusts must not exceed maxClusts")
        return self

    @property
    def clustering_type(self) -> ClusteringType:
        return ClusteringType.DPMEANS


TransitionsConfig = Annotated[
    Union[ContinuousTransitionsConfig, DiscreteTransitionsConfig],
    Field(discriminator="type"),
]

ClusteringConfig = Annotated[
    Union[KMeansConfig, DPMeansConfig],
    Field(discriminator="type"),
]


class HMCConfig(BaseModel):
    """
    Configuration of a hierarchical Markov chain model.

    Keys consumed only by the binding layer (``source``, ``timestamp``,
    ``fields``) are tolerated and ignored.
    """
    transitions: TransitionsConfig
    clustering: ClusteringConfig
    verbose: bool = False

    model_config = {
        "validate_assignment": True,
        "extra": "ignore",
        "populate_by_name": True,
    }

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to its camelCase dictionary form."""
        return self.model_dump(by_alias=True, mode="json")


class SVCConfig(BaseModel):
    """Linear support vector classifier parameters."""
    algorithm: SVCAlgorithm = Field(default=SVCAlgorithm.SGD)
    c: float = Field(default=1.0, gt=0.0, description="Misclassification cost")
    j: float = Field(default=1.0, gt=0.0, description="Positive class weight")
    batch_size: int = Field(default=1000, ge=1, alias="batchSize")
    max_iterations: int = Field(default=10000, ge=1, alias="maxIterations")
    max_time: float = Field(default=600.0, gt=0.0, alias="maxTime",
                            description="Wall-clock bound in seconds")
    min_diff: float = Field(default=1e-6, ge=0.0, alias="minDiff")
    verbose: bool = False

    model_config = _MODEL_CONFIG

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to its camelCase dictionary form."""
        return self.model_dump(by_alias=True, mode="json")


class RecLinRegConfig(BaseModel):
    """Recursive linear regression parameters."""
    dim: int = Field(..., ge=1)
    reg_fact: float = Field(default=1.0, gt=0.0, alias="regFact")
    forget_fact: float = Field(default=1.0, gt=0.0, le=1.0, alias="forgetFact")

    model_config = _MODEL_CONFIG

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to its camelCase dictionary form."""
        return self.model_dump(by_alias=True, mode="json")


ConfigT = TypeVar("ConfigT", bound=BaseModel)


def load_config(config_cls: Type[ConfigT], raw: Union[ConfigT, Dict[str, Any]]) -> ConfigT:
    """
    Validate a raw configuration object.

    Args:
        config_cls: Pydantic model class to validate against
        raw: Either an already validated instance or a plain dictionary

    Returns:
        Validated configuration instance

    Raises:
        ConfigurationError: If the configuration is not a mapping or fails validation
    """
    if isinstance(raw, config_cls):
        return raw
    if not isinstance(raw, dict):
        raise ConfigurationError(
            f"{config_cls.__name__} expects a dictionary, got {type(raw).__name__}"
        )

    try:
        return config_cls.model_validate(raw)
    except ValidationError as e:
        first = e.errors()[0]
        parameter = ".".join(str(part) for part in first.get("loc", ()))
        raise ConfigurationError(
            f"Invalid {config_cls.__name__}: {first.get('msg')}",
            parameter=parameter or None,
            details={"error_count": e.error_count()}
        ) from e
