# Author: Emrullah Erce Dutkan
"""
Configuration management for the incremental PCA engine.

PCAConfig holds the behavioural policies of the model itself. The other
dataclasses describe benchmark and simulation experiments, with defaults
that run out of the box.
"""

from typing import Optional, Literal
from dataclasses import dataclass, field, asdict


BoundaryPolicy = Literal["unified", "legacy"]
VarianceRatio = Literal["singular", "squared"]
NanPolicy = Literal["zero", "propagate"]
StreamType = Literal["gaussian", "drifting", "shifted"]


@dataclass
class PCAConfig:
    """
    Policies for IncrementalPCA.

    boundary_policy:
        "unified" rejects k > rank() in both projection forms with an
        InvalidArgumentError. "legacy" rejects k >= rank() for single points
        and k > rank() for batches, silently leaving the output untouched.
    variance_ratio:
        "singular" divides sums of singular values, "squared" divides sums
        of squared singular values (proportional to variance).
    nan_policy:
        "zero" treats NaN entries as 0 while still counting them as samples.
    track_variance:
        Keep a running per-feature standard deviation alongside the mean.
    """
    boundary_policy: BoundaryPolicy = "unified"
    variance_ratio: VarianceRatio = "singular"
    nan_policy: NanPolicy = "zero"
    track_variance: bool = False

    def __post_init__(self):
        if self.boundary_policy not in ("unified", "legacy"):
            raise ValueError(f"Unknown boundary_policy: {self.boundary_policy}")
        if self.variance_ratio not in ("singular", "squared"):
            raise ValueError(f"Unknown variance_ratio: {self.variance_ratio}")
        if self.nan_policy not in ("zero", "propagate"):
            raise ValueError(f"Unknown nan_policy: {self.nan_policy}")


@dataclass
class StreamConfig:
    """Configuration for synthetic batch streams."""
    stream_type: StreamType = "gaussian"
    rank: int = 2
    noise_std: float = 0.1
    decay: str = "exponential"
    decay_rate: float = 0.5
    drift_interval: Optional[int] = None
    drift_angle: float = 0.1
    shift_after: Optional[int] = None
    shift_scale: float = 2.0


@dataclass
class ExperimentConfig:
    """
    Complete configuration for an incremental PCA experiment.

    The stream delivers n_batches batches of batch_size rows each; the
    first batch initialises the model with fit(), the rest go through
    update().
    """
    # Data dimensions
    d: int = 20
    k: int = 5

    # Streaming parameters
    n_batches: int = 50
    batch_size: int = 100
    test_size: int = 1000

    # Model and stream configuration
    pca: PCAConfig = field(default_factory=PCAConfig)
    stream: StreamConfig = field(default_factory=StreamConfig)

    # Benchmark settings
    include_refit: bool = True
    include_sklearn: bool = True

    # Reproducibility
    seed: int = 42

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> "ExperimentConfig":
        """Create from dictionary."""
        d = dict(d)
        # Handle nested configs
        if "pca" in d and isinstance(d["pca"], dict):
            d["pca"] = PCAConfig(**d["pca"])
        if "stream" in d and isinstance(d["stream"], dict):
            d["stream"] = StreamConfig(**d["stream"])
        return cls(**d)


def get_default_config() -> ExperimentConfig:
    """Get default experiment configuration."""
    return ExperimentConfig()


def get_quick_config() -> ExperimentConfig:
    """Get configuration for quick testing (smaller scale)."""
    return ExperimentConfig(
        d=10,
        k=3,
        n_batches=10,
        batch_size=50,
        test_size=200,
        stream=StreamConfig(rank=3)
    )


def get_drift_config() -> ExperimentConfig:
    """Get configuration for concept drift experiments."""
    return ExperimentConfig(
        d=20,
        k=5,
        n_batches=80,
        batch_size=100,
        stream=StreamConfig(
            stream_type="drifting",
            rank=5,
            drift_interval=2000,
            drift_angle=0.2
        )
    )


# Default output paths
DEFAULT_REPORTS_DIR = "reports"
DEFAULT_LOGS_DIR = "logs"
DEFAULT_METRICS_FILE = "logs/metrics.csv"
DEFAULT_RESULTS_FILE = "reports/results.csv"
