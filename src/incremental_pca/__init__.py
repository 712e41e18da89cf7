# Author: Emrullah Erce Dutkan
"""
Incremental PCA Engine

Streaming dimensionality reduction for audio feature analysis:
- Streaming moments: batch-merged running mean and standard deviation
- Incremental PCA: batch fit plus SVD-merge updates of an orthonormal basis

This package also provides evaluation metrics, synthetic batch streams,
persistence of fitted models and a benchmark against batch refitting.
"""

from .errors import (
    PCAError,
    NotInitializedError,
    DimensionMismatchError,
    InvalidArgumentError
)
from .moments import incremental_mean_variance
from .pca import IncrementalPCA, augment_matrix
from .metrics import (
    subspace_distance,
    explained_variance_ratio,
    reconstruction_error,
    orthonormality_error,
    compute_all_metrics,
    batch_pca_reference,
    principal_angles
)
from .stream import SyntheticStream, create_stream
from .datasets import load_dataset, load_digits, load_synthetic, iter_batches
from .benchmark import run_benchmark, MethodResult
from .config import PCAConfig, StreamConfig, ExperimentConfig, get_default_config
from .io import save_model, load_model

__version__ = "0.1.0"
__author__ = "Emrullah Erce Dutkan"

__all__ = [
    # Core
    "IncrementalPCA",
    "incremental_mean_variance",
    "augment_matrix",
    # Errors
    "PCAError",
    "NotInitializedError",
    "DimensionMismatchError",
    "InvalidArgumentError",
    # Metrics
    "subspace_distance",
    "explained_variance_ratio",
    "reconstruction_error",
    "orthonormality_error",
    "compute_all_metrics",
    "batch_pca_reference",
    "principal_angles",
    # Streams
    "SyntheticStream",
    "create_stream",
    # Datasets
    "load_dataset",
    "load_digits",
    "load_synthetic",
    "iter_batches",
    # Benchmarking
    "run_benchmark",
    "MethodResult",
    # Configuration
    "PCAConfig",
    "StreamConfig",
    "ExperimentConfig",
    "get_default_config",
    # Persistence
    "save_model",
    "load_model",
]
