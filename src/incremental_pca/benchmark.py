# Author: Emrullah Erce Dutkan
"""
Benchmarking framework for incremental PCA.

Compares three ways of keeping a PCA basis current on a batch stream:
- incremental: IncrementalPCA, fit on the first batch and update() after
- batch_refit: a fresh fit over every sample seen so far
- sklearn_ipca: scikit-learn's IncrementalPCA.partial_fit

The benchmark measures, after every batch:
- Subspace error against the true generating components
- Explained variance ratio on held-out data
- Reconstruction error on held-out data
and finally memory usage and runtime.
"""

from typing import List, Dict, Any, Optional
from dataclasses import dataclass, field
import logging
import time
import numpy as np
from sklearn.decomposition import IncrementalPCA as SklearnIPCA

from .config import ExperimentConfig, PCAConfig
from .pca import IncrementalPCA
from .metrics import (
    subspace_distance,
    explained_variance_ratio,
    reconstruction_error
)
from .stream import SyntheticStream, create_stream


logger = logging.getLogger(__name__)


@dataclass
class MethodResult:
    """Results for a single method run."""
    method: str
    final_subspace_error: float
    final_explained_variance: float
    final_reconstruction_error: float
    memory_bytes: int
    runtime_seconds: float
    k: int = 0
    rank: int = 0
    n_samples: int = 0
    history: Dict[str, List[float]] = field(default_factory=dict)


class BatchRefitPCA:
    """
    Reference method: keep every sample and refit from scratch per batch.

    Exact, but memory and cost grow with the length of the stream.
    """

    def __init__(self, config: Optional[PCAConfig] = None):
        self.model = IncrementalPCA(config)
        self.seen: List[np.ndarray] = []

    def partial_fit(self, batch: np.ndarray) -> "BatchRefitPCA":
        self.seen.append(np.asarray(batch, dtype=np.float64))
        self.model.fit(np.vstack(self.seen))
        return self

    @property
    def components_(self) -> np.ndarray:
        return self.model.components_

    def rank(self) -> int:
        return self.model.rank()

    def get_memory_bytes(self) -> int:
        return self.model.get_memory_bytes() + sum(b.nbytes for b in self.seen)


class SklearnIncrementalPCA:
    """Adapter giving scikit-learn's IncrementalPCA the benchmark interface."""

    def __init__(self, k: int):
        self.model = SklearnIPCA(n_components=k)

    def partial_fit(self, batch: np.ndarray) -> "SklearnIncrementalPCA":
        self.model.partial_fit(batch)
        return self

    @property
    def components_(self) -> np.ndarray:
        return self.model.components_

    def rank(self) -> int:
        return self.model.components_.shape[0]

    def get_memory_bytes(self) -> int:
        m = self.model
        return m.components_.nbytes + m.singular_values_.nbytes + m.mean_.nbytes + m.var_.nbytes


def run_single_method(
    method_name: str,
    model: Any,
    stream: SyntheticStream,
    n_batches: int,
    batch_size: int,
    k: int,
    test_size: int,
    seed: int
) -> MethodResult:
    """
    Run one method over a batch stream and collect metrics.

    Args:
        method_name: Name for reporting.
        model: Object with partial_fit(batch), components_, rank() and
            get_memory_bytes().
        stream: Batch stream, reset by the caller.
        n_batches: Number of batches to feed.
        batch_size: Rows per batch.
        k: Number of components evaluated.
        test_size: Held-out samples drawn per evaluation.
        seed: Seed for the held-out samples.

    Returns:
        MethodResult with final metrics and per-batch history.
    """
    history = {
        "t": [],
        "subspace_error": [],
        "explained_variance": [],
        "reconstruction_error": []
    }

    sub_err = exp_var = recon_err = float("nan")
    elapsed = 0.0

    for batch in stream.batches(n_batches, batch_size):
        start_time = time.time()
        model.partial_fit(batch)
        elapsed += time.time() - start_time

        W_est = model.components_[:k]
        W_ref = stream.get_true_components(k)
        X_test = stream.sample_current(test_size, seed=seed)

        sub_err = subspace_distance(W_est, W_ref)
        exp_var = explained_variance_ratio(X_test, W_est)
        recon_err = reconstruction_error(X_test, W_est)

        history["t"].append(stream.n_samples)
        history["subspace_error"].append(sub_err)
        history["explained_variance"].append(exp_var)
        history["reconstruction_error"].append(recon_err)

    logger.info(
        "%s: %d samples, subspace error %.6f, %.2fs",
        method_name, stream.n_samples, sub_err, elapsed
    )

    return MethodResult(
        method=method_name,
        final_subspace_error=sub_err,
        final_explained_variance=exp_var,
        final_reconstruction_error=recon_err,
        memory_bytes=model.get_memory_bytes(),
        runtime_seconds=elapsed,
        k=k,
        rank=model.rank(),
        n_samples=stream.n_samples,
        history=history
    )


def run_benchmark(config: ExperimentConfig) -> List[MethodResult]:
    """
    Run the benchmark suite on a synthetic stream.

    Every method sees the same sequence of batches.

    Args:
        config: Experiment configuration.

    Returns:
        List of MethodResult, one per method.
    """
    if config.include_sklearn and config.batch_size < config.k:
        raise ValueError(
            f"batch_size ({config.batch_size}) must be >= k ({config.k}) "
            "for scikit-learn's IncrementalPCA"
        )

    stream = create_stream(config.stream, config.d, seed=config.seed)
    test_seed = config.seed + 1000

    models = {"incremental": IncrementalPCA(config.pca)}
    if config.include_refit:
        models["batch_refit"] = BatchRefitPCA(config.pca)
    if config.include_sklearn:
        models["sklearn_ipca"] = SklearnIncrementalPCA(config.k)

    results = []
    for name, model in models.items():
        stream.reset(seed=config.seed)
        results.append(run_single_method(
            name,
            model,
            stream,
            config.n_batches,
            config.batch_size,
            config.k,
            config.test_size,
            test_seed
        ))

    return results


def results_to_dict(results: List[MethodResult]) -> List[Dict[str, Any]]:
    """Convert results to list of dictionaries for CSV export."""
    rows = []
    for r in results:
        rows.append({
            "method": r.method,
            "subspace_error": r.final_subspace_error,
            "explained_variance": r.final_explained_variance,
            "reconstruction_error": r.final_reconstruction_error,
            "memory_bytes": r.memory_bytes,
            "runtime_seconds": r.runtime_seconds,
            "k": r.k,
            "rank": r.rank,
            "n_samples": r.n_samples
        })
    return rows


def format_results_table(results: List[MethodResult]) -> str:
    """Format results as a text table for console output."""
    lines = []
    header = (
        f"{'Method':<16} {'SubErr':>10} {'ExpVar':>10} "
        f"{'ReconErr':>12} {'Memory':>12} {'Time':>8}"
    )
    lines.append(header)
    lines.append("-" * len(header))

    for r in results:
        mem_str = f"{r.memory_bytes:,}"
        lines.append(
            f"{r.method:<16} {r.final_subspace_error:>10.6f} "
            f"{r.final_explained_variance:>10.4f} "
            f"{r.final_reconstruction_error:>12.6f} "
            f"{mem_str:>12} {r.runtime_seconds:>8.2f}s"
        )

    return "\n".join(lines)
