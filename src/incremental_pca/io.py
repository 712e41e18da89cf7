# Author: Emrullah Erce Dutkan
"""
Input/Output utilities for the incremental PCA engine.

This module provides functions for:
- Saving and loading fitted models as a flat (bases, values, mean) triple
- Saving benchmark results and per-batch metric history
- Logging metrics during a streaming run
- Creating report files
"""

from typing import List, Dict, Any, Optional
import os
import csv
import json
import logging
from datetime import datetime
import numpy as np

from .benchmark import MethodResult, results_to_dict
from .config import PCAConfig
from .errors import NotInitializedError
from .pca import IncrementalPCA


logger = logging.getLogger(__name__)


def ensure_dir(path: str) -> None:
    """Create directory if it doesn't exist."""
    os.makedirs(path, exist_ok=True)


def save_model(model: IncrementalPCA, path: str) -> None:
    """
    Save a fitted model to .json or .npz.

    JSON layout: {"cols": rank, "rows": dims, "bases": [[...], ...],
    "values": [...], "mean": [...]}, bases stored row by row (dims rows of
    rank entries). The sample count is not part of the format.

    Args:
        model: Initialised IncrementalPCA.
        path: Output path; the extension selects the format.
    """
    if not model.initialized():
        raise NotInitializedError("Cannot save an unfitted PCA model")

    ensure_dir(os.path.dirname(path) or ".")
    ext = os.path.splitext(path)[1].lower()

    if ext == ".json":
        payload = {
            "cols": model.rank(),
            "rows": model.dims(),
            "bases": model.bases.tolist(),
            "values": model.values.tolist(),
            "mean": model.mean.tolist()
        }
        with open(path, "w") as f:
            json.dump(payload, f, indent=2)
    elif ext == ".npz":
        np.savez(path, bases=model.bases, values=model.values, mean=model.mean)
    else:
        raise ValueError(f"Unsupported model format: {ext}")

    logger.info("Saved PCA model (dims=%d, rank=%d) to %s", model.dims(), model.rank(), path)


def load_model(
    path: str,
    config: Optional[PCAConfig] = None,
    sample_count: int = 0
) -> IncrementalPCA:
    """
    Load a model saved by save_model.

    Args:
        path: Input .json or .npz path.
        config: Policies for the returned model.
        sample_count: Number of samples the saved model summarises. Needed
            before update() can be called on the loaded model.

    Returns:
        Initialised IncrementalPCA.
    """
    ext = os.path.splitext(path)[1].lower()

    if ext == ".json":
        with open(path, "r") as f:
            payload = json.load(f)
        rows, cols = payload["rows"], payload["cols"]
        bases = np.asarray(payload["bases"], dtype=np.float64).reshape(rows, cols)
        values = payload["values"]
        mean = payload["mean"]
    elif ext == ".npz":
        with np.load(path) as data:
            bases, values, mean = data["bases"], data["values"], data["mean"]
    else:
        raise ValueError(f"Unsupported model format: {ext}")

    model = IncrementalPCA(config).load(bases, values, mean, sample_count=sample_count)
    logger.info("Loaded PCA model (dims=%d, rank=%d) from %s", model.dims(), model.rank(), path)
    return model


def save_results_csv(
    results: List[MethodResult],
    path: str
) -> None:
    """
    Save benchmark results to CSV.

    Args:
        results: List of MethodResult.
        path: Output CSV path.
    """
    ensure_dir(os.path.dirname(path) or ".")

    rows = results_to_dict(results)
    if not rows:
        return

    with open(path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=list(rows[0].keys()))
        writer.writeheader()
        writer.writerows(rows)


def save_history_csv(
    results: List[MethodResult],
    path: str
) -> None:
    """
    Save metric history to a long-format CSV (t, method, metric, value).

    Args:
        results: List of MethodResult with history.
        path: Output CSV path.
    """
    ensure_dir(os.path.dirname(path) or ".")

    rows = []
    for r in results:
        t_vals = r.history.get("t", [])
        for metric in ["subspace_error", "explained_variance", "reconstruction_error"]:
            for t, val in zip(t_vals, r.history.get(metric, [])):
                rows.append({"t": t, "method": r.method, "metric": metric, "value": val})

    if not rows:
        return

    with open(path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=["t", "method", "metric", "value"])
        writer.writeheader()
        writer.writerows(rows)


def load_results_csv(path: str) -> List[Dict[str, Any]]:
    """Load benchmark results from CSV as a list of row dictionaries."""
    with open(path, "r") as f:
        return list(csv.DictReader(f))


class MetricsLogger:
    """
    Append per-batch model statistics to a CSV file.

    Entries are buffered and written every buffer_size rows.
    """

    fieldnames = [
        "timestamp", "t", "method", "rank", "sample_count",
        "explained_variance", "subspace_error", "top_value"
    ]

    def __init__(
        self,
        path: str,
        method: str,
        buffer_size: int = 100
    ):
        """
        Initialize the logger.

        Args:
            path: Output CSV path.
            method: Method name for this run.
            buffer_size: Write to disk every N entries.
        """
        self.path = path
        self.method = method
        self.buffer_size = buffer_size
        self.buffer: List[Dict[str, Any]] = []

        ensure_dir(os.path.dirname(path) or ".")

        if not os.path.exists(path):
            with open(path, "w", newline="") as f:
                csv.DictWriter(f, fieldnames=self.fieldnames).writeheader()

    def log(
        self,
        t: int,
        model: IncrementalPCA,
        explained_variance: float,
        subspace_error: Optional[float] = None
    ) -> None:
        """
        Log a snapshot of the model after a batch.

        Args:
            t: Batch index.
            model: The model being tracked.
            explained_variance: Explained variance ratio at this step.
            subspace_error: Distance to a reference subspace, if known.
        """
        values = model.values
        self.buffer.append({
            "timestamp": datetime.now().isoformat(),
            "t": t,
            "method": self.method,
            "rank": model.rank(),
            "sample_count": model.sample_count,
            "explained_variance": explained_variance,
            "subspace_error": "" if subspace_error is None else subspace_error,
            "top_value": float(values[0]) if values.size else ""
        })

        if len(self.buffer) >= self.buffer_size:
            self.flush()

    def flush(self) -> None:
        """Write buffered entries to disk."""
        if not self.buffer:
            return

        with open(self.path, "a", newline="") as f:
            csv.DictWriter(f, fieldnames=self.fieldnames).writerows(self.buffer)

        self.buffer = []

    def close(self) -> None:
        """Flush remaining entries."""
        self.flush()


def save_config(config: Dict[str, Any], path: str) -> None:
    """Save a configuration dictionary to JSON."""
    ensure_dir(os.path.dirname(path) or ".")

    with open(path, "w") as f:
        json.dump(config, f, indent=2, default=str)


def load_config(path: str) -> Dict[str, Any]:
    """Load a configuration dictionary from JSON."""
    with open(path, "r") as f:
        return json.load(f)


def format_memory(nbytes: int) -> str:
    """
    Format memory size in human-readable form.

    Returns:
        Formatted string (e.g., "1.5 KB", "2.3 MB").
    """
    if nbytes < 1024:
        return f"{nbytes} B"
    elif nbytes < 1024 ** 2:
        return f"{nbytes / 1024:.1f} KB"
    elif nbytes < 1024 ** 3:
        return f"{nbytes / 1024**2:.1f} MB"
    else:
        return f"{nbytes / 1024**3:.1f} GB"


def create_summary_report(
    results: List[MethodResult],
    config: Dict[str, Any],
    output_dir: str
) -> str:
    """
    Create a summary report as text.

    Args:
        results: Benchmark results.
        config: Configuration used (ExperimentConfig.to_dict()).
        output_dir: Directory where results are saved.

    Returns:
        Summary text.
    """
    pca = config.get("pca", {})
    lines = [
        "Incremental PCA Benchmark Report",
        "=" * 40,
        "",
        "Configuration:",
        f"  Dimensionality (d): {config.get('d', 'N/A')}",
        f"  Components (k): {config.get('k', 'N/A')}",
        f"  Batches: {config.get('n_batches', 'N/A')} x {config.get('batch_size', 'N/A')}",
        f"  Variance ratio: {pca.get('variance_ratio', 'N/A')}",
        f"  Seed: {config.get('seed', 'N/A')}",
        "",
        "Results:",
        "-" * 40
    ]

    for r in results:
        lines.append(f"\nMethod: {r.method}")
        lines.append(f"  Subspace Error: {r.final_subspace_error:.6f}")
        lines.append(f"  Explained Variance: {r.final_explained_variance:.4f}")
        lines.append(f"  Reconstruction Error: {r.final_reconstruction_error:.6f}")
        lines.append(f"  Rank: {r.rank}")
        lines.append(f"  Memory: {format_memory(r.memory_bytes)}")
        lines.append(f"  Runtime: {r.runtime_seconds:.2f}s")

    lines.extend([
        "",
        "-" * 40,
        f"Output files in: {output_dir}",
        "  - results.csv: Summary metrics",
        "  - metrics.csv: Metrics per batch",
        "  - metric_over_time.png: Convergence plot",
        "  - comparison.png: Final metrics per method"
    ])

    return "\n".join(lines)
