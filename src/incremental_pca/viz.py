# Author: Emrullah Erce Dutkan
"""
Visualization utilities for incremental PCA experiments.

This module provides plotting functions for:
- Metrics over samples (convergence curves)
- Singular value spectra
- Method comparisons
"""

from typing import List, Optional, Dict, Sequence
import os
import numpy as np
import matplotlib.pyplot as plt
from matplotlib.figure import Figure

from .benchmark import MethodResult


METRIC_LABELS = {
    "subspace_error": "Subspace Error (mean sin theta)",
    "explained_variance": "Explained Variance Ratio",
    "reconstruction_error": "Reconstruction Error (MSE)",
    "memory_bytes": "Memory (bytes)",
    "runtime_seconds": "Runtime (s)"
}

METRIC_ATTRS = {
    "subspace_error": "final_subspace_error",
    "explained_variance": "final_explained_variance",
    "reconstruction_error": "final_reconstruction_error",
    "memory_bytes": "memory_bytes",
    "runtime_seconds": "runtime_seconds"
}


def setup_style() -> None:
    """Configure matplotlib style for clean plots."""
    plt.style.use("seaborn-v0_8-whitegrid")
    plt.rcParams.update({
        "figure.figsize": (10, 6),
        "font.size": 11,
        "axes.labelsize": 12,
        "axes.titlesize": 13,
        "legend.fontsize": 10,
        "lines.linewidth": 1.5,
        "lines.markersize": 6
    })


def _finish(fig: Figure, save_path: Optional[str], show: bool) -> Figure:
    plt.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches="tight")

    if show:
        plt.show()
    else:
        plt.close(fig)

    return fig


def plot_metrics_over_time(
    results: List[MethodResult],
    metric: str = "subspace_error",
    title: Optional[str] = None,
    save_path: Optional[str] = None,
    show: bool = True
) -> Figure:
    """
    Plot a metric against samples seen for several methods.

    Args:
        results: List of MethodResult with history.
        metric: "subspace_error", "explained_variance" or
            "reconstruction_error".
        title: Plot title.
        save_path: Path to save figure.
        show: Whether to display the plot.

    Returns:
        Matplotlib figure.
    """
    setup_style()
    fig, ax = plt.subplots()

    for result in results:
        if result.history.get(metric):
            ax.plot(result.history["t"], result.history[metric],
                    label=result.method, marker="o", markersize=3)

    label = METRIC_LABELS.get(metric, metric)
    ax.set_xlabel("Samples processed")
    ax.set_ylabel(label)
    ax.set_title(title or f"{label} vs Samples")
    ax.legend(loc="best")

    if metric in ("subspace_error", "reconstruction_error"):
        ax.set_yscale("log")

    return _finish(fig, save_path, show)


def plot_singular_values(
    spectra: Dict[str, Sequence[float]],
    squared: bool = False,
    title: Optional[str] = None,
    save_path: Optional[str] = None,
    show: bool = True
) -> Figure:
    """
    Plot singular value spectra, one line per label.

    Args:
        spectra: Mapping of label to singular values (descending).
        squared: Plot s**2 (proportional to variance) instead of s.
        title: Plot title.
        save_path: Path to save figure.
        show: Whether to display.

    Returns:
        Matplotlib figure.
    """
    setup_style()
    fig, ax = plt.subplots()

    for label, values in spectra.items():
        values = np.asarray(values, dtype=np.float64)
        if squared:
            values = values ** 2
        ax.plot(np.arange(1, len(values) + 1), values, label=label, marker="o")

    ax.set_xlabel("Component")
    ax.set_ylabel("Squared singular value" if squared else "Singular value")
    ax.set_yscale("log")
    ax.set_title(title or "Singular Value Spectrum")
    ax.legend(loc="best")

    return _finish(fig, save_path, show)


def plot_comparison_bars(
    results: List[MethodResult],
    metrics: Optional[List[str]] = None,
    title: Optional[str] = None,
    save_path: Optional[str] = None,
    show: bool = True
) -> Figure:
    """
    Bar chart comparing methods on several final metrics.

    Args:
        results: List of MethodResult.
        metrics: Metrics to compare.
        title: Plot title.
        save_path: Path to save figure.
        show: Whether to display.

    Returns:
        Matplotlib figure.
    """
    if metrics is None:
        metrics = ["subspace_error", "memory_bytes", "runtime_seconds"]

    setup_style()

    fig, axes = plt.subplots(1, len(metrics), figsize=(5 * len(metrics), 5))
    if len(metrics) == 1:
        axes = [axes]

    methods = [r.method for r in results]
    x = np.arange(len(methods))
    colors = plt.cm.viridis(np.linspace(0.2, 0.8, len(methods)))

    for ax, metric in zip(axes, metrics):
        values = [getattr(r, METRIC_ATTRS.get(metric, metric)) for r in results]

        bars = ax.bar(x, values, 0.6, color=colors)
        ax.set_ylabel(METRIC_LABELS.get(metric, metric))
        ax.set_xticks(x)
        ax.set_xticklabels(methods, rotation=45, ha="right")

        for bar, val in zip(bars, values):
            ax.annotate(
                f"{val:.4f}" if val < 100 else f"{val:.0f}",
                xy=(bar.get_x() + bar.get_width() / 2, bar.get_height()),
                xytext=(0, 3),
                textcoords="offset points",
                ha="center",
                va="bottom",
                fontsize=8
            )

    if title:
        fig.suptitle(title, fontsize=14)

    return _finish(fig, save_path, show)


def create_report_figures(
    results: List[MethodResult],
    output_dir: str
) -> Dict[str, str]:
    """
    Create all report figures and save them.

    Returns:
        Dictionary mapping figure names to file paths.
    """
    os.makedirs(output_dir, exist_ok=True)

    paths = {}

    path = os.path.join(output_dir, "metric_over_time.png")
    plot_metrics_over_time(results, "subspace_error", save_path=path, show=False)
    paths["metric_over_time"] = path

    path = os.path.join(output_dir, "explained_variance.png")
    plot_metrics_over_time(results, "explained_variance", save_path=path, show=False)
    paths["explained_variance"] = path

    path = os.path.join(output_dir, "comparison.png")
    plot_comparison_bars(results, save_path=path, show=False)
    paths["comparison"] = path

    return paths
