# Author: Emrullah Erce Dutkan
"""
Command-line interface for the incremental PCA engine.

Modes:
1. fit: Fit a model on a feature matrix and save it
2. update: Merge new rows into a saved model
3. project: Project rows onto the first k components of a saved model
4. benchmark: Compare incremental updates against batch refits
5. simulate: Stream synthetic batches through a model and report per batch

Usage examples:
    incremental-pca --mode fit --input frames.npy --model model.json --k 4
    incremental-pca --mode update --input more.npy --model model.json --sample-count 1000
    incremental-pca --mode project --input frames.npy --model model.json --k 4 --output coords.npy
    incremental-pca --mode benchmark --d 20 --k 5 --n-batches 50 --batch-size 100 --reports reports/
    incremental-pca --mode simulate --d 20 --k 5 --drift --plot
"""

import argparse
import logging
import os
import sys
import time
import numpy as np

from .config import (
    ExperimentConfig,
    PCAConfig,
    StreamConfig,
    DEFAULT_REPORTS_DIR,
    DEFAULT_LOGS_DIR
)
from .errors import PCAError
from .pca import IncrementalPCA
from .datasets import load_matrix, save_matrix
from .metrics import subspace_distance, orthonormality_error
from .stream import create_stream
from .benchmark import run_benchmark, format_results_table
from .io import (
    save_model,
    load_model,
    save_results_csv,
    save_history_csv,
    save_config,
    load_config,
    MetricsLogger,
    ensure_dir,
    format_memory,
    create_summary_report
)


logger = logging.getLogger(__name__)


def pca_config_from_args(args: argparse.Namespace) -> PCAConfig:
    return PCAConfig(
        boundary_policy=args.boundary_policy,
        variance_ratio=args.variance_ratio,
        nan_policy=args.nan_policy,
        track_variance=args.track_variance
    )


def experiment_config_from_args(args: argparse.Namespace) -> ExperimentConfig:
    """Build an ExperimentConfig from a JSON file or the command line."""
    if args.config:
        return ExperimentConfig.from_dict(load_config(args.config))

    if args.drift:
        stream = StreamConfig(
            stream_type="drifting",
            rank=args.k,
            drift_interval=args.drift_interval
        )
    else:
        stream = StreamConfig(rank=args.k)

    return ExperimentConfig(
        d=args.d,
        k=args.k,
        n_batches=args.n_batches,
        batch_size=args.batch_size,
        pca=pca_config_from_args(args),
        stream=stream,
        include_sklearn=not args.no_sklearn,
        seed=args.seed
    )


def print_model_summary(model: IncrementalPCA, k: int) -> None:
    values = model.values
    print(f"Dimensions: {model.dims()}, rank: {model.rank()}, samples: {model.sample_count}")
    print(f"Leading singular values: {', '.join(f'{v:.4f}' for v in values[:min(k, len(values))])}")
    if k <= model.rank():
        print(f"Explained variance ratio (k={k}): {model.explained_variance_ratio(k):.4f}")


def run_fit_mode(args: argparse.Namespace) -> None:
    """Fit a model on a feature matrix and save it."""
    X = load_matrix(args.input)
    print(f"Loaded {X.shape[0]} samples with {X.shape[1]} features from {args.input}")

    model = IncrementalPCA(pca_config_from_args(args)).fit(X)
    print_model_summary(model, args.k)

    save_model(model, args.model)
    print(f"Model saved to: {args.model}")


def run_update_mode(args: argparse.Namespace) -> None:
    """Merge new rows into a saved model."""
    model = load_model(args.model, pca_config_from_args(args), sample_count=args.sample_count)
    X = load_matrix(args.input)
    print(f"Merging {X.shape[0]} samples into model from {args.model}")

    start_time = time.time()
    model.update(X)
    print(f"Update complete in {time.time() - start_time:.3f}s")
    print_model_summary(model, args.k)

    output = args.output or args.model
    save_model(model, output)
    print(f"Model saved to: {output} (sample count {model.sample_count})")


def run_project_mode(args: argparse.Namespace) -> None:
    """Project rows onto the first k components of a saved model."""
    model = load_model(args.model, pca_config_from_args(args))
    X = load_matrix(args.input)

    projected, ratio = model.project_batch(X, args.k)
    if projected is None:
        print(f"Projection skipped: k={args.k} outside model rank {model.rank()}")
        return

    print(f"Projected {X.shape[0]} samples onto {args.k} components")
    print(f"Explained variance ratio: {ratio:.4f} ({model.config.variance_ratio})")

    if args.output:
        save_matrix(projected, args.output)
        print(f"Coordinates saved to: {args.output}")


def run_benchmark_mode(args: argparse.Namespace) -> None:
    """
    Run the benchmark and generate reports.

    Compares incremental updates, batch refits and scikit-learn's
    IncrementalPCA, producing CSV reports and plots.
    """
    from .viz import create_report_figures

    config = experiment_config_from_args(args)

    print("=" * 60)
    print("Incremental PCA Benchmark")
    print("=" * 60)
    print(f"Dimensions: d={config.d}, k={config.k}")
    print(f"Batches: {config.n_batches} x {config.batch_size}")
    print(f"Stream: {config.stream.stream_type}")
    print(f"Output directory: {args.reports}")
    print()

    ensure_dir(args.reports)
    ensure_dir(DEFAULT_LOGS_DIR)

    print("Running benchmark...")
    start_time = time.time()
    results = run_benchmark(config)
    print(f"\nBenchmark complete in {time.time() - start_time:.1f}s")
    print()

    print("Results Summary:")
    print("-" * 80)
    print(format_results_table(results))
    print()

    csv_path = os.path.join(args.reports, "results.csv")
    save_results_csv(results, csv_path)
    print(f"Results saved to: {csv_path}")

    history_path = os.path.join(DEFAULT_LOGS_DIR, "metrics.csv")
    save_history_csv(results, history_path)
    print(f"Metrics history saved to: {history_path}")

    save_config(config.to_dict(), os.path.join(args.reports, "config.json"))

    print("\nGenerating plots...")
    for name, path in create_report_figures(results, args.reports).items():
        print(f"  {name}: {path}")

    print()
    print(create_summary_report(results, config.to_dict(), args.reports))


def run_simulate_mode(args: argparse.Namespace) -> None:
    """
    Stream synthetic batches through a single model.

    Prints the model state after every batch and logs it to CSV.
    """
    config = experiment_config_from_args(args)

    print("=" * 60)
    print("Incremental PCA Simulation")
    print("=" * 60)
    print(f"Dimensions: d={config.d}, k={config.k}")
    print(f"Batches: {config.n_batches} x {config.batch_size}")
    print(f"Stream: {config.stream.stream_type}")
    print(f"Seed: {config.seed}")
    print()

    ensure_dir(DEFAULT_LOGS_DIR)
    ensure_dir(DEFAULT_REPORTS_DIR)

    stream = create_stream(config.stream, config.d, seed=config.seed)
    model = IncrementalPCA(config.pca)
    metrics_logger = MetricsLogger(
        os.path.join(DEFAULT_LOGS_DIR, "metrics_simulate.csv"),
        "incremental"
    )
    spectra = {}

    start_time = time.time()

    for t, batch in enumerate(stream.batches(config.n_batches, config.batch_size), 1):
        model.partial_fit(batch)

        k = min(config.k, model.rank())
        ratio = model.explained_variance_ratio(k)
        sub_err = subspace_distance(model.components_[:k], stream.get_true_components(k))
        metrics_logger.log(t, model, ratio, sub_err)

        print(f"Batch {t:>4}/{config.n_batches}  samples={model.sample_count:<8} "
              f"rank={model.rank():<4} ExpVar={ratio:.4f}  SubErr={sub_err:.6f}")

        if t == 1 or t == config.n_batches:
            spectra[f"after batch {t}"] = model.values

    metrics_logger.close()

    print("\n" + "=" * 60)
    print(f"Simulation complete in {time.time() - start_time:.1f}s")
    print("=" * 60)
    print(f"Orthonormality error: {orthonormality_error(model.bases):.2e}")
    print(f"Memory: {format_memory(model.get_memory_bytes())}")
    print(f"\nLogs saved to: {DEFAULT_LOGS_DIR}/")

    if args.plot:
        from .viz import plot_singular_values

        plot_singular_values(
            spectra,
            squared=True,
            title="Singular Value Spectrum (Simulation)",
            save_path=os.path.join(DEFAULT_REPORTS_DIR, "simulate_spectrum.png"),
            show=True
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Incremental PCA Engine: batch fit, SVD-merge updates and projection",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Fit and save:
    incremental-pca --mode fit --input frames.npy --model model.json --k 4

  Update a saved model:
    incremental-pca --mode update --input more.npy --model model.json --sample-count 1000

  Benchmark:
    incremental-pca --mode benchmark --d 20 --k 5 --n-batches 50 --batch-size 100 --reports reports/
        """
    )

    parser.add_argument(
        "--mode",
        choices=["fit", "update", "project", "benchmark", "simulate"],
        required=True,
        help="Operation mode"
    )

    # Model file arguments
    parser.add_argument("--input", type=str, help="Feature matrix (.npy or .csv)")
    parser.add_argument("--model", type=str, help="Model file (.json or .npz)")
    parser.add_argument("--output", type=str, help="Output path (update/project mode)")
    parser.add_argument("--sample-count", type=int, default=0,
                        help="Samples summarised by the saved model (update mode)")

    # Model policies
    parser.add_argument("--k", type=int, default=5, help="Number of principal components")
    parser.add_argument("--boundary-policy", choices=["unified", "legacy"], default="unified",
                        help="How out-of-range component counts are handled")
    parser.add_argument("--variance-ratio", choices=["singular", "squared"], default="singular",
                        help="Explained variance convention")
    parser.add_argument("--nan-policy", choices=["zero", "propagate"], default="zero",
                        help="NaN handling when accumulating statistics")
    parser.add_argument("--track-variance", action="store_true",
                        help="Track per-feature standard deviation")

    # Experiment arguments
    parser.add_argument("--config", type=str, help="Experiment config JSON (benchmark/simulate)")
    parser.add_argument("--d", type=int, default=20, help="Data dimensionality")
    parser.add_argument("--n-batches", type=int, default=50, help="Number of batches")
    parser.add_argument("--batch-size", type=int, default=100, help="Rows per batch")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument("--drift", action="store_true", help="Enable concept drift")
    parser.add_argument("--drift-interval", type=int, default=2000, help="Samples between drift events")
    parser.add_argument("--no-sklearn", action="store_true", help="Skip the scikit-learn baseline")
    parser.add_argument("--reports", type=str, default="reports/", help="Output directory for reports")
    parser.add_argument("--plot", action="store_true", help="Show plots")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")

    return parser


def main(argv=None) -> int:
    """Main entry point for CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    if args.mode in ("fit", "update", "project"):
        if not args.input or not args.model:
            parser.error(f"--mode {args.mode} requires --input and --model")

    handlers = {
        "fit": run_fit_mode,
        "update": run_update_mode,
        "project": run_project_mode,
        "benchmark": run_benchmark_mode,
        "simulate": run_simulate_mode
    }

    try:
        handlers[args.mode](args)
    except (PCAError, np.linalg.LinAlgError) as exc:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
