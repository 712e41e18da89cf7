# Author: Emrullah Erce Dutkan
"""
Streaming first and second moments for batched data.

This module merges the statistics of a new batch of rows into running
per-feature mean and spread estimates, using the parallel form of
Welford's algorithm (Chan et al.). Nothing is retained between calls:
the caller owns the count, mean and spread accumulators.

Two behaviours to keep in mind:
- Under the default "zero" NaN policy, NaN entries contribute zero to the
  column sums but still count as samples in the denominator.
- The spread accumulator holds a standard deviation, not a variance. It is
  squared back before merging, so chained calls stay consistent.
"""

from typing import Optional, Tuple
import numpy as np

from .errors import DimensionMismatchError, InvalidArgumentError
from .linalg import apply_nan_policy


def incremental_mean_variance(
    batch: np.ndarray,
    prior_count: int,
    mean: np.ndarray,
    variance: Optional[np.ndarray] = None,
    nan_policy: str = "zero"
) -> Tuple[int, np.ndarray, Optional[np.ndarray]]:
    """
    Merge a batch of rows into running mean/spread statistics.

    Args:
        batch: New samples, shape (R, D).
        prior_count: Number of samples already summarised by mean/variance.
        mean: Mean of the prior samples, shape (D,).
        variance: Standard deviation of the prior samples, shape (D,).
            None or an empty array disables spread tracking.
        nan_policy: "zero" to treat NaN as 0 in the sums, "propagate" to
            leave NaN in place.

    Returns:
        Tuple of (new_count, new_mean, new_variance). new_variance is the
        input unchanged when spread tracking is disabled.

    When prior_count is 0 (or the batch has no rows) the call is a no-op
    and returns its inputs unchanged; the first batch has to seed the
    accumulators directly.
    """
    batch = np.asarray(batch, dtype=np.float64)
    mean = np.asarray(mean, dtype=np.float64)

    if batch.ndim != 2:
        raise DimensionMismatchError(
            f"Expected a 2-D batch, got shape {batch.shape}"
        )
    if prior_count < 0:
        raise InvalidArgumentError(f"prior_count must be >= 0, got {prior_count}")

    n_new, d = batch.shape
    if mean.shape != (d,):
        raise DimensionMismatchError(
            f"Mean has shape {mean.shape}, expected ({d},)"
        )

    track_variance = variance is not None and np.size(variance) > 0
    if track_variance:
        variance = np.asarray(variance, dtype=np.float64)
        if variance.shape != (d,):
            raise DimensionMismatchError(
                f"Variance has shape {variance.shape}, expected ({d},)"
            )

    if prior_count == 0 or n_new == 0:
        return prior_count, mean.copy(), variance

    batch = apply_nan_policy(batch, nan_policy)

    updated_count = prior_count + n_new
    batch_sum = np.sum(batch, axis=0)
    new_mean = (mean * prior_count + batch_sum) / updated_count

    if not track_variance:
        return updated_count, new_mean, variance

    batch_mean = batch_sum / n_new
    batch_var = np.mean((batch - batch_mean) ** 2, axis=0)

    # Cross term: shift between the prior and batch centroids
    cross = (prior_count * n_new / updated_count) * (mean - batch_mean) ** 2

    merged = (variance ** 2 * prior_count + batch_var * n_new + cross) / updated_count
    return updated_count, new_mean, np.sqrt(merged)
