# Author: Emrullah Erce Dutkan
"""
Incremental PCA via SVD merging.

The model keeps an orthonormal basis (dims x rank), its singular values,
the running mean and the number of samples seen. A batch fit computes a
thin SVD of the centered data. Later batches are merged without revisiting
old samples: the previous basis, scaled by its singular values, stands in
for all past data and is stacked with the new (batch-centered) rows and a
single mean-correction row before a fresh thin SVD.

The SVD input therefore has rank + R + 1 rows regardless of how much data
has been seen, at the cost of exact equivalence with a batch SVD over the
full history.

Reference:
Ross, D. A., Lim, J., Lin, R.-S., Yang, M.-H. (2008). Incremental learning
for robust visual tracking. International Journal of Computer Vision.
"""

from typing import Optional, Tuple
import logging
import numpy as np

from .config import PCAConfig
from .errors import DimensionMismatchError, InvalidArgumentError, NotInitializedError
from .linalg import apply_nan_policy, column_variance, thin_svd
from .moments import incremental_mean_variance


logger = logging.getLogger(__name__)


def augment_matrix(
    bases: np.ndarray,
    values: np.ndarray,
    centered: np.ndarray,
    correction: np.ndarray
) -> np.ndarray:
    """
    Build the matrix whose SVD merges a new batch into an existing basis.

    Args:
        bases: Previous basis, shape (d, r), one component per column.
        values: Singular values for the basis columns, shape (r,).
        centered: New batch centered on its own mean, shape (R, d).
        correction: Mean-correction row, shape (d,).

    Returns:
        Matrix of shape (r + R + 1, d): the weighted components as rows,
        followed by the centered batch and the correction row.
    """
    weighted = (bases * values).T
    return np.vstack([weighted, centered, correction.reshape(1, -1)])


class IncrementalPCA:
    """
    PCA model that can be refined batch by batch.

    Lifecycle: created empty, initialised by fit() or load(), refined by
    update(), reset by clear(). Each mutating call builds the new basis,
    singular values, mean and sample count locally and commits them
    together, so a failed call leaves the model as it was.

    Not thread-safe: mutators must not run concurrently with anything else
    on the same instance.

    Attributes:
        config: Behavioural policies (projection boundaries, variance
            ratio convention, NaN handling, spread tracking).
    """

    def __init__(self, config: Optional[PCAConfig] = None):
        self.config = config if config is not None else PCAConfig()
        self._reset_state()

    def _reset_state(self) -> None:
        self._bases = np.zeros((0, 0), dtype=np.float64)
        self._values = np.zeros(0, dtype=np.float64)
        self._mean = np.zeros(0, dtype=np.float64)
        self._std: Optional[np.ndarray] = None
        self._count = 0
        self._initialized = False

    def _commit(
        self,
        bases: np.ndarray,
        values: np.ndarray,
        mean: np.ndarray,
        count: int,
        std: Optional[np.ndarray]
    ) -> None:
        self._bases = bases
        self._values = values
        self._mean = mean
        self._count = int(count)
        self._std = std
        self._initialized = True

    def _check_initialized(self) -> None:
        if not self._initialized:
            raise NotInitializedError("PCA model is not fitted; call fit() or load() first")

    def _check_components(self, k: int, batch: bool) -> bool:
        """
        Validate a requested component count.

        Returns False when the request is rejected under the legacy policy,
        which callers turn into a no-op.
        """
        rank = self.rank()
        legacy = self.config.boundary_policy == "legacy"
        if legacy and not batch:
            too_many = k >= rank
        else:
            too_many = k > rank

        if k < 0 or too_many:
            if legacy:
                logger.debug("Ignoring projection request for k=%d (rank %d)", k, rank)
                return False
            raise InvalidArgumentError(
                f"Requested {k} components but the model has {rank}"
            )
        return True

    def _as_rows(self, X: np.ndarray) -> np.ndarray:
        X = np.asarray(X, dtype=np.float64)
        if X.ndim == 1:
            X = X.reshape(1, -1)
        if X.ndim != 2:
            raise DimensionMismatchError(f"Expected a 2-D matrix, got shape {X.shape}")
        return X

    def fit(self, X: np.ndarray) -> "IncrementalPCA":
        """
        Fit the model from scratch on a batch of samples.

        Args:
            X: Data matrix of shape (n_samples, d), n_samples >= 1.

        Returns:
            self, for method chaining.
        """
        X = self._as_rows(X)
        n, d = X.shape
        if n < 1:
            raise InvalidArgumentError("fit() needs at least one sample")
        if d < 1:
            raise DimensionMismatchError("fit() needs at least one feature")

        X = apply_nan_policy(X, self.config.nan_policy)
        mean = np.mean(X, axis=0)
        _, s, Vt = thin_svd(X - mean)

        std = None
        if self.config.track_variance:
            std = np.sqrt(column_variance(X, self.config.nan_policy))

        self._commit(Vt.T.copy(), s, mean, n, std)
        logger.debug("Fitted PCA on %d samples: dims=%d rank=%d", n, d, self.rank())
        return self

    def load(
        self,
        bases: np.ndarray,
        values: np.ndarray,
        mean: np.ndarray,
        sample_count: int = 0,
        feature_std: Optional[np.ndarray] = None
    ) -> "IncrementalPCA":
        """
        Install a precomputed model.

        Args:
            bases: Basis matrix of shape (d, r).
            values: Singular values of shape (r,).
            mean: Mean vector of shape (d,).
            sample_count: Number of samples the model summarises. The
                persisted triple does not carry it; leaving it at 0 means
                update() will refuse to run until the model is refitted.
            feature_std: Per-feature standard deviation of the summarised
                samples, shape (d,). Seeds spread tracking when
                config.track_variance is set; ignored otherwise.

        Returns:
            self, for method chaining.
        """
        bases = np.array(bases, dtype=np.float64)
        values = np.array(values, dtype=np.float64).ravel()
        mean = np.array(mean, dtype=np.float64).ravel()

        if bases.ndim != 2:
            raise DimensionMismatchError(f"Bases must be 2-D, got shape {bases.shape}")
        d, r = bases.shape
        if values.shape[0] != r:
            raise DimensionMismatchError(
                f"Got {values.shape[0]} singular values for {r} basis columns"
            )
        if mean.shape[0] != d:
            raise DimensionMismatchError(
                f"Mean has {mean.shape[0]} entries, bases have {d} rows"
            )
        if sample_count < 0:
            raise InvalidArgumentError(f"sample_count must be >= 0, got {sample_count}")

        std = None
        if self.config.track_variance:
            if feature_std is None:
                logger.warning(
                    "track_variance is set but load() got no feature_std; "
                    "feature_std stays None until the model is refitted"
                )
            else:
                std = np.array(feature_std, dtype=np.float64).ravel()
                if std.shape[0] != d:
                    raise DimensionMismatchError(
                        f"feature_std has {std.shape[0]} entries, bases have {d} rows"
                    )

        self._commit(bases, values, mean, sample_count, std)
        return self

    def project(
        self,
        point: np.ndarray,
        k: int,
        out: Optional[np.ndarray] = None
    ) -> Optional[np.ndarray]:
        """
        Project a single point onto the first k components.

        Args:
            point: Vector of shape (d,).
            k: Number of components to keep.
            out: Optional buffer of shape (k,) to write into.

        Returns:
            Coordinates of shape (k,). Under the legacy boundary policy an
            out-of-range k returns `out` untouched (None if not given).
        """
        self._check_initialized()
        point = np.asarray(point, dtype=np.float64)
        if point.ndim != 1 or point.shape[0] != self.dims():
            raise DimensionMismatchError(
                f"Expected a vector of length {self.dims()}, got shape {point.shape}"
            )
        if not self._check_components(k, batch=False):
            return out

        result = (point - self._mean) @ self._bases[:, :k]
        if out is not None:
            out[...] = result
            return out
        return result

    def project_batch(
        self,
        X: np.ndarray,
        k: int,
        out: Optional[np.ndarray] = None
    ) -> Tuple[Optional[np.ndarray], float]:
        """
        Project every row of X onto the first k components.

        Args:
            X: Data matrix of shape (n_samples, d).
            k: Number of components to keep.
            out: Optional buffer of shape (n_samples, k) to write into.

        Returns:
            Tuple of (coordinates of shape (n_samples, k), explained
            variance ratio of the first k components). Under the legacy
            boundary policy an out-of-range k returns (out, 0.0).
        """
        self._check_initialized()
        X = np.asarray(X, dtype=np.float64)
        if X.ndim != 2 or X.shape[1] != self.dims():
            raise DimensionMismatchError(
                f"Expected a matrix with {self.dims()} columns, got shape {X.shape}"
            )
        if not self._check_components(k, batch=True):
            return out, 0.0

        result = (X - self._mean) @ self._bases[:, :k]
        ratio = self.explained_variance_ratio(k)
        if out is not None:
            out[...] = result
            return out, ratio
        return result, ratio

    def explained_variance_ratio(self, k: int) -> float:
        """
        Fraction of the total captured by the first k components.

        With variance_ratio="singular" this is sum(s[:k]) / sum(s); with
        "squared" it uses s**2, which is proportional to variance.
        """
        values = self._values
        if self.config.variance_ratio == "squared":
            values = values ** 2
        total = float(np.sum(values))
        if total <= 0.0:
            return 1.0  # All zeros, trivially explained
        return float(np.sum(values[:k]) / total)

    def transform(self, X: np.ndarray, k: Optional[int] = None) -> np.ndarray:
        """
        Project data onto the first k components (all of them if k is None).

        Accepts a single vector of shape (d,) or a matrix of shape (n, d).
        A vector goes through the batch path as one row, so both shapes
        share the batch boundary rule.
        """
        if k is None:
            k = self.rank()
        X = np.asarray(X, dtype=np.float64)
        if X.ndim == 1:
            projected, _ = self.project_batch(X.reshape(1, -1), k)
            return None if projected is None else projected.ravel()
        projected, _ = self.project_batch(X, k)
        return projected

    def inverse_project(self, Y: np.ndarray) -> np.ndarray:
        """
        Reconstruct data from coordinates on the first k components.

        Args:
            Y: Coordinates of shape (k,) or (n_samples, k).

        Returns:
            Reconstructed data of shape (d,) or (n_samples, d).
        """
        self._check_initialized()
        Y = np.asarray(Y, dtype=np.float64)
        single = Y.ndim == 1
        if single:
            Y = Y.reshape(1, -1)

        k = Y.shape[1]
        if k > self.rank():
            raise InvalidArgumentError(
                f"Got {k} coordinates but the model has {self.rank()} components"
            )

        result = Y @ self._bases[:, :k].T + self._mean

        if single:
            return result.ravel()
        return result

    def update(self, batch: np.ndarray) -> "IncrementalPCA":
        """
        Merge a new batch of samples into the model.

        Args:
            batch: New samples, shape (R, d). A single vector is treated
                as one row.

        Returns:
            self, for method chaining.
        """
        self._check_initialized()
        if self._count == 0:
            raise NotInitializedError(
                "PCA model has no sample history; pass sample_count to load() "
                "or refit before calling update()"
            )

        batch = self._as_rows(batch)
        n_new, d = batch.shape
        if d != self.dims():
            raise DimensionMismatchError(f"Expected {self.dims()} features, got {d}")
        if n_new == 0:
            raise InvalidArgumentError("update() needs at least one sample")

        prior_count = self._count
        new_count, new_mean, new_std = incremental_mean_variance(
            batch, prior_count, self._mean, self._std,
            nan_policy=self.config.nan_policy
        )

        batch = apply_nan_policy(batch, self.config.nan_policy)
        batch_mean = np.mean(batch, axis=0)
        centered = batch - batch_mean

        correction = np.sqrt(prior_count * n_new / new_count) * (self._mean - batch_mean)

        augmented = augment_matrix(self._bases, self._values, centered, correction)
        _, s, Vt = thin_svd(augmented)

        old_rank = self.rank()
        self._commit(Vt.T.copy(), s, new_mean, new_count, new_std)
        if self.rank() != old_rank:
            logger.debug("PCA rank changed from %d to %d", old_rank, self.rank())
        logger.debug("Merged %d samples into PCA (total %d)", n_new, new_count)
        return self

    def partial_fit(self, batch: np.ndarray) -> "IncrementalPCA":
        """Fit on the first batch, update on the following ones."""
        if not self._initialized:
            return self.fit(batch)
        return self.update(batch)

    def dims(self) -> int:
        """Feature dimensionality (rows of the basis)."""
        return self._bases.shape[0]

    def rank(self) -> int:
        """Number of retained components (columns of the basis)."""
        return self._bases.shape[1]

    def size(self) -> int:
        """Alias for rank()."""
        return self.rank()

    def initialized(self) -> bool:
        return self._initialized

    def clear(self) -> None:
        """Reset to the empty, uninitialised state."""
        self._reset_state()

    @property
    def bases(self) -> np.ndarray:
        """Copy of the basis matrix, shape (d, rank)."""
        return self._bases.copy()

    @property
    def values(self) -> np.ndarray:
        """Copy of the singular values, shape (rank,)."""
        return self._values.copy()

    @property
    def mean(self) -> np.ndarray:
        """Copy of the running mean, shape (d,)."""
        return self._mean.copy()

    @property
    def sample_count(self) -> int:
        return self._count

    @property
    def feature_std(self) -> Optional[np.ndarray]:
        """Running per-feature standard deviation, if tracked."""
        return None if self._std is None else self._std.copy()

    @property
    def components_(self) -> np.ndarray:
        """
        Return the principal components as row vectors.

        Shape: (rank, d), compatible with sklearn PCA API.
        """
        return self._bases.T.copy()

    def get_memory_bytes(self) -> int:
        """
        Estimate memory usage in bytes.

        Counts the basis, singular values, mean and (if tracked) the
        per-feature spread. Per-call scratch matrices are not retained.
        """
        total = self._bases.nbytes + self._values.nbytes + self._mean.nbytes
        if self._std is not None:
            total += self._std.nbytes
        return total
