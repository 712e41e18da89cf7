# Author: Emrullah Erce Dutkan
"""
Evaluation metrics for incremental PCA models.

Metrics compare an estimated basis against a reference (batch PCA or the
known generating subspace) and check the structural invariants the model
promises after every fit/update:

1. Subspace distance via principal angles
2. Explained variance ratio on held-out data
3. Reconstruction error of project-then-reconstruct
4. Orthonormality of the basis columns
5. Ordering of the singular values
"""

from typing import Optional
import numpy as np

from .linalg import thin_svd


def _as_columns(W: np.ndarray) -> np.ndarray:
    """
    Return W with components as columns, shape (d, k).

    Components given as rows (k, d), as in `components_`, are transposed.
    A matrix is taken to be row-major when it has fewer rows than columns.
    """
    W = np.asarray(W, dtype=np.float64)
    if W.ndim == 1:
        return W.reshape(-1, 1)
    if W.shape[0] < W.shape[1]:
        return W.T
    return W


def principal_angles(W1: np.ndarray, W2: np.ndarray) -> np.ndarray:
    """
    Compute principal angles between two subspaces.

    cos(theta_i) = sigma_i(W1^T W2) for orthonormal W1, W2.

    Args:
        W1: Matrix with orthonormal columns, shape (d, k1).
        W2: Matrix with orthonormal columns, shape (d, k2).

    Returns:
        Array of principal angles in radians, length min(k1, k2).
    """
    if W1.ndim == 1:
        W1 = W1.reshape(-1, 1)
    if W2.ndim == 1:
        W2 = W2.reshape(-1, 1)

    _, s, _ = thin_svd(W1.T @ W2)

    # Clip to [0, 1] for numerical stability
    return np.arccos(np.clip(s, 0, 1))


def subspace_distance(
    W_est: np.ndarray,
    W_ref: np.ndarray,
    method: str = "sin"
) -> float:
    """
    Compute distance between estimated and reference subspaces.

    Args:
        W_est: Estimated components, shape (d, k) or (k, d).
        W_ref: Reference components, shape (d, k) or (k, d).
        method: Distance measure:
            - "sin": Mean of sin(theta) for principal angles (default)
            - "sin_max": Maximum sin(theta)
            - "grassmann": Grassmann distance sqrt(sum(theta^2))
            - "projection": 1 - mean(cos(theta))

    Returns:
        Subspace distance (0 = identical, larger = more different). The
        measure is invariant to the sign of each component.
    """
    W_est, _ = np.linalg.qr(_as_columns(W_est))
    W_ref, _ = np.linalg.qr(_as_columns(W_ref))

    angles = principal_angles(W_est, W_ref)

    if method == "sin":
        return float(np.mean(np.sin(angles)))
    elif method == "sin_max":
        return float(np.max(np.sin(angles)))
    elif method == "grassmann":
        return float(np.sqrt(np.sum(angles ** 2)))
    elif method == "projection":
        return float(1 - np.mean(np.cos(angles)))
    else:
        raise ValueError(f"Unknown method: {method}")


def explained_variance_ratio(
    X: np.ndarray,
    W: np.ndarray,
    mean: Optional[np.ndarray] = None
) -> float:
    """
    Empirical explained variance ratio of a basis on data.

        EV = mean(||W^T x||^2) / mean(||x||^2)

    for centered samples x.

    Args:
        X: Data matrix of shape (n_samples, d).
        W: Components, shape (d, k) or (k, d), orthonormal.
        mean: Mean used for centering. If None, the column mean of X.

    Returns:
        Explained variance ratio in [0, 1].
    """
    X = np.asarray(X, dtype=np.float64)
    W = _as_columns(W)

    X = X - (np.mean(X, axis=0) if mean is None else mean)

    total_var = np.mean(np.sum(X ** 2, axis=1))
    if total_var < 1e-10:
        return 1.0  # All zeros, trivially explained

    proj_var = np.mean(np.sum((X @ W) ** 2, axis=1))
    return float(proj_var / total_var)


def reconstruction_error(
    X: np.ndarray,
    W: np.ndarray,
    mean: Optional[np.ndarray] = None
) -> float:
    """
    Mean squared error of projecting onto W and reconstructing.

        MSE = mean(||x - W W^T x||^2)

    Args:
        X: Data matrix of shape (n_samples, d).
        W: Components, shape (d, k) or (k, d).
        mean: Mean used for centering. If None, the column mean of X.

    Returns:
        Mean squared reconstruction error.
    """
    X = np.asarray(X, dtype=np.float64)
    W = _as_columns(W)

    X_centered = X - (np.mean(X, axis=0) if mean is None else mean)
    error = X_centered - (X_centered @ W) @ W.T
    return float(np.mean(np.sum(error ** 2, axis=1)))


def orthonormality_error(W: np.ndarray) -> float:
    """
    Largest absolute deviation of W^T W from the identity.

    Args:
        W: Matrix whose columns should be orthonormal, shape (d, k).

    Returns:
        max |W^T W - I|, 0 for a perfectly orthonormal basis.
    """
    W = np.asarray(W, dtype=np.float64)
    if W.size == 0:
        return 0.0
    gram = W.T @ W
    return float(np.max(np.abs(gram - np.eye(gram.shape[0]))))


def is_non_increasing(values: np.ndarray, tol: float = 1e-12) -> bool:
    """Check that singular values are sorted in descending order."""
    values = np.asarray(values, dtype=np.float64)
    return bool(np.all(np.diff(values) <= tol))


def compute_all_metrics(
    W_est: np.ndarray,
    W_ref: np.ndarray,
    X_test: np.ndarray,
    mean: Optional[np.ndarray] = None
) -> dict:
    """
    Compute all evaluation metrics.

    Args:
        W_est: Estimated components.
        W_ref: Reference components (batch PCA or ground truth).
        X_test: Held-out data.
        mean: Mean used for centering X_test (the model's mean, usually).

    Returns:
        Dictionary with keys subspace_error, subspace_error_max,
        explained_variance, explained_variance_ref, reconstruction_error,
        reconstruction_error_ref.
    """
    return {
        "subspace_error": subspace_distance(W_est, W_ref, method="sin"),
        "subspace_error_max": subspace_distance(W_est, W_ref, method="sin_max"),
        "explained_variance": explained_variance_ratio(X_test, W_est, mean=mean),
        "explained_variance_ref": explained_variance_ratio(X_test, W_ref),
        "reconstruction_error": reconstruction_error(X_test, W_est, mean=mean),
        "reconstruction_error_ref": reconstruction_error(X_test, W_ref),
    }


def batch_pca_reference(X: np.ndarray, k: int) -> np.ndarray:
    """
    Compute batch PCA components with a single SVD over all data.

    Args:
        X: Data matrix of shape (n_samples, d).
        k: Number of principal components.

    Returns:
        Principal components of shape (k, d), as row vectors.
    """
    X = np.asarray(X, dtype=np.float64)
    _, _, Vt = thin_svd(X - np.mean(X, axis=0))
    return Vt[:k].copy()
