# Author: Emrullah Erce Dutkan
"""
Dataset loading utilities for incremental PCA experiments.

Available datasets:
- digits: 8x8 handwritten digit images (1797 samples, 64 features), via
  scikit-learn
- synthetic: Generated low-rank data
- random: Full-rank Gaussian data

Feature matrices on disk (.npy or .csv) load through load_matrix, and
iter_batches slices any matrix into the blocks fed to update().
"""

from typing import Iterator, Tuple, Optional
import os
import numpy as np

from .stream import SyntheticStream


def load_digits() -> Tuple[np.ndarray, np.ndarray]:
    """
    Load the digits dataset from sklearn.

    Returns:
        Tuple of (X, y) with X of shape (1797, 64) and y of shape (1797,).
    """
    from sklearn.datasets import load_digits as sklearn_load_digits

    data = sklearn_load_digits()
    return data.data.astype(np.float64), data.target


def load_synthetic(
    n: int = 10000,
    d: int = 20,
    rank: int = 5,
    noise_std: float = 0.1,
    seed: Optional[int] = 42
) -> Tuple[np.ndarray, None]:
    """
    Generate a synthetic low-rank dataset.

    Returns:
        Tuple of (X, None) where X has shape (n, d).
    """
    stream = SyntheticStream(d=d, rank=rank, noise_std=noise_std, seed=seed)
    return stream.next_batch(n), None


def load_random(
    n: int = 10000,
    d: int = 20,
    seed: Optional[int] = 42
) -> Tuple[np.ndarray, None]:
    """
    Generate random Gaussian data (full rank).

    Returns:
        Tuple of (X, None) where X has shape (n, d).
    """
    rng = np.random.default_rng(seed)
    return rng.standard_normal((n, d)), None


def load_dataset(
    name: str,
    n: Optional[int] = None,
    d: Optional[int] = None,
    seed: Optional[int] = 42
) -> Tuple[np.ndarray, Optional[np.ndarray]]:
    """
    Load a dataset by name.

    Args:
        name: Dataset name ("digits", "synthetic", "random").
        n: Number of samples (for generated datasets).
        d: Dimensionality (for generated datasets).
        seed: Random seed.

    Returns:
        Tuple of (X, y) where y may be None.
    """
    if name == "digits":
        return load_digits()
    elif name == "synthetic":
        n = n or 10000
        d = d or 20
        return load_synthetic(n=n, d=d, rank=max(1, min(5, d // 2)), seed=seed)
    elif name == "random":
        n = n or 10000
        d = d or 20
        return load_random(n=n, d=d, seed=seed)
    else:
        raise ValueError(f"Unknown dataset: {name}")


def load_matrix(path: str) -> np.ndarray:
    """
    Load a feature matrix from .npy or .csv (comma separated, no header).

    Returns:
        2-D float64 array; a single row or column on disk becomes (1, d)
        or (n, 1) respectively.
    """
    ext = os.path.splitext(path)[1].lower()
    if ext == ".npy":
        X = np.load(path)
    elif ext == ".csv":
        X = np.loadtxt(path, delimiter=",", ndmin=2)
    else:
        raise ValueError(f"Unsupported matrix format: {ext}")
    X = np.asarray(X, dtype=np.float64)
    if X.ndim == 1:
        X = X.reshape(1, -1)
    return X


def save_matrix(X: np.ndarray, path: str) -> None:
    """Save a matrix as .npy or .csv, chosen by extension."""
    ext = os.path.splitext(path)[1].lower()
    if ext == ".npy":
        np.save(path, np.asarray(X))
    elif ext == ".csv":
        np.savetxt(path, np.atleast_2d(X), delimiter=",")
    else:
        raise ValueError(f"Unsupported matrix format: {ext}")


def iter_batches(X: np.ndarray, batch_size: int) -> Iterator[np.ndarray]:
    """
    Yield consecutive row blocks of X.

    The last block holds the remainder and may be smaller.
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")
    for start in range(0, X.shape[0], batch_size):
        yield X[start:start + batch_size]


def split_train_test(
    X: np.ndarray,
    test_ratio: float = 0.2,
    seed: Optional[int] = 42
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Split data into train and test sets.

    Returns:
        Tuple of (X_train, X_test).
    """
    rng = np.random.default_rng(seed)
    n = X.shape[0]
    n_test = int(n * test_ratio)

    indices = np.arange(n)
    rng.shuffle(indices)

    return X[indices[n_test:]], X[indices[:n_test]]
