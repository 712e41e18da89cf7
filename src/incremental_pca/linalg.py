# Author: Emrullah Erce Dutkan
"""
Dense linear-algebra primitives used by the PCA core.

Thin SVD goes through numpy first and falls back to scipy's ``gesvd``
driver, which is slower but converges on inputs where the default
divide-and-conquer driver gives up.
"""

from typing import Tuple
import numpy as np
from scipy import linalg as sp_linalg


NAN_POLICIES = ("zero", "propagate")


def thin_svd(X: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Thin singular value decomposition X = U diag(s) Vt.

    Args:
        X: Matrix of shape (n, d).

    Returns:
        Tuple (U, s, Vt) with shapes (n, r), (r,), (r, d) where r = min(n, d).
        Singular values are sorted in descending order.

    Raises:
        numpy.linalg.LinAlgError: if X holds NaN or infinite entries, or
            neither backend converges.
    """
    if not np.all(np.isfinite(X)):
        raise np.linalg.LinAlgError("SVD input contains NaN or infinite values")
    try:
        return np.linalg.svd(X, full_matrices=False)
    except np.linalg.LinAlgError:
        return sp_linalg.svd(X, full_matrices=False, lapack_driver="gesvd")


def apply_nan_policy(X: np.ndarray, nan_policy: str = "zero") -> np.ndarray:
    """
    Return X with NaN entries handled according to the policy.

    "zero" replaces NaN with 0 (NaNs still count as samples),
    "propagate" leaves them in place.
    """
    if nan_policy == "zero":
        return np.where(np.isnan(X), 0.0, X)
    elif nan_policy == "propagate":
        return X
    else:
        raise ValueError(f"Unknown nan_policy: {nan_policy}")


def column_variance(X: np.ndarray, nan_policy: str = "zero") -> np.ndarray:
    """Column-wise population variance (divides by n) of an (n, d) matrix."""
    return np.var(apply_nan_policy(X, nan_policy), axis=0)
