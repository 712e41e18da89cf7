"""Shared fixtures for incremental PCA tests."""

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

from incremental_pca import IncrementalPCA


def make_concentrated(rng, n=100, signal=(10.0, 8.0), noise=0.1, offset=None):
    """Rows with two large-amplitude features followed by three noise features."""
    X = np.empty((n, 5))
    X[:, :2] = rng.standard_normal((n, 2)) * np.asarray(signal)
    X[:, 2:] = rng.standard_normal((n, 3)) * noise
    if offset is not None:
        X += offset
    return X


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def concentrated_data(rng):
    """100 x 5 dataset whose variance lives in the first two features."""
    return make_concentrated(rng)


@pytest.fixture
def fitted_model(concentrated_data):
    return IncrementalPCA().fit(concentrated_data)


@pytest.fixture
def make_data():
    """Factory for concentrated datasets with custom size and offset."""
    return make_concentrated
