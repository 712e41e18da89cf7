"""Tests for the incremental PCA model."""

import numpy as np
import pytest

from incremental_pca import IncrementalPCA, PCAConfig, augment_matrix
from incremental_pca.errors import (
    DimensionMismatchError,
    InvalidArgumentError,
    NotInitializedError,
)
from incremental_pca.linalg import thin_svd
from incremental_pca.metrics import is_non_increasing, orthonormality_error, subspace_distance


class TestFit:
    """Tests for batch fitting."""

    def test_shapes(self, fitted_model):
        """Basis is dims x min(N, D)."""
        assert fitted_model.initialized()
        assert fitted_model.dims() == 5
        assert fitted_model.rank() == 5
        assert fitted_model.size() == 5
        assert fitted_model.sample_count == 100
        assert fitted_model.values.shape == (5,)
        assert fitted_model.mean.shape == (5,)

    def test_orthonormal_basis(self, fitted_model):
        """Basis columns are orthonormal."""
        assert orthonormality_error(fitted_model.bases) < 1e-10

    def test_values_non_increasing(self, fitted_model):
        """Singular values come out sorted."""
        assert is_non_increasing(fitted_model.values)

    def test_mean_is_column_mean(self, fitted_model, concentrated_data):
        np.testing.assert_allclose(fitted_model.mean, concentrated_data.mean(axis=0))

    def test_fewer_rows_than_features(self, rng):
        """Rank is limited by the number of samples."""
        model = IncrementalPCA().fit(rng.standard_normal((3, 5)))
        assert model.rank() == 3
        assert model.dims() == 5

    def test_empty_input_rejected(self):
        model = IncrementalPCA()
        with pytest.raises(InvalidArgumentError):
            model.fit(np.zeros((0, 4)))
        assert not model.initialized()

    def test_dominant_components(self, fitted_model):
        """Two high-variance features give two dominant singular values."""
        s = fitted_model.values
        assert s[0] > 10 * s[2]
        assert s[1] > 10 * s[2]

    def test_idempotent_refit_projection(self, concentrated_data):
        """Projecting the training data matches centering against the basis."""
        model = IncrementalPCA().fit(concentrated_data)
        projected, _ = model.project_batch(concentrated_data, model.rank())

        expected = (concentrated_data - concentrated_data.mean(axis=0)) @ model.bases
        np.testing.assert_allclose(projected, expected, atol=1e-10)

        # Same coordinates as U * s from a direct SVD, up to sign per component
        centered = concentrated_data - concentrated_data.mean(axis=0)
        U, s, _ = np.linalg.svd(centered, full_matrices=False)
        np.testing.assert_allclose(np.abs(projected), np.abs(U * s), atol=1e-8)


class TestProjection:
    """Tests for point and batch projection."""

    def test_point_projection(self, fitted_model, concentrated_data):
        point = concentrated_data[0]
        coords = fitted_model.project(point, 2)
        expected = (point - fitted_model.mean) @ fitted_model.bases[:, :2]
        assert coords.shape == (2,)
        np.testing.assert_allclose(coords, expected)

    def test_point_projection_into_buffer(self, fitted_model, concentrated_data):
        out = np.zeros(3)
        result = fitted_model.project(concentrated_data[0], 3, out=out)
        assert result is out
        assert np.any(out != 0)

    def test_batch_projection_shape(self, fitted_model, concentrated_data):
        projected, ratio = fitted_model.project_batch(concentrated_data, 2)
        assert projected.shape == (100, 2)
        assert 0.0 < ratio <= 1.0

    def test_unsquared_ratio(self, fitted_model, concentrated_data):
        """Default ratio divides sums of singular values."""
        s = fitted_model.values
        _, ratio = fitted_model.project_batch(concentrated_data, 2)
        assert ratio == pytest.approx(s[:2].sum() / s.sum())
        # Two dominant features clear the 0.9 bar even without squaring
        assert ratio > 0.9

    def test_squared_ratio(self, concentrated_data):
        """The squared convention captures > 90% with two components."""
        model = IncrementalPCA(PCAConfig(variance_ratio="squared")).fit(concentrated_data)
        s = model.values
        _, ratio = model.project_batch(concentrated_data, 2)
        assert ratio == pytest.approx((s[:2] ** 2).sum() / (s ** 2).sum())
        assert ratio > 0.9

    def test_zero_total_ratio(self):
        """Constant data has no variance; the ratio is reported as 1."""
        model = IncrementalPCA().fit(np.ones((10, 3)))
        assert model.explained_variance_ratio(1) == 1.0

    def test_transform_dispatch(self, fitted_model, concentrated_data):
        assert fitted_model.transform(concentrated_data[0]).shape == (5,)
        assert fitted_model.transform(concentrated_data, k=2).shape == (100, 2)

    def test_point_dimension_mismatch(self, fitted_model):
        with pytest.raises(DimensionMismatchError):
            fitted_model.project(np.zeros(4), 2)

    def test_batch_dimension_mismatch(self, fitted_model):
        with pytest.raises(DimensionMismatchError):
            fitted_model.project_batch(np.zeros((3, 6)), 2)

    def test_uninitialized(self):
        model = IncrementalPCA()
        with pytest.raises(NotInitializedError):
            model.project(np.zeros(3), 1)
        with pytest.raises(NotInitializedError):
            model.project_batch(np.zeros((2, 3)), 1)

    def test_inverse_project_full_rank(self, fitted_model, concentrated_data):
        """Full-rank coordinates reconstruct the input."""
        coords = fitted_model.transform(concentrated_data)
        np.testing.assert_allclose(fitted_model.inverse_project(coords), concentrated_data, atol=1e-10)

    def test_inverse_project_too_many(self, fitted_model):
        with pytest.raises(InvalidArgumentError):
            fitted_model.inverse_project(np.zeros(6))


class TestBoundaryPolicy:
    """k == rank() is valid, k == rank() + 1 is not."""

    def test_unified_point(self, fitted_model, concentrated_data):
        rank = fitted_model.rank()
        assert fitted_model.project(concentrated_data[0], rank).shape == (rank,)
        with pytest.raises(InvalidArgumentError):
            fitted_model.project(concentrated_data[0], rank + 1)

    def test_unified_batch(self, fitted_model, concentrated_data):
        rank = fitted_model.rank()
        projected, ratio = fitted_model.project_batch(concentrated_data, rank)
        assert projected.shape == (100, rank)
        assert ratio == pytest.approx(1.0)
        with pytest.raises(InvalidArgumentError):
            fitted_model.project_batch(concentrated_data, rank + 1)

    def test_negative_k(self, fitted_model, concentrated_data):
        with pytest.raises(InvalidArgumentError):
            fitted_model.project(concentrated_data[0], -1)

    def test_legacy_point_rejects_rank(self, concentrated_data):
        """Legacy point projection is a no-op from k == rank() upwards."""
        model = IncrementalPCA(PCAConfig(boundary_policy="legacy")).fit(concentrated_data)
        out = np.full(model.rank(), 7.0)
        result = model.project(concentrated_data[0], model.rank(), out=out)
        assert result is out
        np.testing.assert_array_equal(out, 7.0)
        assert model.project(concentrated_data[0], model.rank()) is None
        assert model.project(concentrated_data[0], model.rank() - 1).shape == (model.rank() - 1,)

    def test_legacy_batch(self, concentrated_data):
        """Legacy batch projection accepts k == rank() and ignores k > rank()."""
        model = IncrementalPCA(PCAConfig(boundary_policy="legacy")).fit(concentrated_data)
        projected, _ = model.project_batch(concentrated_data, model.rank())
        assert projected.shape == (100, model.rank())

        out = np.zeros((100, model.rank() + 1))
        result, ratio = model.project_batch(concentrated_data, model.rank() + 1, out=out)
        assert result is out
        assert ratio == 0.0
        np.testing.assert_array_equal(out, 0.0)

    def test_legacy_transform_vector(self, concentrated_data):
        """transform() of a single point uses all components under both policies."""
        model = IncrementalPCA(PCAConfig(boundary_policy="legacy")).fit(concentrated_data)
        coords = model.transform(concentrated_data[0])
        assert coords.shape == (model.rank(),)
        np.testing.assert_allclose(coords, model.transform(concentrated_data[:1])[0])


class TestUpdate:
    """Tests for the incremental refit."""

    def test_count_conservation(self, fitted_model, make_data, rng):
        before = fitted_model.sample_count
        fitted_model.update(make_data(rng, n=10))
        assert fitted_model.sample_count == before + 10

    def test_orthonormal_and_sorted(self, fitted_model, make_data, rng):
        for _ in range(5):
            fitted_model.update(make_data(rng, n=10))
            assert orthonormality_error(fitted_model.bases) < 1e-10
            assert is_non_increasing(fitted_model.values)

    def test_global_mean(self, concentrated_data, make_data, rng):
        model = IncrementalPCA().fit(concentrated_data)
        batch = make_data(rng, n=20, offset=3.0)
        model.update(batch)
        np.testing.assert_allclose(
            model.mean, np.vstack([concentrated_data, batch]).mean(axis=0), rtol=1e-12
        )

    def test_full_rank_update_matches_batch_fit(self, rng):
        """Without truncation the merge reproduces a batch fit exactly."""
        X1 = rng.standard_normal((40, 4)) * [5.0, 3.0, 1.0, 0.5]
        X2 = rng.standard_normal((25, 4)) * [5.0, 3.0, 1.0, 0.5] + 2.0

        merged = IncrementalPCA().fit(X1).update(X2)
        batch = IncrementalPCA().fit(np.vstack([X1, X2]))

        np.testing.assert_allclose(merged.values, batch.values, rtol=1e-8)
        np.testing.assert_allclose(merged.mean, batch.mean, rtol=1e-12)
        assert subspace_distance(merged.bases[:, :2], batch.bases[:, :2]) < 1e-6

    def test_in_distribution_stability(self, concentrated_data, make_data, rng):
        """Ten rows from the same distribution barely move the model."""
        model = IncrementalPCA().fit(concentrated_data)
        values_before = model.values / np.sqrt(model.sample_count)
        bases_before = model.bases

        model.update(make_data(rng, n=10))
        values_after = model.values / np.sqrt(model.sample_count)

        np.testing.assert_allclose(values_after[:2], values_before[:2], rtol=0.25)
        assert subspace_distance(model.bases[:, :2], bases_before[:, :2]) < 0.05

    def test_shifted_distribution_rotates_basis(self, concentrated_data, make_data, rng):
        """A batch far away along a noise feature pulls the basis towards it."""
        model = IncrementalPCA().fit(concentrated_data)
        bases_before = model.bases

        offset = np.array([0.0, 0.0, 0.0, 0.0, 50.0])
        model.update(make_data(rng, n=10, offset=offset))

        assert subspace_distance(model.bases[:, :2], bases_before[:, :2]) > 0.2
        assert abs(model.bases[4, 0]) > 0.9

    def test_rank_can_grow(self, rng):
        """Augmented rows can raise the rank up to dims()."""
        model = IncrementalPCA().fit(rng.standard_normal((2, 6)))
        assert model.rank() == 2
        model.update(rng.standard_normal((2, 6)))
        assert model.rank() == 5
        model.update(rng.standard_normal((3, 6)))
        assert model.rank() == 6

    def test_single_vector_is_one_row(self, fitted_model):
        fitted_model.update(np.zeros(5))
        assert fitted_model.sample_count == 101

    def test_uninitialized(self):
        with pytest.raises(NotInitializedError):
            IncrementalPCA().update(np.zeros((2, 3)))

    def test_dimension_mismatch_leaves_model_untouched(self, fitted_model):
        bases, values, mean = fitted_model.bases, fitted_model.values, fitted_model.mean
        with pytest.raises(DimensionMismatchError):
            fitted_model.update(np.zeros((4, 3)))
        np.testing.assert_array_equal(fitted_model.bases, bases)
        np.testing.assert_array_equal(fitted_model.values, values)
        np.testing.assert_array_equal(fitted_model.mean, mean)
        assert fitted_model.sample_count == 100

    def test_empty_batch(self, fitted_model):
        with pytest.raises(InvalidArgumentError):
            fitted_model.update(np.zeros((0, 5)))

    def test_nan_rows_counted(self, fitted_model, make_data, rng):
        """NaN entries are zeroed, not dropped."""
        batch = make_data(rng, n=4)
        batch[0, 0] = np.nan
        fitted_model.update(batch)
        assert fitted_model.sample_count == 104
        assert np.all(np.isfinite(fitted_model.bases))

    def test_partial_fit(self, concentrated_data):
        model = IncrementalPCA()
        model.partial_fit(concentrated_data[:50]).partial_fit(concentrated_data[50:])
        assert model.sample_count == 100
        np.testing.assert_allclose(model.mean, concentrated_data.mean(axis=0))

    def test_track_variance(self, concentrated_data, make_data, rng):
        """The optional per-feature spread follows the merged data."""
        model = IncrementalPCA(PCAConfig(track_variance=True)).fit(concentrated_data)
        batch = make_data(rng, n=30, offset=1.0)
        model.update(batch)
        np.testing.assert_allclose(
            model.feature_std, np.vstack([concentrated_data, batch]).std(axis=0), rtol=1e-10
        )

    def test_feature_std_untracked(self, fitted_model):
        assert fitted_model.feature_std is None


class TestLoad:
    """Tests for installing precomputed models."""

    def test_load_and_project(self, fitted_model, concentrated_data):
        loaded = IncrementalPCA().load(fitted_model.bases, fitted_model.values, fitted_model.mean)
        assert loaded.initialized()
        assert loaded.sample_count == 0
        np.testing.assert_allclose(
            loaded.project(concentrated_data[3], 2),
            fitted_model.project(concentrated_data[3], 2)
        )

    def test_update_needs_sample_count(self, fitted_model):
        loaded = IncrementalPCA().load(fitted_model.bases, fitted_model.values, fitted_model.mean)
        with pytest.raises(NotInitializedError):
            loaded.update(np.zeros((2, 5)))

    def test_update_with_sample_count(self, fitted_model, make_data, rng):
        loaded = IncrementalPCA().load(
            fitted_model.bases, fitted_model.values, fitted_model.mean, sample_count=100
        )
        batch = make_data(rng, n=10)
        loaded.update(batch)
        fitted_model.update(batch)
        np.testing.assert_allclose(loaded.values, fitted_model.values)
        assert loaded.sample_count == 110

    def test_mismatched_shapes_rejected(self, fitted_model):
        model = IncrementalPCA()
        with pytest.raises(DimensionMismatchError):
            model.load(np.eye(5), np.ones(4), np.zeros(5))
        with pytest.raises(DimensionMismatchError):
            model.load(np.eye(5), np.ones(5), np.zeros(3))
        assert not model.initialized()

    def test_failed_load_keeps_previous_model(self, fitted_model):
        bases = fitted_model.bases
        with pytest.raises(DimensionMismatchError):
            fitted_model.load(np.eye(3), np.ones(2), np.zeros(3))
        np.testing.assert_array_equal(fitted_model.bases, bases)

    def test_feature_std_seeds_tracking(self, concentrated_data, make_data, rng):
        """A loaded spread keeps being merged by later updates."""
        config = PCAConfig(track_variance=True)
        source = IncrementalPCA(config).fit(concentrated_data)
        loaded = IncrementalPCA(config).load(
            source.bases, source.values, source.mean,
            sample_count=100, feature_std=source.feature_std
        )
        batch = make_data(rng, n=20, offset=2.0)
        loaded.update(batch)
        np.testing.assert_allclose(
            loaded.feature_std, np.vstack([concentrated_data, batch]).std(axis=0), rtol=1e-10
        )

    def test_missing_feature_std_warns(self, fitted_model, caplog):
        model = IncrementalPCA(PCAConfig(track_variance=True))
        with caplog.at_level("WARNING", logger="incremental_pca.pca"):
            model.load(fitted_model.bases, fitted_model.values, fitted_model.mean, sample_count=100)
        assert "feature_std" in caplog.text
        model.update(np.zeros((2, 5)))
        assert model.feature_std is None

    def test_feature_std_shape_checked(self, fitted_model):
        model = IncrementalPCA(PCAConfig(track_variance=True))
        with pytest.raises(DimensionMismatchError):
            model.load(
                fitted_model.bases, fitted_model.values, fitted_model.mean,
                feature_std=np.ones(3)
            )
        assert not model.initialized()


class TestAccessors:
    """Tests for clear() and read accessors."""

    def test_clear(self, fitted_model):
        fitted_model.clear()
        assert not fitted_model.initialized()
        assert fitted_model.sample_count == 0
        assert fitted_model.rank() == 0
        with pytest.raises(NotInitializedError):
            fitted_model.project(np.zeros(5), 1)

    def test_accessors_return_copies(self, fitted_model):
        bases = fitted_model.bases
        bases[:] = 0
        assert np.any(fitted_model.bases != 0)

    def test_components_rows(self, fitted_model):
        np.testing.assert_array_equal(fitted_model.components_, fitted_model.bases.T)

    def test_memory_bytes(self, fitted_model):
        assert fitted_model.get_memory_bytes() == (25 + 5 + 5) * 8


class TestAugmentMatrix:
    """Tests for the merge matrix in isolation from the SVD."""

    def test_layout(self):
        bases = np.eye(3)[:, :2]
        values = np.array([4.0, 2.0])
        centered = np.arange(6, dtype=float).reshape(2, 3)
        correction = np.array([1.0, 1.0, 1.0])

        M = augment_matrix(bases, values, centered, correction)

        assert M.shape == (5, 3)
        np.testing.assert_array_equal(M[0], [4.0, 0.0, 0.0])
        np.testing.assert_array_equal(M[1], [0.0, 2.0, 0.0])
        np.testing.assert_array_equal(M[2:4], centered)
        np.testing.assert_array_equal(M[4], correction)

    def test_gram_preserved(self, fitted_model, concentrated_data):
        """Weighted components reproduce the scatter matrix of the fit."""
        M = augment_matrix(fitted_model.bases, fitted_model.values, np.zeros((0, 5)), np.zeros(5))
        centered = concentrated_data - concentrated_data.mean(axis=0)
        np.testing.assert_allclose(M.T @ M, centered.T @ centered, atol=1e-8)


class TestNonFiniteInput:
    """NaN left in place by the "propagate" policy stops at the SVD."""

    def test_thin_svd_rejects_nan(self):
        X = np.ones((3, 2))
        X[1, 0] = np.nan
        with pytest.raises(np.linalg.LinAlgError):
            thin_svd(X)

    def test_fit_with_propagate(self, concentrated_data):
        X = concentrated_data.copy()
        X[0, 0] = np.nan
        model = IncrementalPCA(PCAConfig(nan_policy="propagate"))
        with pytest.raises(np.linalg.LinAlgError):
            model.fit(X)
        assert not model.initialized()

    def test_update_with_propagate_keeps_model(self, concentrated_data):
        model = IncrementalPCA(PCAConfig(nan_policy="propagate")).fit(concentrated_data)
        values = model.values
        batch = np.zeros((2, 5))
        batch[0, 3] = np.nan
        with pytest.raises(np.linalg.LinAlgError):
            model.update(batch)
        np.testing.assert_array_equal(model.values, values)
        assert model.sample_count == 100
