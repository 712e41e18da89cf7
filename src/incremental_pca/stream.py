# Author: Emrullah Erce Dutkan
"""
Synthetic batch streams for exercising incremental PCA.

Feature frames from an audio analysis front end arrive in blocks; these
generators reproduce that shape with controllable structure:
- Low-rank Gaussian data with a chosen eigenvalue decay
- Concept drift (the principal subspace rotates over time)
- Mean shift (the centroid jumps after a number of samples)
"""

from typing import Iterator, Optional, Tuple, Literal
import numpy as np

from .config import StreamConfig


EigenvalueDecay = Literal["linear", "exponential", "polynomial"]


def generate_covariance_matrix(
    d: int,
    rank: int,
    noise_std: float = 0.1,
    decay: EigenvalueDecay = "exponential",
    decay_rate: float = 0.5,
    seed: Optional[int] = None
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Generate a random eigenbasis and an eigenvalue profile.

    Args:
        d: Dimensionality.
        rank: Number of dominant eigenvalues.
        noise_std: Standard deviation of the isotropic noise floor.
        decay: Type of eigenvalue decay ("linear", "exponential", "polynomial").
        decay_rate: Controls decay speed.
        seed: Random seed.

    Returns:
        Tuple of eigenvectors (d, d) as columns and eigenvalues (d,),
        sorted descending.
    """
    rng = np.random.default_rng(seed)

    Q, _ = np.linalg.qr(rng.standard_normal((d, d)))

    idx = np.arange(rank)
    if decay == "linear":
        head = 1 - decay_rate * idx / rank
    elif decay == "exponential":
        head = np.exp(-decay_rate * idx)
    elif decay == "polynomial":
        head = 1 / ((idx + 1) ** decay_rate)
    else:
        raise ValueError(f"Unknown decay type: {decay}")

    lambdas = np.full(d, noise_std ** 2)
    lambdas[:rank] = head
    lambdas = np.maximum(lambdas, 1e-10)

    order = np.argsort(lambdas)[::-1]
    return Q[:, order], lambdas[order]


def rotation_matrix(d: int, angle: float, plane: Tuple[int, int]) -> np.ndarray:
    """
    Rotation by `angle` radians in the (i, j) coordinate plane.

    Returns:
        Rotation matrix (d, d).
    """
    R = np.eye(d)
    i, j = plane
    c, s = np.cos(angle), np.sin(angle)
    R[i, i] = c
    R[j, j] = c
    R[i, j] = -s
    R[j, i] = s
    return R


class SyntheticStream:
    """
    Batch generator for low-rank Gaussian data.

    Samples are x = mean + V diag(sqrt(lambda)) z with z ~ N(0, I). With
    drift_interval set, the eigenbasis is rotated every drift_interval
    samples. With shift_after set, the mean moves by shift_scale along the
    weakest eigen-direction once that many samples have been produced.

    Attributes:
        d: Dimensionality.
        rank: Number of dominant components.
        current_eigenvectors: Current principal directions (may drift).
    """

    def __init__(
        self,
        d: int,
        rank: int,
        noise_std: float = 0.1,
        decay: EigenvalueDecay = "exponential",
        decay_rate: float = 0.5,
        mean: Optional[np.ndarray] = None,
        drift_interval: Optional[int] = None,
        drift_angle: float = 0.1,
        shift_after: Optional[int] = None,
        shift_scale: float = 2.0,
        seed: Optional[int] = None
    ):
        """
        Initialize the synthetic stream.

        Args:
            d: Dimensionality of each sample.
            rank: Number of dominant principal components.
            noise_std: Noise standard deviation.
            decay: Eigenvalue decay type.
            decay_rate: Eigenvalue decay rate.
            mean: Mean vector. If None, uses zeros.
            drift_interval: If set, rotate the subspace every N samples.
            drift_angle: Rotation angle per drift event (radians).
            shift_after: If set, shift the mean after N samples.
            shift_scale: Size of the mean shift.
            seed: Random seed for reproducibility.
        """
        if rank > d:
            raise ValueError(f"rank ({rank}) must be <= d ({d})")

        self.d = d
        self.rank = rank
        self.drift_interval = drift_interval
        self.drift_angle = drift_angle
        self.shift_after = shift_after
        self.shift_scale = shift_scale
        self.seed = seed

        # Separate generators: the eigenstructure is fixed, batch draws restart on reset()
        covariance_seq, self._batch_seq = np.random.SeedSequence(seed).spawn(2)
        self.rng = np.random.default_rng(self._batch_seq)

        self.eigenvectors, self.eigenvalues = generate_covariance_matrix(
            d, rank, noise_std, decay, decay_rate,
            seed=covariance_seq
        )
        self.base_mean = np.zeros(d) if mean is None else np.asarray(mean, dtype=np.float64)

        self._init_state()

    def _init_state(self) -> None:
        self.current_eigenvectors = self.eigenvectors.copy()
        self.mean = self.base_mean.copy()
        self.n_samples = 0
        self.n_drifts = 0
        self.shifted = False

    def _apply_drift(self) -> None:
        """Rotate the leading component towards another dominant one."""
        if self.d < 2:
            return
        j = self.rng.integers(1, min(self.rank + 1, self.d))
        R = rotation_matrix(self.d, self.drift_angle, (0, j))
        self.current_eigenvectors = R @ self.current_eigenvectors
        self.n_drifts += 1

    def _apply_shift(self) -> None:
        self.mean = self.base_mean + self.shift_scale * self.current_eigenvectors[:, -1]
        self.shifted = True

    def next_batch(self, n: int) -> np.ndarray:
        """
        Generate the next n samples.

        Drift and shift events are applied at batch boundaries.

        Returns:
            Data matrix of shape (n, d).
        """
        if self.drift_interval is not None and self.n_samples > 0:
            while self.n_drifts < self.n_samples // self.drift_interval:
                self._apply_drift()

        if self.shift_after is not None and not self.shifted:
            if self.n_samples >= self.shift_after:
                self._apply_shift()

        X = self._draw(n, self.rng)
        self.n_samples += n
        return X

    def _draw(self, n: int, rng: np.random.Generator) -> np.ndarray:
        z = rng.standard_normal((n, self.d))
        scale = self.current_eigenvectors * np.sqrt(self.eigenvalues)
        return self.mean + z @ scale.T

    def sample_current(self, n: int, seed: Optional[int] = None) -> np.ndarray:
        """
        Draw n samples from the current distribution without advancing
        the stream. Used for held-out evaluation sets.
        """
        return self._draw(n, np.random.default_rng(seed))

    def batches(self, n_batches: int, batch_size: int) -> Iterator[np.ndarray]:
        """Yield n_batches batches of batch_size samples."""
        for _ in range(n_batches):
            yield self.next_batch(batch_size)

    def get_true_components(self, k: int) -> np.ndarray:
        """
        Get the current true principal components.

        Returns:
            Components of shape (k, d).
        """
        return self.current_eigenvectors[:, :k].T.copy()

    def reset(self, seed: Optional[int] = None) -> None:
        """
        Reset the stream to its initial state.

        Args:
            seed: New seed for the batch draws. If None, replays the
                original batch sequence. The eigenstructure is unchanged.
        """
        if seed is not None:
            self.seed = seed
            _, self._batch_seq = np.random.SeedSequence(seed).spawn(2)
        self.rng = np.random.default_rng(self._batch_seq)
        self._init_state()


def create_stream(
    config: StreamConfig,
    d: int,
    seed: Optional[int] = None
) -> SyntheticStream:
    """
    Build a stream from a StreamConfig.

    Args:
        config: Stream configuration.
        d: Dimensionality.
        seed: Random seed.

    Returns:
        SyntheticStream.
    """
    kwargs = dict(
        d=d,
        rank=min(config.rank, d),
        noise_std=config.noise_std,
        decay=config.decay,
        decay_rate=config.decay_rate,
        seed=seed
    )
    if config.stream_type == "gaussian":
        return SyntheticStream(**kwargs)
    elif config.stream_type == "drifting":
        return SyntheticStream(
            drift_interval=config.drift_interval or 5000,
            drift_angle=config.drift_angle,
            **kwargs
        )
    elif config.stream_type == "shifted":
        return SyntheticStream(
            shift_after=config.shift_after or 1000,
            shift_scale=config.shift_scale,
            **kwargs
        )
    else:
        raise ValueError(f"Unknown stream type: {config.stream_type}")
