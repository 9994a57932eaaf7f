"""Residual error of the simulated ink raster.

Provides:
    - ErrorMeasure: {average, variance, mean_square} indicator triple
    - compute_error_measure(): residual of a uint8 RGB snapshot against the
      flat mid-gray target

Used by:
    - thread_engine.computer: recomputed every 100 segments, after a reset and
      after a truncation; exposed through ThreadComputer.indicators

Snapshots are numpy arrays of shape (H, W, 3), values in [0, 255]. The target
is 127: the baseline encoding maps "no ink needed" to mid-gray, so a perfectly
threaded image has a zero residual everywhere.
"""

from dataclasses import dataclass

import numpy as np

from .geometry import round_half_up

TARGET_VALUE = 127


@dataclass(frozen=True)
class ErrorMeasure:
    """Rounded residual statistics of the ink raster."""
    average: int = 0
    variance: int = 0
    mean_square: int = 0


def compute_error_measure(snapshot: np.ndarray, target: int = TARGET_VALUE) -> ErrorMeasure:
    """Compute residual statistics of a raster against a flat target.

    Parameters
    ----------
    snapshot : np.ndarray
        Raster snapshot, shape (H, W, C) with C >= 3; only the first three
        channels are measured
    target : int
        Ideal value of every channel, default 127

    Returns
    -------
    ErrorMeasure
        - average: mean of ``target - value`` over every pixel channel
        - mean_square: mean of the squared residuals
        - variance: squared deviation of each pixel's mean residual from
          ``average``, summed over pixels and divided by the number of
          channel samples (3 per pixel)

    Notes
    -----
    All three values are rounded half-up to integers. ``variance`` uses the
    already rounded ``average`` as its reference.

    Examples
    --------
    >>> flat = np.full((4, 4, 3), 127, dtype=np.uint8)
    >>> compute_error_measure(flat)
    ErrorMeasure(average=0, variance=0, mean_square=0)
    """
    if snapshot.ndim != 3 or snapshot.shape[2] < 3:
        raise ValueError(f"Expected (H, W, >=3) snapshot, got shape {snapshot.shape}")
    if snapshot.shape[0] * snapshot.shape[1] == 0:
        return ErrorMeasure()

    residuals = target - snapshot[:, :, :3].astype(np.float64)

    average = round_half_up(float(residuals.mean()))
    mean_square = round_half_up(float(np.square(residuals).mean()))

    pixel_means = residuals.mean(axis=2)
    variance = round_half_up(float(np.square(pixel_means - average).sum()) / residuals.size)

    return ErrorMeasure(average=average, variance=variance, mean_square=mean_square)
