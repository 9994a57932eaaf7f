"""Test ink raster error metrics.

Tests for src.utils.metrics:
    - Flat mid-gray raster has zero error
    - Uniform offsets: average and mean square, zero variance
    - Mixed raster: half-up rounding of all three values
    - Variance divided by the channel sample count (3 per pixel)
    - Only the first three channels are measured
    - Invalid shapes rejected, empty raster yields zeros

Run:
    pytest tests/test_metrics.py -v
"""

import numpy as np
import pytest

from src.utils.metrics import ErrorMeasure, compute_error_measure


def test_flat_target_has_zero_error():
    flat = np.full((8, 6, 3), 127, dtype=np.uint8)
    assert compute_error_measure(flat) == ErrorMeasure(average=0, variance=0, mean_square=0)


def test_uniform_black_raster():
    black = np.zeros((4, 4, 3), dtype=np.uint8)
    error = compute_error_measure(black)

    assert error.average == 127
    assert error.mean_square == 127 * 127
    assert error.variance == 0


def test_uniform_overshoot_is_negative():
    light = np.full((4, 4, 3), 137, dtype=np.uint8)
    error = compute_error_measure(light)

    assert error.average == -10
    assert error.mean_square == 100


def test_mixed_raster_rounding():
    # Half the pixels on target, half fully black
    snapshot = np.full((2, 2, 3), 127, dtype=np.uint8)
    snapshot[0, :, :] = 0
    error = compute_error_measure(snapshot)

    # mean residual 63.5 → 64, mean square 8064.5 → 8065
    assert error.average == 64
    assert error.mean_square == 8065
    # pixel means 127 and 0 against 64, two pixels each: 2 · (3969 + 4096) / 12 → 1344
    assert error.variance == 1344


def test_variance_normalized_by_channel_samples():
    # Pixel mean residuals 0 and 60 around an average of 30
    snapshot = np.full((1, 2, 3), 127, dtype=np.uint8)
    snapshot[0, 1, :] = 67
    error = compute_error_measure(snapshot)

    assert error.average == 30
    # (900 + 900) over 6 channel samples, not over 2 pixels
    assert error.variance == 300


def test_alpha_channel_ignored():
    rgba = np.full((3, 3, 4), 127, dtype=np.uint8)
    rgba[:, :, 3] = 0
    assert compute_error_measure(rgba) == ErrorMeasure()


def test_invalid_shape_raises():
    with pytest.raises(ValueError):
        compute_error_measure(np.zeros((4, 4), dtype=np.uint8))


def test_empty_raster():
    assert compute_error_measure(np.zeros((0, 5, 3), dtype=np.uint8)) == ErrorMeasure()
