"""Test thread colors and segment compositing.

Tests for src.thread_simulator.compositing:
    - Channel → raw color and sampled RGB index
    - CSS stroke colors for ADVANCED and BASIC capabilities
    - Segment rasterization (ROI clipping, off-canvas segments)
    - LIGHTEN accumulates and saturates, DARKEN darkens a white canvas,
      BASIC falls back to source-over

Run:
    pytest tests/test_compositing.py -v
"""

import numpy as np
import pytest

from src.thread_simulator.compositing import (
    Channel,
    CompositingCapability,
    CompositingOperation,
    composite_segment,
    rasterize_segment,
    raw_color,
    stroke_color,
)

ADVANCED = CompositingCapability.ADVANCED
BASIC = CompositingCapability.BASIC
DARKEN = CompositingOperation.DARKEN
LIGHTEN = CompositingOperation.LIGHTEN


# ============================================================================
# COLORS
# ============================================================================

@pytest.mark.parametrize("channel,rgb,index", [
    (Channel.MONOCHROME, (1, 1, 1), 0),
    (Channel.RED, (1, 0, 0), 0),
    (Channel.GREEN, (0, 1, 0), 1),
    (Channel.BLUE, (0, 0, 1), 2),
])
def test_raw_color_and_index(channel, rgb, index):
    assert raw_color(channel) == rgb
    assert channel.index == index


def test_stroke_color_advanced():
    assert stroke_color(Channel.RED, 0.0625, DARKEN, ADVANCED) == "rgb(16, 0, 0)"
    assert stroke_color(Channel.MONOCHROME, 1.0, LIGHTEN, ADVANCED) == "rgb(255, 255, 255)"
    # ceil(255 * 0.01) = 3
    assert stroke_color(Channel.BLUE, 0.01, LIGHTEN, ADVANCED) == "rgb(0, 0, 3)"


def test_stroke_color_basic():
    assert stroke_color(Channel.MONOCHROME, 0.5, DARKEN, BASIC) == "rgba(0, 0, 0, 0.5)"
    assert stroke_color(Channel.GREEN, 0.25, LIGHTEN, BASIC) == "rgba(0, 255, 0, 0.25)"
    assert stroke_color(Channel.GREEN, 0.25, DARKEN, BASIC) == "rgba(255, 0, 255, 0.25)"


# ============================================================================
# RASTERIZATION
# ============================================================================

def test_rasterize_segment_roi():
    roi, coverage = rasterize_segment((50, 80), (10.0, 20.0), (30.0, 20.0), 1.0)
    rows, cols = roi

    assert coverage.dtype == np.float32
    assert coverage.shape == (rows.stop - rows.start, cols.stop - cols.start)
    assert 0.0 <= coverage.min() and coverage.max() <= 1.0
    assert coverage.max() > 0.5
    assert rows.start <= 20 < rows.stop
    assert cols.start <= 10 and 30 < cols.stop


def test_rasterize_segment_off_canvas():
    assert rasterize_segment((10, 10), (-50.0, -50.0), (-40.0, -40.0), 1.0) is None


def test_rasterize_segment_clipped_at_border():
    rasterized = rasterize_segment((10, 10), (-5.0, 5.0), (5.0, 5.0), 1.0)
    assert rasterized is not None
    roi, coverage = rasterized
    assert roi[1].start == 0
    assert coverage.shape[1] <= 10


# ============================================================================
# COMPOSITING
# ============================================================================

def test_lighten_accumulates_and_saturates():
    buffer = np.zeros((20, 20, 3), dtype=np.float32)

    composite_segment(buffer, (2.0, 10.0), (18.0, 10.0), Channel.MONOCHROME, 0.5, LIGHTEN, 1.0, ADVANCED)
    first = float(buffer[10, 10, 0])
    assert 0.0 < first <= 128.0
    assert buffer[0, 0].tolist() == [0.0, 0.0, 0.0]
    assert buffer[10, 10, 0] == buffer[10, 10, 1] == buffer[10, 10, 2]

    for _ in range(10):
        composite_segment(buffer, (2.0, 10.0), (18.0, 10.0), Channel.MONOCHROME, 0.5, LIGHTEN, 1.0, ADVANCED)
    assert float(buffer[10, 10, 0]) > first
    assert buffer.max() <= 255.0


def test_lighten_colored_thread_touches_one_channel():
    buffer = np.zeros((20, 20, 3), dtype=np.float32)
    composite_segment(buffer, (2.0, 10.0), (18.0, 10.0), Channel.GREEN, 0.5, LIGHTEN, 1.0, ADVANCED)

    assert buffer[10, 10, 1] > 0.0
    assert buffer[10, 10, 0] == 0.0
    assert buffer[10, 10, 2] == 0.0


def test_darken_on_white():
    buffer = np.full((20, 20, 3), 255.0, dtype=np.float32)
    composite_segment(buffer, (10.0, 2.0), (10.0, 18.0), Channel.MONOCHROME, 1.0, DARKEN, 1.0, ADVANCED)

    assert buffer[10, 10, 0] < 255.0
    assert buffer[10, 0, 0] == 255.0


def test_darken_colored_thread_on_white():
    buffer = np.full((20, 20, 3), 255.0, dtype=np.float32)
    composite_segment(buffer, (10.0, 2.0), (10.0, 18.0), Channel.RED, 0.0625, DARKEN, 1.0, ADVANCED)

    # |16 - 255| on red, |0 - 255| leaves green and blue unchanged
    assert buffer[10, 10, 0] < 255.0
    assert buffer[10, 10, 1] == 255.0
    assert buffer[10, 10, 2] == 255.0


def test_basic_darken_is_source_over_black():
    buffer = np.full((20, 20, 3), 255.0, dtype=np.float32)
    composite_segment(buffer, (10.0, 2.0), (10.0, 18.0), Channel.MONOCHROME, 0.5, DARKEN, 1.0, BASIC)

    center = float(buffer[10, 10, 0])
    # At most half way to black
    assert 127.0 <= center < 255.0


def test_wide_line_covers_more_pixels():
    thin = np.zeros((40, 40, 3), dtype=np.float32)
    wide = np.zeros((40, 40, 3), dtype=np.float32)
    composite_segment(thin, (5.0, 20.0), (35.0, 20.0), Channel.MONOCHROME, 1.0, LIGHTEN, 1.0, ADVANCED)
    composite_segment(wide, (5.0, 20.0), (35.0, 20.0), Channel.MONOCHROME, 1.0, LIGHTEN, 5.0, ADVANCED)

    assert np.count_nonzero(wide[:, :, 0]) > np.count_nonzero(thin[:, :, 0])
