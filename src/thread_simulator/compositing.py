"""Thread colors, compositing operations and segment rasterization.

Compositing model (values in [0, 255], per channel):
    - LIGHTEN ("lighter"): dst + α·src, saturating at 255. Used to accumulate
      simulated ink and for light thread on a dark background.
    - DARKEN ("difference"): α·|src − dst| + (1 − α)·dst. Used for dark thread
      on a light background: a white background minus thread value.
    - BASIC capability: plain source-over with the thread opacity as alpha,
      the raw color being inverted for DARKEN. Stand-in for targets that lack
      the two blend modes above.

α is the anti-aliased coverage of the segment; in ADVANCED mode the thread
opacity is folded into the source value (ceil(255·opacity)), in BASIC mode it
scales α.

The capability is an explicit value chosen once by the caller and handed to
every rasterizer (InkRaster, RasterPlotter, SvgPlotter).
"""

import math
from enum import Enum
from typing import Optional, Tuple

import cv2
import numpy as np

from ..utils.geometry import Point

# Sub-pixel precision of cv2.line endpoints (1/16 px)
SHIFT_BITS = 4
_SHIFT_SCALE = 1 << SHIFT_BITS


class Channel(Enum):
    """Thread color lane."""

    MONOCHROME = "monochrome"
    RED = "red"
    GREEN = "green"
    BLUE = "blue"

    @property
    def index(self) -> int:
        """RGB index sampled for this lane (monochrome rasters are gray: red)."""
        return _CHANNEL_INDEX[self]


_CHANNEL_INDEX = {
    Channel.MONOCHROME: 0,
    Channel.RED: 0,
    Channel.GREEN: 1,
    Channel.BLUE: 2,
}


class CompositingOperation(Enum):
    DARKEN = "darken"
    LIGHTEN = "lighten"


class CompositingCapability(Enum):
    """Blend modes available on the rendering target."""

    ADVANCED = "advanced"
    BASIC = "basic"


def raw_color(channel: Channel) -> Tuple[int, int, int]:
    """Unit RGB of a thread lane: white for monochrome, primary otherwise."""
    if channel is Channel.MONOCHROME:
        return (1, 1, 1)
    return (
        1 if channel is Channel.RED else 0,
        1 if channel is Channel.GREEN else 0,
        1 if channel is Channel.BLUE else 0,
    )


def stroke_color(
    channel: Channel,
    opacity: float,
    operation: CompositingOperation,
    capability: CompositingCapability = CompositingCapability.ADVANCED
) -> str:
    """CSS color of a thread stroke.

    Parameters
    ----------
    channel : Channel
        Thread lane
    opacity : float
        Thread opacity in [0, 1]
    operation : CompositingOperation
        Blend used by the target
    capability : CompositingCapability
        ADVANCED folds opacity into an opaque rgb(); BASIC emits rgba()

    Returns
    -------
    str
        e.g. "rgb(16, 0, 0)" or "rgba(0, 0, 0, 0.0625)"
    """
    r, g, b = raw_color(channel)
    if capability is CompositingCapability.ADVANCED:
        value = int(math.ceil(255 * opacity))
        return f"rgb({r * value}, {g * value}, {b * value})"

    if operation is CompositingOperation.DARKEN:
        r, g, b = 1 - r, 1 - g, 1 - b
    return f"rgba({r * 255}, {g * 255}, {b * 255}, {opacity})"


def rasterize_segment(
    shape: Tuple[int, int],
    p0: Point,
    p1: Point,
    thickness: float
) -> Optional[Tuple[Tuple[slice, slice], np.ndarray]]:
    """Anti-aliased coverage of a segment, restricted to its bounding box.

    Parameters
    ----------
    shape : tuple
        (H, W) of the target buffer
    p0, p1 : Point
        Segment endpoints in pixel coordinates
    thickness : float
        Line width in pixels (rounded, never below 1)

    Returns
    -------
    (roi, coverage) or None
        roi: (row slice, column slice) into the target buffer
        coverage: float32 array of the roi's shape, values in [0, 1]
        None when the segment's box misses the buffer entirely
    """
    height, width = shape
    line_width = max(1, int(round(thickness)))
    margin = 0.5 * line_width + 2.0

    x_min = max(0, int(math.floor(min(p0[0], p1[0]) - margin)))
    x_max = min(width, int(math.ceil(max(p0[0], p1[0]) + margin)) + 1)
    y_min = max(0, int(math.floor(min(p0[1], p1[1]) - margin)))
    y_max = min(height, int(math.ceil(max(p0[1], p1[1]) + margin)) + 1)
    if x_max <= x_min or y_max <= y_min:
        return None

    mask = np.zeros((y_max - y_min, x_max - x_min), dtype=np.uint8)
    pt0 = (int(round((p0[0] - x_min) * _SHIFT_SCALE)), int(round((p0[1] - y_min) * _SHIFT_SCALE)))
    pt1 = (int(round((p1[0] - x_min) * _SHIFT_SCALE)), int(round((p1[1] - y_min) * _SHIFT_SCALE)))
    cv2.line(mask, pt0, pt1, 255, thickness=line_width, lineType=cv2.LINE_AA, shift=SHIFT_BITS)

    roi = (slice(y_min, y_max), slice(x_min, x_max))
    return roi, mask.astype(np.float32) / 255.0


def composite_segment(
    buffer: np.ndarray,
    p0: Point,
    p1: Point,
    channel: Channel,
    opacity: float,
    operation: CompositingOperation,
    thickness: float,
    capability: CompositingCapability = CompositingCapability.ADVANCED
) -> None:
    """Blend one thread segment into a float RGB buffer, in place.

    Parameters
    ----------
    buffer : np.ndarray
        Target, shape (H, W, 3), float32, values in [0, 255]
    p0, p1 : Point
        Segment endpoints in buffer pixel coordinates
    channel : Channel
        Thread lane (selects the raw color)
    opacity : float
        Thread opacity in [0, 1]
    operation : CompositingOperation
        LIGHTEN or DARKEN (see module docstring)
    thickness : float
        Line width in pixels
    capability : CompositingCapability
        Blend modes available
    """
    rasterized = rasterize_segment(buffer.shape[:2], p0, p1, thickness)
    if rasterized is None:
        return
    roi, coverage = rasterized

    alpha = coverage[:, :, np.newaxis]
    dst = buffer[roi]
    rgb = np.asarray(raw_color(channel), dtype=np.float32)

    if capability is CompositingCapability.ADVANCED:
        src = rgb * float(math.ceil(255 * opacity))
        if operation is CompositingOperation.LIGHTEN:
            np.minimum(dst + alpha * src, 255.0, out=dst)
        else:
            dst[...] = alpha * np.abs(src - dst) + (1.0 - alpha) * dst
    else:
        if operation is CompositingOperation.DARKEN:
            rgb = 1.0 - rgb
        src = rgb * 255.0
        weight = alpha * opacity
        dst[...] = dst * (1.0 - weight) + src * weight
