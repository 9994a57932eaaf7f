"""Simulated thread-ink raster used to score candidate segments.

This is the engine's private "hidden canvas": a low-resolution float surface
into which every accepted segment is composited, plus a lazily derived uint8
snapshot that scoring and error measurement read.

Architecture:
    - Source image → area resampling to best_fit_size(source, 100 × quality)
    - Baseline encoding supplied by the active thread strategy (halved values,
      inverted on dark backgrounds) so the ideal final value is mid-gray 127
    - Segment commit: anti-aliased OpenCV line, composited with the current
      color/opacity/operation (LIGHTEN for simulation)
    - Snapshot: rounded + clipped uint8 copy of the surface, re-derived on the
      first read after a commit (dirty flag = cached value set to None)
    - Sampling: vectorised bilinear interpolation over the 4 nearest pixels,
      indices clamped to the raster bounds

Invariants:
    - Surface is float32, shape (H, W, 3), values in [0, 255]
    - Any draw invalidates the snapshot; reads never re-derive it otherwise
    - Line width never goes below 1 px: thinner threads lower the opacity

Usage:
    raster = InkRaster()
    raster.load_baseline(adjusted_rgb)
    raster.configure_lines(opacity=0.0625, thickness=1.0)
    raster.apply_compositing(Channel.MONOCHROME, raster.line_opacity_internal,
                             CompositingOperation.LIGHTEN)
    raster.draw_segment((10.0, 0.0), (90.0, 100.0))
    values = raster.sample(xs, ys, channel_index=0)
"""

import logging
from typing import Optional

import cv2
import numpy as np

from ..utils.geometry import Point, Size
from .compositing import (
    Channel,
    CompositingCapability,
    CompositingOperation,
    composite_segment,
)

logger = logging.getLogger(__name__)


def resample_source(rgb: np.ndarray, size: Size) -> np.ndarray:
    """Resample an RGB image to the working resolution.

    Parameters
    ----------
    rgb : np.ndarray
        Source image, shape (H, W, 3), uint8
    size : Size
        Target (width, height)

    Returns
    -------
    np.ndarray
        Float32 array, shape (size.height, size.width, 3), values in [0, 255]
    """
    if rgb.ndim != 3 or rgb.shape[2] != 3:
        raise ValueError(f"Expected (H, W, 3) RGB image, got shape {rgb.shape}")

    target = (int(size[0]), int(size[1]))
    if (rgb.shape[1], rgb.shape[0]) == target:
        return rgb.astype(np.float32)

    shrinking = target[0] <= rgb.shape[1] and target[1] <= rgb.shape[0]
    interpolation = cv2.INTER_AREA if shrinking else cv2.INTER_LINEAR
    resized = cv2.resize(rgb, target, interpolation=interpolation)
    return resized.astype(np.float32)


class InkRaster:
    """Offscreen accumulation buffer of simulated thread ink.

    Attributes
    ----------
    capability : CompositingCapability
        Blend modes used when committing segments
    line_width : float
        Stroke width in raster pixels (>= 1)
    line_opacity_internal : float
        Opacity of one simulated pass, attenuated for sub-pixel threads
    """

    def __init__(self, capability: CompositingCapability = CompositingCapability.ADVANCED):
        self.capability = capability
        self._surface = np.zeros((1, 1, 3), dtype=np.float32)
        self._snapshot: Optional[np.ndarray] = None

        self.line_width = 1.0
        self.line_opacity_internal = 0.0

        self._channel = Channel.MONOCHROME
        self._opacity = 1.0
        self._operation = CompositingOperation.LIGHTEN

    @property
    def width(self) -> int:
        return self._surface.shape[1]

    @property
    def height(self) -> int:
        return self._surface.shape[0]

    @property
    def size(self) -> Size:
        return Size(self.width, self.height)

    def load_baseline(self, data: np.ndarray) -> None:
        """Replace the surface with an already encoded baseline.

        Parameters
        ----------
        data : np.ndarray
            Shape (H, W, 3), values in [0, 255]; copied
        """
        if data.ndim != 3 or data.shape[2] != 3:
            raise ValueError(f"Baseline must be (H, W, 3), got shape {data.shape}")
        self._surface = np.clip(data, 0.0, 255.0).astype(np.float32)
        self._snapshot = None
        self.reset_compositing()

    def configure_lines(self, opacity: float, thickness: float) -> None:
        """Derive the simulated stroke width and opacity.

        Parameters
        ----------
        opacity : float
            Opacity of one thread pass in the final render
        thickness : float
            Theoretical thread width in raster pixels

        Notes
        -----
        Lines thinner than 1 px produce aliasing artifacts, so the width is
        clamped to 1 and the opacity scaled down by the missing width instead.
        The factor 0.5 matches the halved baseline encoding.
        """
        if thickness <= 1:
            self.line_opacity_internal = 0.5 * opacity * thickness
            self.line_width = 1.0
        else:
            self.line_opacity_internal = 0.5 * opacity
            self.line_width = float(thickness)

    def apply_compositing(
        self,
        channel: Channel,
        opacity: float,
        operation: CompositingOperation
    ) -> None:
        """Set the stroke used by subsequent draw_segment() calls."""
        self._channel = channel
        self._opacity = opacity
        self._operation = operation

    def reset_compositing(self) -> None:
        """Back to a monochrome LIGHTEN stroke with the internal opacity."""
        self.apply_compositing(
            Channel.MONOCHROME, self.line_opacity_internal, CompositingOperation.LIGHTEN
        )

    def draw_segment(self, p0: Point, p1: Point) -> None:
        """Commit one segment with the current stroke and invalidate the snapshot."""
        composite_segment(
            self._surface, p0, p1,
            self._channel, self._opacity, self._operation,
            self.line_width, self.capability
        )
        self._snapshot = None

    @property
    def snapshot(self) -> np.ndarray:
        """CPU-readable uint8 copy of the surface, shape (H, W, 3).

        Re-derived only on the first read after a commit or a baseline load.
        """
        if self._snapshot is None:
            self._snapshot = np.clip(np.rint(self._surface), 0, 255).astype(np.uint8)
        return self._snapshot

    def sample(self, xs: np.ndarray, ys: np.ndarray, channel_index: int) -> np.ndarray:
        """Bilinear sampling of one channel of the snapshot.

        Parameters
        ----------
        xs, ys : np.ndarray
            Sample coordinates in raster pixels, same shape, non-negative
        channel_index : int
            0, 1 or 2 (red, green, blue)

        Returns
        -------
        np.ndarray
            Float64 values in [0, 255], same shape as xs

        Notes
        -----
        Neighbour indices are floor/ceil of each coordinate, clamped to the
        raster; the blend weights are the fractional parts of the unclamped
        coordinates.
        """
        data = self.snapshot[:, :, channel_index]
        height, width = data.shape
        xs = np.asarray(xs, dtype=np.float64)
        ys = np.asarray(ys, dtype=np.float64)

        min_x = np.clip(np.floor(xs), 0, width - 1).astype(np.intp)
        max_x = np.clip(np.ceil(xs), 0, width - 1).astype(np.intp)
        min_y = np.clip(np.floor(ys), 0, height - 1).astype(np.intp)
        max_y = np.clip(np.ceil(ys), 0, height - 1).astype(np.intp)

        top_left = data[min_y, min_x]
        top_right = data[min_y, max_x]
        bottom_left = data[max_y, min_x]
        bottom_right = data[max_y, max_x]

        fract_x = np.mod(xs, 1.0)
        fract_y = np.mod(ys, 1.0)
        top = top_left * (1 - fract_x) + top_right * fract_x
        bottom = bottom_left * (1 - fract_x) + bottom_right * fract_x
        return top * (1 - fract_y) + bottom * fract_y

