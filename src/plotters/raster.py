"""Raster render of a thread (PNG output, previews).

The canvas is a float32 RGB array; thread segments go through the same
composite_segment() the ink raster simulation uses, so a DARKEN render on a
white background and a LIGHTEN render on a black one match what the engine
optimised for.
"""

import logging
from typing import Optional, Sequence

import cv2
import numpy as np
from PIL import Image, ImageColor

from ..thread_simulator.compositing import (
    SHIFT_BITS,
    Channel,
    CompositingCapability,
    CompositingOperation,
    composite_segment,
)
from ..utils.geometry import Point, Size
from .base import Line, PlotterBase, PlotterInfo

logger = logging.getLogger(__name__)

_SHIFT_SCALE = 1 << SHIFT_BITS


class RasterPlotter(PlotterBase):
    """In-memory RGB canvas.

    Parameters
    ----------
    width, height : int
        Canvas size in pixels
    capability : CompositingCapability
        Blend modes used for thread segments
    """

    def __init__(
        self,
        width: int,
        height: int,
        capability: CompositingCapability = CompositingCapability.ADVANCED
    ):
        if width < 1 or height < 1:
            raise ValueError(f"Canvas size must be positive, got {width}x{height}")
        self.width = int(width)
        self.height = int(height)
        self.capability = capability
        self.canvas = np.zeros((self.height, self.width, 3), dtype=np.float32)
        self._info: Optional[PlotterInfo] = None

    @property
    def size(self) -> Size:
        return Size(self.width, self.height)

    def resize(self) -> None:
        if self.canvas.shape[:2] != (self.height, self.width):
            self.canvas = np.zeros((self.height, self.width, 3), dtype=np.float32)

    def initialize(self, info: PlotterInfo) -> None:
        self._info = info
        self.canvas[...] = np.asarray(ImageColor.getrgb(info.background_color)[:3], dtype=np.float32)

    def finalize(self) -> None:
        if self._info is not None and self._info.blur > 0:
            self.canvas = cv2.GaussianBlur(self.canvas, (0, 0), sigmaX=float(self._info.blur))

    def draw_lines(
        self,
        lines: Sequence[Line],
        channel: Channel,
        opacity: float,
        operation: CompositingOperation,
        thickness: float
    ) -> None:
        for line in lines:
            composite_segment(
                self.canvas, line.start, line.end,
                channel, opacity, operation, thickness, self.capability
            )

    def draw_points(self, points: Sequence[Point], color: str, diameter: float) -> None:
        if len(points) == 0:
            return

        # Anti-aliasing needs an 8-bit target: draw a coverage mask, then blend
        mask = np.zeros((self.height, self.width), dtype=np.uint8)
        radius = max(1, int(round(0.5 * diameter * _SHIFT_SCALE)))
        for point in points:
            center = (int(round(point[0] * _SHIFT_SCALE)), int(round(point[1] * _SHIFT_SCALE)))
            cv2.circle(mask, center, radius, 255, thickness=-1, lineType=cv2.LINE_AA, shift=SHIFT_BITS)

        alpha = (mask.astype(np.float32) / 255.0)[:, :, np.newaxis]
        rgb = np.asarray(ImageColor.getrgb(color)[:3], dtype=np.float32)
        self.canvas[...] = self.canvas * (1.0 - alpha) + rgb * alpha

    def to_array(self) -> np.ndarray:
        """Canvas as uint8 RGB, shape (H, W, 3)."""
        return np.clip(np.rint(self.canvas), 0, 255).astype(np.uint8)

    def to_image(self) -> Image.Image:
        return Image.fromarray(self.to_array())
