"""Planar geometry helpers shared by the simulator, the engine and plotters.

Provides:
    - round_half_up(): conventional half-up rounding
    - best_fit_size(): aspect-preserving resize with a capped longest side
    - Transformation: uniform scale + centering from raster space to a
      device frame (plotter canvas, SVG viewBox)

Used by:
    - thread_simulator.ink_raster: working-resolution size, bilinear sampling
    - thread_engine.pegs: reference domain size for peg layout
    - thread_engine.computer: raster → plotter transform, segment sampling

All points are (x, y) tuples, +Y down, origin at the top-left corner.
"""

import math
from typing import NamedTuple, Tuple

Point = Tuple[float, float]


class Size(NamedTuple):
    """Width/height pair (pixels or abstract device units)."""
    width: float
    height: float


def round_half_up(x: float) -> int:
    """Round to nearest integer, halves towards +infinity.

    Notes
    -----
    Python's round() uses banker's rounding (round(0.5) == 0). Indicators and
    layout sizes use the conventional half-up rule instead.
    """
    return int(math.floor(x + 0.5))


def best_fit_size(source_size: Size, max_size: float) -> Size:
    """Scale source_size so that its longest side equals max_size.

    Parameters
    ----------
    source_size : Size
        Original (width, height)
    max_size : float
        Target length of the longest side

    Returns
    -------
    Size
        Integer (width, height), each rounded up, aspect ratio preserved

    Examples
    --------
    >>> best_fit_size(Size(400, 200), 100)
    Size(width=100, height=50)
    """
    max_source_side = max(source_size[0], source_size[1])
    sizing_factor = max_size / max_source_side
    return Size(
        width=int(math.ceil(source_size[0] * sizing_factor)),
        height=int(math.ceil(source_size[1] * sizing_factor)),
    )


class Transformation:
    """Uniform scale + centering of an element inside a frame.

    Attributes
    ----------
    scaling : float
        Largest factor such that the scaled element fits in the frame
    origin : Point
        Offset of the scaled element's top-left corner inside the frame
    """

    def __init__(self, frame_size: Size, element_size: Size):
        scale_to_fit_width = frame_size[0] / element_size[0]
        scale_to_fit_height = frame_size[1] / element_size[1]

        self.scaling = min(scale_to_fit_width, scale_to_fit_height)
        self.origin = (
            0.5 * (frame_size[0] - self.scaling * element_size[0]),
            0.5 * (frame_size[1] - self.scaling * element_size[1]),
        )

    def transform(self, point: Point) -> Point:
        """Map a point from element space to frame space."""
        return (
            self.origin[0] + point[0] * self.scaling,
            self.origin[1] + point[1] * self.scaling,
        )
