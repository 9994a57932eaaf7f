"""Peg layouts around the frame.

Two shapes:
    - rectangle: pegs evenly spaced along the four sides, corners included
      once, clockwise from the top-left corner. Segments between pegs sharing
      an x or a y would lie on the frame, so such pairs are "too close".
    - ellipse: pegs at evenly spaced angles on the ellipse inscribed in the
      domain. Pairs within π/8 (wrap-around) of each other are "too close".

The layout is first computed in a reference domain whose longest side is
1000 units, then rescaled to the ink raster. Peg density therefore does not
depend on the quality factor.
"""

import math
from dataclasses import dataclass
from typing import Callable, List, Literal, Optional

from ..utils.geometry import Size, round_half_up

TWO_PI = 2.0 * math.pi

# Longest side of the domain pegs are laid out in
REFERENCE_DOMAIN_SIZE = 1000

# pegs_spacing = 1 means one peg every 20 reference units
SPACING_UNIT = 20.0

# Ellipse pegs closer than this angle cannot be linked
MIN_ANGLE_BETWEEN_LINKED_PEGS = TWO_PI / 16

Shape = Literal["rectangle", "ellipse"]


class PegLayoutError(RuntimeError):
    """The peg layout admits no usable segment."""


@dataclass(frozen=True)
class Peg:
    """Fixed thread anchor, in raster pixels.

    angle is set for ellipse layouts only.
    """
    x: float
    y: float
    angle: Optional[float] = None


@dataclass(frozen=True)
class PegLayout:
    pegs: List[Peg]
    too_close: Callable[[Peg, Peg], bool]

    def __len__(self) -> int:
        return len(self.pegs)


def _rectangle_too_close(peg1: Peg, peg2: Peg) -> bool:
    return peg1.x == peg2.x or peg1.y == peg2.y


def _ellipse_too_close(peg1: Peg, peg2: Peg) -> bool:
    abs_delta_angle = abs(peg1.angle - peg2.angle)
    min_angle = min(abs_delta_angle, TWO_PI - abs_delta_angle)
    return min_angle <= MIN_ANGLE_BETWEEN_LINKED_PEGS


def _rectangle_pegs(max_x: float, max_y: float, spacing: float) -> List[Peg]:
    nb_pegs_per_width = int(math.ceil(max_x / spacing))
    nb_pegs_per_height = int(math.ceil(max_y / spacing))

    pegs = [Peg(0.0, 0.0)]
    for i_w in range(1, nb_pegs_per_width):
        pegs.append(Peg(max_x * (i_w / nb_pegs_per_width), 0.0))

    pegs.append(Peg(max_x, 0.0))
    for i_h in range(1, nb_pegs_per_height):
        pegs.append(Peg(max_x, max_y * (i_h / nb_pegs_per_height)))

    pegs.append(Peg(max_x, max_y))
    for i_w in range(nb_pegs_per_width - 1, 0, -1):
        pegs.append(Peg(max_x * (i_w / nb_pegs_per_width), max_y))

    pegs.append(Peg(0.0, max_y))
    for i_h in range(nb_pegs_per_height - 1, 0, -1):
        pegs.append(Peg(0.0, max_y * (i_h / nb_pegs_per_height)))

    return pegs


def _ellipse_pegs(width: float, height: float, spacing: float) -> List[Peg]:
    max_size = max(width, height)
    nb_pegs = int(math.ceil(0.5 * TWO_PI * max_size / spacing))
    base_delta_angle = TWO_PI / nb_pegs

    pegs = []
    for i_peg in range(nb_pegs):
        angle = i_peg * base_delta_angle
        pegs.append(Peg(
            x=0.5 * width * (1 + math.cos(angle)),
            y=0.5 * height * (1 + math.sin(angle)),
            angle=angle,
        ))
    return pegs


def layout_pegs(shape: Shape, domain_size: Size, spacing: float) -> PegLayout:
    """Lay pegs out directly on a domain.

    Parameters
    ----------
    shape : {"rectangle", "ellipse"}
        Frame shape
    domain_size : Size
        (width, height) of the domain
    spacing : float
        Target distance between neighbouring pegs, > 0

    Returns
    -------
    PegLayout
        Ordered pegs and the matching too_close predicate

    Raises
    ------
    ValueError
        If shape is unknown

    Examples
    --------
    >>> layout = layout_pegs("rectangle", Size(100, 100), 20)
    >>> len(layout), layout.pegs[0]
    (20, Peg(x=0.0, y=0.0, angle=None))
    """
    width, height = float(domain_size[0]), float(domain_size[1])
    if shape == "rectangle":
        return PegLayout(_rectangle_pegs(width, height, spacing), _rectangle_too_close)
    elif shape == "ellipse":
        return PegLayout(_ellipse_pegs(width, height, spacing), _ellipse_too_close)
    raise ValueError(f"Unknown peg layout shape: {shape}")


def reference_domain_size(raster_size: Size) -> Size:
    """Domain with the raster's aspect ratio and a longest side of 1000."""
    aspect_ratio = raster_size[0] / raster_size[1]
    if aspect_ratio > 1:
        return Size(REFERENCE_DOMAIN_SIZE, round_half_up(REFERENCE_DOMAIN_SIZE / aspect_ratio))
    return Size(round_half_up(REFERENCE_DOMAIN_SIZE * aspect_ratio), REFERENCE_DOMAIN_SIZE)


def compute_pegs(raster_size: Size, shape: Shape, pegs_spacing: float) -> PegLayout:
    """Pegs for an ink raster, independent of its resolution.

    Parameters
    ----------
    raster_size : Size
        (width, height) of the ink raster
    shape : {"rectangle", "ellipse"}
        Frame shape
    pegs_spacing : float
        Spacing factor; one unit is 20 reference-domain units

    Returns
    -------
    PegLayout
        Pegs in raster pixels. Ellipse pegs keep their angle so the
        predicate is unaffected by the rescale.
    """
    domain_size = reference_domain_size(raster_size)
    layout = layout_pegs(shape, domain_size, SPACING_UNIT * pegs_spacing)

    scale_x = raster_size[0] / domain_size[0]
    scale_y = raster_size[1] / domain_size[1]
    pegs = [Peg(peg.x * scale_x, peg.y * scale_y, peg.angle) for peg in layout.pegs]
    return PegLayout(pegs, layout.too_close)
