"""SVG export of a thread.

The document uses a fixed 1000 × 1000 logical canvas (viewBox); the
computer's Transformation fits the ink raster inside it.

Compositing:
    - ADVANCED: each line blends with ``mix-blend-mode: difference`` and a
      stroke of ``rgb(v·r, v·g, v·b)`` with v = ceil(255 · opacity). Light
      threads (LIGHTEN) are drawn as their dark complement on the white
      background, then the whole document is inverted by CSS.
    - BASIC: plain ``rgba()`` strokes, no blend mode.
"""

import logging
from typing import Optional, Sequence

from ..thread_simulator.compositing import (
    Channel,
    CompositingCapability,
    CompositingOperation,
    stroke_color,
)
from ..utils.geometry import Point, Size
from .base import Line, PlotterBase, PlotterInfo
from .xml_writer import XMLWriter

logger = logging.getLogger(__name__)

WIDTH = 1000
HEIGHT = 1000

BLUR_EFFECT_ID = "gaussianBlur"

BACKGROUND_MARGIN = 10


def _format_number(value: float) -> str:
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


class SvgPlotter(PlotterBase):
    """Builds an SVG document from draw calls.

    Parameters
    ----------
    capability : CompositingCapability
        Whether the consumer supports CSS blend modes
    """

    def __init__(self, capability: CompositingCapability = CompositingCapability.ADVANCED):
        self.capability = capability
        self.writer: Optional[XMLWriter] = None
        self.has_blur = False

    def resize(self) -> None:
        pass

    def initialize(self, info: PlotterInfo) -> None:
        self.writer = XMLWriter()
        self.has_blur = info.blur > 0

        self.writer.add_line('<?xml version="1.0" encoding="UTF-8" standalone="no"?>')
        self.writer.start_block(
            f'<svg xmlns="http://www.w3.org/2000/svg" version="1.1" viewBox="0 0 {WIDTH} {HEIGHT}">'
        )

        if self.has_blur:
            self.writer.start_block('<defs>')
            self.writer.start_block(f'<filter id="{BLUR_EFFECT_ID}" x="0" y="0">')
            self.writer.add_line(
                f'<feGaussianBlur in="SourceGraphic" stdDeviation="{_format_number(info.blur)}"/>'
            )
            self.writer.end_block('</filter>')
            self.writer.end_block('</defs>')
            self.writer.start_block(f'<g filter="url(#{BLUR_EFFECT_ID})">')

        # Always white: light threads are handled by the CSS inversion
        margin = BACKGROUND_MARGIN
        self.writer.add_line(
            f'<rect fill="white" stroke="none" x="{-margin}" y="{-margin}" '
            f'width="{WIDTH + 2 * margin}" height="{HEIGHT + 2 * margin}"/>'
        )

    def finalize(self) -> None:
        self._require_pass()
        if self.has_blur:
            self.writer.end_block('</g>')
        self.writer.end_block('</svg>')

    def draw_lines(
        self,
        lines: Sequence[Line],
        channel: Channel,
        opacity: float,
        operation: CompositingOperation,
        thickness: float
    ) -> None:
        if len(lines) == 0:
            return
        self._require_pass()

        if self.capability is CompositingCapability.ADVANCED:
            self.writer.start_block('<defs>')
            self.writer.start_block('<style type="text/css">')
            self.writer.start_block('<![CDATA[')
            self.writer.add_line('line { mix-blend-mode: difference; }')
            if operation is CompositingOperation.LIGHTEN:
                self.writer.add_line('svg { filter: invert(1); background: black; }')
            self.writer.end_block(']]>')
            self.writer.end_block('</style>')
            self.writer.end_block('</defs>')

        color = stroke_color(channel, opacity, operation, self.capability)
        self.writer.start_block(
            f'<g stroke="{color}" stroke-width="{_format_number(thickness)}" '
            f'stroke-linecap="round" fill="none">'
        )
        for line in lines:
            self.writer.add_line(
                f'<line x1="{line.start[0]:.1f}" y1="{line.start[1]:.1f}" '
                f'x2="{line.end[0]:.1f}" y2="{line.end[1]:.1f}"/>'
            )
        self.writer.end_block('</g>')

    def draw_points(self, points: Sequence[Point], color: str, diameter: float) -> None:
        if len(points) == 0:
            return
        self._require_pass()

        radius = _format_number(0.5 * diameter)
        self.writer.start_block(f'<g fill="{color}" stroke="none">')
        for point in points:
            self.writer.add_line(f'<circle cx="{point[0]:.1f}" cy="{point[1]:.1f}" r="{radius}"/>')
        self.writer.end_block('</g>')

    def export(self) -> str:
        """The SVG document written so far."""
        self._require_pass()
        result = self.writer.result
        logger.debug(f"SVG export: {len(self.writer.lines)} lines")
        return result

    @property
    def size(self) -> Size:
        return Size(WIDTH, HEIGHT)

    def _require_pass(self) -> None:
        if self.writer is None:
            raise RuntimeError("SvgPlotter.initialize() must be called before drawing")
