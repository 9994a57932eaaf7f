"""Renderer contract shared by the raster and SVG plotters.

A redraw pass is scoped by resize() → initialize() → draw calls → finalize().
Incremental passes skip the scope and only issue draw calls.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, NamedTuple, Sequence

from ..thread_simulator.compositing import Channel, CompositingOperation
from ..utils.geometry import Point, Size


@dataclass(frozen=True)
class PlotterInfo:
    """Settings of a full redraw pass."""
    background_color: str = "white"
    blur: float = 0.0


class Line(NamedTuple):
    start: Point
    end: Point


class PlotterBase(ABC):
    """Draw target for thread segments and peg markers."""

    @abstractmethod
    def resize(self) -> None:
        """Adapt the target to its current output size."""

    @abstractmethod
    def initialize(self, info: PlotterInfo) -> None:
        """Start a redraw pass: clear to the background."""

    @abstractmethod
    def finalize(self) -> None:
        """End a redraw pass (post effects, closing tags)."""

    @abstractmethod
    def draw_lines(
        self,
        lines: Sequence[Line],
        channel: Channel,
        opacity: float,
        operation: CompositingOperation,
        thickness: float
    ) -> None:
        """Draw independent segments with one thread style."""

    @abstractmethod
    def draw_points(self, points: Sequence[Point], color: str, diameter: float) -> None:
        """Draw filled discs (peg markers)."""

    @property
    @abstractmethod
    def size(self) -> Size:
        """Output (width, height) in device units."""

    def draw_broken_line(
        self,
        points: Sequence[Point],
        channel: Channel,
        opacity: float,
        operation: CompositingOperation,
        thickness: float
    ) -> None:
        """Draw a polyline as its consecutive segments."""
        lines: List[Line] = [Line(points[i], points[i + 1]) for i in range(len(points) - 1)]
        self.draw_lines(lines, channel, opacity, operation, thickness)
