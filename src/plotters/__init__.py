"""Renderers for computed threads.

    - base: PlotterBase contract, PlotterInfo, Line
    - raster: RasterPlotter (numpy canvas → PIL image)
    - svg: SvgPlotter (fixed 1000 × 1000 viewBox document)
    - xml_writer: indented line writer used by SvgPlotter

Plotters never read engine state: the engine (or ThreadPlotter) drives them.
"""

from .base import Line, PlotterBase, PlotterInfo
from .raster import RasterPlotter
from .svg import SvgPlotter
from .xml_writer import XMLWriter

__all__ = [
    'Line',
    'PlotterBase',
    'PlotterInfo',
    'RasterPlotter',
    'SvgPlotter',
    'XMLWriter',
]
