"""Simulated thread-ink accumulation.

Provides the CPU raster the engine scores candidate segments against:
    - compositing: thread lanes, LIGHTEN/DARKEN blends, capability flag,
      anti-aliased segment rasterization (OpenCV)
    - ink_raster: InkRaster (baseline, commits, lazy uint8 snapshot,
      bilinear sampling)

Invariants:
    - Values in [0, 255]; 127 is the ideal (fully threaded) level
    - Simulation always accumulates with LIGHTEN
    - Compositing capability is decided once by the caller, never detected
      globally

Used by:
    - thread_engine.computer: scoring and committing segments
    - plotters.raster: final raster renders share composite_segment()
"""

from .compositing import (
    Channel,
    CompositingCapability,
    CompositingOperation,
    composite_segment,
    raw_color,
    stroke_color,
)
from .ink_raster import InkRaster, resample_source

__all__ = [
    'Channel',
    'CompositingCapability',
    'CompositingOperation',
    'InkRaster',
    'composite_segment',
    'raw_color',
    'resample_source',
    'stroke_color',
]
