"""Thread computation engine.

    - pegs: peg layouts (rectangle, ellipse) and the too-close predicate
    - threads: monochrome and red/green/blue thread strategies
    - computer: ThreadComputer, greedy anytime segment selection
    - thread_plotter: ThreadPlotter, full or tail-only redraws
    - export: batch computation and SVG/PNG/text exports

Depends on thread_simulator (ink raster) and utils; plotters only through the
PlotterBase contract.
"""

from .computer import Indicators, ThreadComputer
from .pegs import Peg, PegLayout, PegLayoutError, compute_pegs, layout_pegs
from .thread_plotter import ThreadPlotter
from .threads import (
    Repartition,
    ThreadBase,
    ThreadMonochrome,
    ThreadRedGreenBlue,
    ThreadToGrow,
)

__all__ = [
    'Indicators',
    'Peg',
    'PegLayout',
    'PegLayoutError',
    'Repartition',
    'ThreadBase',
    'ThreadComputer',
    'ThreadMonochrome',
    'ThreadPlotter',
    'ThreadRedGreenBlue',
    'ThreadToGrow',
    'compute_pegs',
    'layout_pegs',
]
