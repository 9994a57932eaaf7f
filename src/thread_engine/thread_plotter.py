"""Incremental redraw of a computed thread onto a plotter."""

import logging
from typing import Optional

from ..plotters.base import PlotterBase, PlotterInfo
from ..utils.validators import ThreadingV1
from .computer import ThreadComputer

logger = logging.getLogger(__name__)


class ThreadPlotter:
    """Keeps a plotter in sync with a ThreadComputer.

    Threads only grow at the tail, so after the first full pass only the new
    segments are drawn. A thread that got shorter forces a full redraw.

    Parameters
    ----------
    plotter : PlotterBase
        Target renderer
    computer : ThreadComputer
        Source of the thread
    params : ThreadingV1, optional
        Render settings (background, blur, pegs); the computer's by default
    """

    def __init__(self, plotter: PlotterBase, computer: ThreadComputer, params: Optional[ThreadingV1] = None):
        self.plotter = plotter
        self.computer = computer
        self._params = params
        self.nb_segments_drawn = 0

    @property
    def params(self) -> ThreadingV1:
        return self._params if self._params is not None else self.computer.params

    def reset(self) -> None:
        """Force a full redraw on the next plot()."""
        self.nb_segments_drawn = 0

    def plot(self, full_redraw: bool = False) -> None:
        """Draw what the plotter is missing.

        Parameters
        ----------
        full_redraw : bool
            Redraw everything even when nothing changed (exports, empty threads)
        """
        nb_segments = self.computer.nb_segments
        if full_redraw or self.nb_segments_drawn > nb_segments:
            self.nb_segments_drawn = 0
        elif self.nb_segments_drawn == nb_segments:
            return

        if self.nb_segments_drawn == 0:
            info = PlotterInfo(background_color=self.params.background_color, blur=self.params.blur)
            self.plotter.resize()
            self.plotter.initialize(info)

            if self.params.display_pegs:
                self.computer.draw_pegs(self.plotter)

            self.computer.draw_thread(self.plotter, 0)
            self.plotter.finalize()
            logger.debug(f"Full redraw: {nb_segments} segments")
        else:
            self.computer.draw_thread(self.plotter, self.nb_segments_drawn)

        self.nb_segments_drawn = nb_segments
