"""Greedy anytime thread computation.

ThreadComputer owns, for one source image:
    - the peg layout (pegs.compute_pegs)
    - the thread strategy (monochrome or red/green/blue sequences)
    - the ink raster the candidate segments are scored against

Algorithm:
    1. Starting segment: every peg pair (i < j), both indices stepping by
       1 + nb_pegs // 100, pairs too close skipped; best potential wins
    2. Next peg: every peg not too close to the current one and not among
       the last 20 pegs of the thread; best potential wins
    3. Each accepted segment is composited into the ink raster right away,
       so the next choice sees it
    4. Ties are broken uniformly at random with a seedable RandomState

Segment potential: mean over ceil(length) interior samples of
``127 - (ink + opacity_internal · 255)``. Positive where the raster still
needs ink, negative where the segment would overshoot.

advance() is time-boxed: it grows the thread one whole segment at a time
until the target count is reached or the budget is spent (at least one
segment per call), and shrinks it (truncate, rebuild, replay) when the
target went down.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from ..thread_simulator.compositing import (
    Channel,
    CompositingCapability,
    CompositingOperation,
)
from ..thread_simulator.ink_raster import InkRaster, resample_source
from ..utils import metrics
from ..utils.geometry import Size, Transformation, best_fit_size
from ..utils.profiler import Deadline
from ..utils.validators import ThreadingV1
from .pegs import Peg, PegLayout, PegLayoutError, compute_pegs
from .threads import ThreadBase, ThreadMonochrome, ThreadRedGreenBlue

logger = logging.getLogger(__name__)

# Ink raster longest side at quality 1
RASTER_BASE_SIZE = 100

# Pegs of the thread tail a new segment may not go back to
HISTORY_SIZE = 20

# Error indicators refresh cadence while growing
ERROR_REFRESH_PERIOD = 100

PEGS_COLOR = "red"

IndicatorUpdateFunction = Callable[[str, str], object]


@dataclass(frozen=True)
class Indicators:
    pegs_count: int
    segments_count: int
    error_average: int
    error_mean_square: int
    error_variance: int

    def items(self) -> List[Tuple[str, int]]:
        """(indicator id, value) pairs in display order."""
        return [
            ("pegs-count", self.pegs_count),
            ("segments-count", self.segments_count),
            ("error-average", self.error_average),
            ("error-mean-square", self.error_mean_square),
            ("error-variance", self.error_variance),
        ]


def _format_number(value: float) -> str:
    """Shortest text of a number, without a trailing '.0' for integers."""
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


class ThreadComputer:
    """Computes which thread path best reproduces an image.

    Parameters
    ----------
    image : np.ndarray
        Source RGB image, shape (H, W, 3), uint8
    params : ThreadingV1, optional
        Computation parameters; defaults are used when omitted
    capability : CompositingCapability
        Blend modes of the ink raster
    rng : np.random.RandomState, optional
        Tie-break random source; seeded from params.seed when omitted

    Attributes
    ----------
    target_nb_segments : int
        Segment count advance() converges to; starts at params.nb_lines

    Examples
    --------
    >>> computer = ThreadComputer(image, ThreadingV1(nb_lines=500, seed=0))
    >>> while computer.advance(20.0):
    ...     pass
    >>> computer.nb_segments
    500
    """

    def __init__(
        self,
        image: np.ndarray,
        params: Optional[ThreadingV1] = None,
        *,
        capability: CompositingCapability = CompositingCapability.ADVANCED,
        rng: Optional[np.random.RandomState] = None
    ):
        image = np.asarray(image)
        if image.ndim != 3 or image.shape[2] != 3 or image.shape[0] == 0 or image.shape[1] == 0:
            raise ValueError(f"Expected non-empty (H, W, 3) RGB image, got shape {image.shape}")

        self.source_image = image
        self.raster = InkRaster(capability)
        self.error = metrics.ErrorMeasure()

        params = params if params is not None else ThreadingV1()
        self.rng = rng if rng is not None else np.random.RandomState(params.seed)
        self._target_nb_segments = params.nb_lines

        self.reset(params)

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    def reset(self, params: Optional[ThreadingV1] = None) -> None:
        """Discard the thread and rebuild pegs, strategy and ink raster.

        Parameters
        ----------
        params : ThreadingV1, optional
            New parameters; the current ones are kept when omitted. The
            target segment count is not affected.
        """
        if params is not None:
            self.params = params

        if self.params.mode == "monochrome":
            self.thread: ThreadBase = ThreadMonochrome()
        else:
            self.thread = ThreadRedGreenBlue()

        raster_size = best_fit_size(
            Size(self.source_image.shape[1], self.source_image.shape[0]),
            RASTER_BASE_SIZE * self.params.quality
        )
        self._resampled_source = resample_source(self.source_image, raster_size)
        self._reset_raster()

        self.layout: PegLayout = compute_pegs(self.raster.size, self.params.shape, self.params.pegs_spacing)
        self._peg_index = {peg: i for i, peg in enumerate(self.layout.pegs)}
        self._peg_coords = np.array([(peg.x, peg.y) for peg in self.layout.pegs], dtype=np.float64)

        logger.info(
            f"Reset: mode={self.params.mode} shape={self.params.shape} "
            f"raster={self.raster.width}x{self.raster.height} pegs={len(self.layout)}"
        )

    def _reset_raster(self) -> None:
        theoretical_thickness = self.params.lines_thickness * self.params.quality
        self.raster.configure_lines(self.params.lines_opacity, theoretical_thickness)

        baseline = self.thread.adjust_canvas_data(self._resampled_source, self.params.invert_colors)
        self.raster.load_baseline(baseline)
        self._compute_error()

    def _compute_error(self) -> None:
        self.error = metrics.compute_error_measure(self.raster.snapshot)
        logger.debug(
            f"Error after {self.nb_segments} segments: average={self.error.average} "
            f"mean_square={self.error.mean_square} variance={self.error.variance}"
        )

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def pegs(self) -> List[Peg]:
        return self.layout.pegs

    @property
    def nb_segments(self) -> int:
        return self.thread.total_nb_segments

    @property
    def target_nb_segments(self) -> int:
        return self._target_nb_segments

    @target_nb_segments.setter
    def target_nb_segments(self, value: int) -> None:
        # Shrinking below zero means an empty thread
        self._target_nb_segments = max(0, int(value))

    @property
    def indicators(self) -> Indicators:
        return Indicators(
            pegs_count=len(self.layout),
            segments_count=self.nb_segments,
            error_average=self.error.average,
            error_mean_square=self.error.mean_square,
            error_variance=self.error.variance,
        )

    def update_indicators(self, update_function: IndicatorUpdateFunction) -> None:
        """Push every indicator as (id, text) to a host callback."""
        for indicator_id, value in self.indicators.items():
            update_function(indicator_id, str(value))

    # ------------------------------------------------------------------
    # Anytime computation
    # ------------------------------------------------------------------

    def advance(self, max_milliseconds_taken: float) -> bool:
        """Move the thread towards target_nb_segments.

        Parameters
        ----------
        max_milliseconds_taken : float
            Time budget; checked after each whole segment, so every call
            below the target adds at least one segment

        Returns
        -------
        bool
            True if the thread changed (segments added, or truncated);
            False only when already at the target

        Raises
        ------
        PegLayoutError
            If the layout offers no segment to add
        """
        deadline = Deadline(max_milliseconds_taken)
        target_nb_segments = self.target_nb_segments

        if self.nb_segments == target_nb_segments:
            return False
        elif self.nb_segments > target_nb_segments:
            self._shrink(target_nb_segments)
            return True

        last_channel: Optional[Channel] = None
        while self.nb_segments < target_nb_segments:
            thread_to_grow = self.thread.get_thread_to_grow()

            if last_channel is not thread_to_grow.channel:
                self.raster.apply_compositing(
                    thread_to_grow.channel, self.raster.line_opacity_internal, CompositingOperation.LIGHTEN
                )
                self.thread.enable_sampling_for(thread_to_grow.channel)
                last_channel = thread_to_grow.channel

            self._compute_segment(thread_to_grow.pegs)

            if self.nb_segments % ERROR_REFRESH_PERIOD == 0:
                self._compute_error()

            if deadline.expired():
                break

        return True

    def _shrink(self, target_nb_segments: int) -> None:
        nb_before = self.nb_segments
        self.thread.lower_nb_segments(target_nb_segments)

        # Ink accumulation cannot be undone: rebuild and replay what is left
        self._reset_raster()
        for pegs, channel in self.thread.iterate_on_threads(0):
            self.raster.apply_compositing(channel, self.raster.line_opacity_internal, CompositingOperation.LIGHTEN)
            for peg1, peg2 in zip(pegs[:-1], pegs[1:]):
                self.raster.draw_segment((peg1.x, peg1.y), (peg2.x, peg2.y))

        self._compute_error()
        logger.debug(f"Truncated thread from {nb_before} to {self.nb_segments} segments")

    def _compute_segment(self, thread_pegs: List[Peg]) -> None:
        if not thread_pegs:
            last_peg, next_peg = self._compute_best_starting_segment()
            thread_pegs.append(last_peg)
        else:
            last_peg = thread_pegs[-1]
            pegs_to_avoid = thread_pegs[-min(len(thread_pegs), HISTORY_SIZE):]
            next_peg = self._compute_best_next_peg(last_peg, pegs_to_avoid)

        thread_pegs.append(next_peg)
        self.raster.draw_segment((last_peg.x, last_peg.y), (next_peg.x, next_peg.y))

    # ------------------------------------------------------------------
    # Greedy selection
    # ------------------------------------------------------------------

    def _compute_best_starting_segment(self) -> Tuple[Peg, Peg]:
        pegs = self.layout.pegs
        too_close = self.layout.too_close
        step = 1 + len(pegs) // 100

        candidates = [
            (i_peg1, i_peg2)
            for i_peg1 in range(0, len(pegs), step)
            for i_peg2 in range(i_peg1 + 1, len(pegs), step)
            if not too_close(pegs[i_peg1], pegs[i_peg2])
        ]
        if not candidates:
            raise PegLayoutError(
                f"No usable starting segment among {len(pegs)} pegs "
                f"(shape={self.params.shape}, pegs_spacing={self.params.pegs_spacing})"
            )

        indices = np.array(candidates, dtype=np.intp)
        potentials = self.compute_segment_potentials(self._peg_coords[indices[:, 0]], self._peg_coords[indices[:, 1]])
        i_peg1, i_peg2 = candidates[self._pick_best(potentials)]
        return pegs[i_peg1], pegs[i_peg2]

    def _compute_best_next_peg(self, current_peg: Peg, pegs_to_avoid: Sequence[Peg]) -> Peg:
        pegs = self.layout.pegs
        too_close = self.layout.too_close
        avoided = set(pegs_to_avoid)

        candidates = [
            i_peg for i_peg, peg in enumerate(pegs)
            if peg not in avoided and not too_close(current_peg, peg)
        ]
        if not candidates:
            raise PegLayoutError(
                f"No usable next peg from ({current_peg.x:.1f}, {current_peg.y:.1f}) "
                f"among {len(pegs)} pegs"
            )

        starts = np.broadcast_to(self._peg_coords[self._peg_index[current_peg]], (len(candidates), 2))
        potentials = self.compute_segment_potentials(starts, self._peg_coords[candidates])
        return pegs[candidates[self._pick_best(potentials)]]

    def _pick_best(self, potentials: np.ndarray) -> int:
        """Index of the best potential, uniformly random among exact ties."""
        best = np.max(potentials)
        ties = np.flatnonzero(potentials == best)
        if len(ties) == 1:
            return int(ties[0])
        return int(ties[self.rng.randint(len(ties))])

    def compute_segment_potentials(self, starts: np.ndarray, ends: np.ndarray) -> np.ndarray:
        """Score candidate segments against the current ink raster.

        Parameters
        ----------
        starts, ends : np.ndarray
            Segment endpoints in raster pixels, shape (K, 2)

        Returns
        -------
        np.ndarray
            Shape (K,), higher is better. Zero-length segments get -inf.

        Notes
        -----
        Each segment is sampled at n = ceil(length) interior points
        r = (k + 1) / (n + 1); the samples of all segments are read from
        the raster in a single vectorised call.
        """
        starts = np.asarray(starts, dtype=np.float64)
        ends = np.asarray(ends, dtype=np.float64)
        nb_segments = len(starts)

        lengths = np.hypot(ends[:, 0] - starts[:, 0], ends[:, 1] - starts[:, 1])
        nb_samples = np.ceil(lengths).astype(np.intp)

        segment_ids = np.repeat(np.arange(nb_segments), nb_samples)
        first_sample = np.cumsum(nb_samples) - nb_samples
        local_ids = np.arange(len(segment_ids)) - first_sample[segment_ids]
        r = (local_ids + 1) / (nb_samples[segment_ids] + 1)

        xs = starts[segment_ids, 0] * (1 - r) + ends[segment_ids, 0] * r
        ys = starts[segment_ids, 1] * (1 - r) + ends[segment_ids, 1] * r
        values = self.raster.sample(xs, ys, self.thread.sampling_channel)

        contributions = metrics.TARGET_VALUE - (values + self.raster.line_opacity_internal * 255)
        sums = np.bincount(segment_ids, weights=contributions, minlength=nb_segments)

        potentials = np.full(nb_segments, -np.inf)
        valid = nb_samples > 0
        potentials[valid] = sums[valid] / nb_samples[valid]
        return potentials

    # ------------------------------------------------------------------
    # Draw emission
    # ------------------------------------------------------------------

    def _transformation(self, plotter) -> Transformation:
        return Transformation(plotter.size, self.raster.size)

    def draw_thread(self, plotter, nb_segments_to_ignore: int) -> None:
        """Emit the thread, skipping segments already drawn.

        Parameters
        ----------
        plotter : PlotterBase
            Target renderer
        nb_segments_to_ignore : int
            0 for a full redraw, otherwise the count already on the plotter
        """
        transformation = self._transformation(plotter)
        line_width = transformation.scaling * self.params.quality * self.params.lines_thickness
        if self.params.invert_colors:
            compositing = CompositingOperation.LIGHTEN
        else:
            compositing = CompositingOperation.DARKEN

        for pegs, channel in self.thread.iterate_on_threads(nb_segments_to_ignore):
            points = [transformation.transform((peg.x, peg.y)) for peg in pegs]
            plotter.draw_broken_line(points, channel, self.params.lines_opacity, compositing, line_width)

    def draw_pegs(self, plotter) -> None:
        transformation = self._transformation(plotter)
        point_size = 0.5 * transformation.scaling * self.params.quality

        points = [transformation.transform((peg.x, peg.y)) for peg in self.layout.pegs]
        plotter.draw_points(points, PEGS_COLOR, point_size)

    def debug_view(self) -> np.ndarray:
        """Copy of the ink raster snapshot, shape (H, W, 3), uint8."""
        return self.raster.snapshot.copy()

    # ------------------------------------------------------------------
    # Instructions
    # ------------------------------------------------------------------

    @property
    def instructions(self) -> str:
        """Peg coordinates and peg-by-peg steps to reproduce the thread."""
        if self.params.mode != "monochrome":
            return "Instructions are only available for monochrome mode."
        if self.params.invert_colors:
            return "Instructions are only available for black thread."

        domain_width = max(peg.x for peg in self.layout.pegs)
        domain_height = max(peg.y for peg in self.layout.pegs)
        thread_thickness = self.params.lines_thickness * self.params.quality
        opacity = self.params.lines_opacity

        instructions = [
            "Here are instructions to reproduce this in real life. For the best result, "
            "compute it with the highest quality and the highest thread opacity.\n",
            "Space units used below are abstract, just scale it to whatever size you want. "
            "Typically, you can choose 1 unit = 1 millimeter.",
            f"Computed for a total size of {_format_number(domain_width)}x{_format_number(domain_height)}.",
            f"Computed for a black thread of width {_format_number(thread_thickness)} and opacity "
            f"{_format_number(opacity)} (this is equivalent to an opaque thread of width "
            f"{_format_number(thread_thickness * opacity)}).",
            "\nFirst here are the positions of the pegs:",
        ]

        for i_peg, peg in enumerate(self.layout.pegs):
            instructions.append(f"  - PEG_{i_peg}: x={peg.x:.2f} ; y={peg.y:.2f}")

        instructions.append("\nThen here are the steps of the thread:")
        for pegs, _ in self.thread.iterate_on_threads(0):
            names = [f"PEG_{self._peg_index[peg]}" for peg in pegs]
            instructions.append(f"  - First start from {names[0]}")
            for i_peg in range(1, len(names)):
                instructions.append(f"  - then go to {names[i_peg]} (this is segment {i_peg} / {len(names) - 1})")

        return "\n".join(instructions)
