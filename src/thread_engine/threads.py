"""Thread strategies: which peg sequences exist and which one grows next.

Two variants share the ThreadBase contract:
    - ThreadMonochrome: one white/black thread over a grayscale baseline
    - ThreadRedGreenBlue: three primary-colored threads whose segment counts
      follow the color energy measured on the source image

Peg sequences only grow at the tail or get truncated from the tail, so
"redraw from segment K" is always a tail slice.
"""

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple

import numpy as np

from ..thread_simulator.compositing import Channel
from .pegs import Peg

logger = logging.getLogger(__name__)


@dataclass
class ThreadToGrow:
    """Sequence that receives the next segment (mutated in place)."""
    pegs: List[Peg]
    channel: Channel


@dataclass(frozen=True)
class Repartition:
    red: int
    green: int
    blue: int

    @property
    def total(self) -> int:
        return self.red + self.green + self.blue


def compute_nb_segments(pegs: Sequence[Peg]) -> int:
    return len(pegs) - 1 if len(pegs) > 1 else 0


def lower_nb_segments_for_thread(pegs: List[Peg], target_nb_segments: int) -> None:
    """Truncate a sequence in place to at most target_nb_segments segments."""
    if target_nb_segments > 0:
        del pegs[target_nb_segments + 1:]
    else:
        pegs.clear()


def _baseline_transform(values: np.ndarray, black_background: bool) -> np.ndarray:
    if black_background:
        return (255.0 - values) / 2.0
    return values / 2.0


class ThreadBase(ABC):
    """Common contract of the thread strategies.

    Attributes
    ----------
    sampling_channel : int
        RGB index the selector reads from the ink raster snapshot
    """

    def __init__(self):
        self.sampling_channel = 0

    @property
    @abstractmethod
    def total_nb_segments(self) -> int:
        """Segments over all sequences."""

    @abstractmethod
    def lower_nb_segments(self, target_nb_segments: int) -> None:
        """Truncate so that total_nb_segments is (close to) the target."""

    @abstractmethod
    def iterate_on_threads(self, nb_segments_to_ignore: int) -> Iterator[Tuple[List[Peg], Channel]]:
        """Yield (pegs, channel) tails that still have segments to draw."""

    @abstractmethod
    def get_thread_to_grow(self) -> ThreadToGrow:
        """Sequence that receives the next segment."""

    @abstractmethod
    def adjust_canvas_data(self, data: np.ndarray, black_background: bool) -> np.ndarray:
        """Encode a resampled source image as the ink raster baseline."""

    def enable_sampling_for(self, channel: Channel) -> None:
        self.sampling_channel = channel.index

    @staticmethod
    def _iterate_on_thread(
        pegs: List[Peg],
        channel: Channel,
        from_segment: int
    ) -> Iterator[Tuple[List[Peg], Channel]]:
        if from_segment < compute_nb_segments(pegs):
            yield pegs[from_segment:], channel


class ThreadMonochrome(ThreadBase):
    """Single thread over a gray baseline; samples the red channel."""

    def __init__(self):
        super().__init__()
        self.thread_pegs: List[Peg] = []

    @property
    def total_nb_segments(self) -> int:
        return compute_nb_segments(self.thread_pegs)

    def lower_nb_segments(self, target_nb_segments: int) -> None:
        lower_nb_segments_for_thread(self.thread_pegs, target_nb_segments)

    def iterate_on_threads(self, nb_segments_to_ignore: int) -> Iterator[Tuple[List[Peg], Channel]]:
        yield from self._iterate_on_thread(self.thread_pegs, Channel.MONOCHROME, nb_segments_to_ignore)

    def get_thread_to_grow(self) -> ThreadToGrow:
        return ThreadToGrow(self.thread_pegs, Channel.MONOCHROME)

    def adjust_canvas_data(self, data: np.ndarray, black_background: bool) -> np.ndarray:
        """Per-pixel RGB mean, halved (inverted first on black background).

        Parameters
        ----------
        data : np.ndarray
            Resampled source, shape (H, W, 3), values in [0, 255]
        black_background : bool
            Light thread on a dark background

        Returns
        -------
        np.ndarray
            Float32 gray baseline replicated on the 3 channels
        """
        average = data[:, :, :3].astype(np.float32).mean(axis=2)
        adjusted = _baseline_transform(average, black_background)
        return np.repeat(adjusted[:, :, np.newaxis], 3, axis=2)

    def enable_sampling_for(self, channel: Channel = Channel.MONOCHROME) -> None:
        # The baseline is gray: every channel holds the same value
        self.sampling_channel = 0


class ThreadRedGreenBlue(ThreadBase):
    """Three primary-colored threads sharing the peg set.

    Parameters
    ----------
    frequencies : tuple of float, optional
        (red, green, blue) shares summing to 1. Normally measured by
        adjust_canvas_data(); passing them skips the measure until then.
    """

    def __init__(self, frequencies: Optional[Tuple[float, float, float]] = None):
        super().__init__()
        self.thread_pegs_red: List[Peg] = []
        self.thread_pegs_green: List[Peg] = []
        self.thread_pegs_blue: List[Peg] = []

        if frequencies is None:
            frequencies = (1.0 / 3.0, 1.0 / 3.0, 1.0 / 3.0)
        self.frequency_red, self.frequency_green, self.frequency_blue = (float(f) for f in frequencies)

    @property
    def frequencies(self) -> Tuple[float, float, float]:
        return self.frequency_red, self.frequency_green, self.frequency_blue

    @property
    def total_nb_segments(self) -> int:
        return (
            compute_nb_segments(self.thread_pegs_red)
            + compute_nb_segments(self.thread_pegs_green)
            + compute_nb_segments(self.thread_pegs_blue)
        )

    def lower_nb_segments(self, target_nb_segments: int) -> None:
        repartition = self.compute_ideal_segments_repartition(max(0, target_nb_segments))
        lower_nb_segments_for_thread(self.thread_pegs_red, repartition.red)
        lower_nb_segments_for_thread(self.thread_pegs_green, repartition.green)
        lower_nb_segments_for_thread(self.thread_pegs_blue, repartition.blue)

    def iterate_on_threads(self, nb_segments_to_ignore: int) -> Iterator[Tuple[List[Peg], Channel]]:
        repartition = self.compute_ideal_segments_repartition(nb_segments_to_ignore)
        yield from self._iterate_on_thread(self.thread_pegs_red, Channel.RED, repartition.red)
        yield from self._iterate_on_thread(self.thread_pegs_green, Channel.GREEN, repartition.green)
        yield from self._iterate_on_thread(self.thread_pegs_blue, Channel.BLUE, repartition.blue)

    def get_thread_to_grow(self) -> ThreadToGrow:
        """First of red, green, blue still short of its share at total + 1."""
        repartition = self.compute_ideal_segments_repartition(self.total_nb_segments + 1)
        if repartition.red > 0 and len(self.thread_pegs_red) < repartition.red + 1:
            return ThreadToGrow(self.thread_pegs_red, Channel.RED)
        elif repartition.green > 0 and len(self.thread_pegs_green) < repartition.green + 1:
            return ThreadToGrow(self.thread_pegs_green, Channel.GREEN)
        return ThreadToGrow(self.thread_pegs_blue, Channel.BLUE)

    def adjust_canvas_data(self, data: np.ndarray, black_background: bool) -> np.ndarray:
        """Halve each channel and measure the color energy of the source.

        The energy of a channel is the ink it calls for: its summed value on
        a black background, the summed complement on a white one. A source
        with no energy at all splits the segments evenly.
        """
        source = data[:, :, :3].astype(np.float64)
        nb_pixels = source.shape[0] * source.shape[1]

        cumulated = source.reshape(-1, 3).sum(axis=0)
        if not black_background:
            cumulated = 255.0 * nb_pixels - cumulated

        total_color = float(cumulated.sum())
        if total_color > 0:
            self.frequency_red, self.frequency_green, self.frequency_blue = (
                float(c) / total_color for c in cumulated
            )
        else:
            logger.warning("Source image carries no color energy, splitting segments evenly")
            self.frequency_red = self.frequency_green = self.frequency_blue = 1.0 / 3.0

        logger.debug(
            f"Color frequencies: red={self.frequency_red:.3f} "
            f"green={self.frequency_green:.3f} blue={self.frequency_blue:.3f}"
        )
        return _baseline_transform(source, black_background).astype(np.float32)

    def compute_ideal_segments_repartition(self, total_nb_segments: int) -> Repartition:
        """Split a segment count between the three channels.

        Parameters
        ----------
        total_nb_segments : int
            Count to split, >= 0

        Returns
        -------
        Repartition
            Counts summing exactly to total_nb_segments

        Notes
        -----
        Each channel first gets floor(total · frequency). Leftover units go
        one at a time to the channel whose gap (ideal count minus current
        share) is strictly the largest; blue takes the unit otherwise, so
        blue wins ties.

        Examples
        --------
        >>> ThreadRedGreenBlue((0.5, 0.3, 0.2)).compute_ideal_segments_repartition(11)
        Repartition(red=6, green=3, blue=2)
        """
        ideal_red = total_nb_segments * self.frequency_red
        ideal_green = total_nb_segments * self.frequency_green
        ideal_blue = total_nb_segments * self.frequency_blue

        red = int(math.floor(ideal_red))
        green = int(math.floor(ideal_green))
        blue = int(math.floor(ideal_blue))

        while red + green + blue < total_nb_segments:
            current_total = max(1, red + green + blue)
            gap_red = ideal_red - red / current_total
            gap_green = ideal_green - green / current_total
            gap_blue = ideal_blue - blue / current_total

            if gap_red > gap_green and gap_red > gap_blue:
                red += 1
            elif gap_green > gap_red and gap_green > gap_blue:
                green += 1
            else:
                blue += 1

        return Repartition(red, green, blue)
