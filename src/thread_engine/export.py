"""Batch computation and file exports.

Provides:
    - compute_all(): drive advance() until the target segment count is reached
    - export_svg(): vector document of the current thread
    - export_png(): raster render, aspect of the ink raster
    - export_debug_view(): the ink raster as the engine sees it
    - write_outputs(): every artifact enabled in the output config

All writes go through utils.fs atomic helpers.
"""

import logging
from pathlib import Path
from typing import Callable, Dict, Optional, Union

import numpy as np
from PIL import Image

from ..plotters.raster import RasterPlotter
from ..plotters.svg import SvgPlotter
from ..thread_simulator.compositing import CompositingCapability
from ..utils import fs
from ..utils.geometry import best_fit_size
from .computer import ThreadComputer
from .thread_plotter import ThreadPlotter

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], object]


def compute_all(
    computer: ThreadComputer,
    max_ms_per_step: float = 20.0,
    log_every: int = 500,
    progress: Optional[ProgressCallback] = None
) -> int:
    """Run the anytime computation to completion.

    Parameters
    ----------
    computer : ThreadComputer
        Engine to drive
    max_ms_per_step : float
        Budget of each advance() call, > 0
    log_every : int
        Log progress every time this many more segments are done
    progress : callable, optional
        progress(nb_segments, target) called after each step

    Returns
    -------
    int
        Number of advance() calls made

    Raises
    ------
    ValueError
        If max_ms_per_step <= 0
    """
    if max_ms_per_step <= 0:
        raise ValueError(f"max_ms_per_step must be > 0, got {max_ms_per_step}")

    nb_steps = 0
    next_log = log_every
    while computer.nb_segments != computer.target_nb_segments:
        computer.advance(max_ms_per_step)
        nb_steps += 1
        nb_segments = computer.nb_segments
        target = computer.target_nb_segments

        if progress is not None:
            progress(nb_segments, target)
        if nb_segments >= next_log or nb_segments == target:
            logger.info(f"Segments: {nb_segments}/{target} (error average={computer.error.average})")
            next_log = (nb_segments // log_every + 1) * log_every

    return nb_steps


def export_svg(
    computer: ThreadComputer,
    path: Optional[Union[str, Path]] = None,
    capability: CompositingCapability = CompositingCapability.ADVANCED
) -> str:
    """Render the thread as an SVG document, optionally written to path."""
    plotter = SvgPlotter(capability)
    ThreadPlotter(plotter, computer).plot(full_redraw=True)
    document = plotter.export()

    if path is not None:
        fs.atomic_write_text(document, path)
        logger.info(f"Wrote SVG: {path}")
    return document


def export_png(
    computer: ThreadComputer,
    path: Optional[Union[str, Path]] = None,
    size_px: int = 1000,
    capability: CompositingCapability = CompositingCapability.ADVANCED
) -> Image.Image:
    """Render the thread to a raster whose longest side is size_px."""
    size = best_fit_size(computer.raster.size, size_px)
    plotter = RasterPlotter(size.width, size.height, capability)
    ThreadPlotter(plotter, computer).plot(full_redraw=True)
    image = plotter.to_image()

    if path is not None:
        fs.atomic_save_image(image, path)
        logger.info(f"Wrote PNG: {path} ({size.width}x{size.height})")
    return image


def export_debug_view(computer: ThreadComputer, path: Union[str, Path]) -> np.ndarray:
    """Write the ink raster snapshot (mid-gray means "no ink needed")."""
    view = computer.debug_view()
    fs.atomic_save_image(view, path)
    logger.info(f"Wrote debug view: {path}")
    return view


def write_outputs(
    computer: ThreadComputer,
    output_dir: Union[str, Path],
    stem: str,
    debug_view: bool = False
) -> Dict[str, Path]:
    """Write the artifacts enabled in computer.params.output.

    Parameters
    ----------
    computer : ThreadComputer
        Engine holding the finished thread
    output_dir : str or Path
        Destination directory (created if missing)
    stem : str
        Base name of the files
    debug_view : bool
        Also write the ink raster snapshot

    Returns
    -------
    dict
        Artifact kind ("svg", "png", "instructions", "debug") → written path
    """
    output_dir = fs.ensure_dir(output_dir)
    output = computer.params.output
    written: Dict[str, Path] = {}

    if output.svg:
        written["svg"] = output_dir / f"{stem}.svg"
        export_svg(computer, written["svg"])
    if output.png:
        written["png"] = output_dir / f"{stem}.png"
        export_png(computer, written["png"], size_px=output.png_size_px)
    if output.instructions:
        written["instructions"] = output_dir / f"{stem}_instructions.txt"
        fs.atomic_write_text(computer.instructions, written["instructions"])
        logger.info(f"Wrote instructions: {written['instructions']}")
    if debug_view:
        written["debug"] = output_dir / f"{stem}_debug.png"
        export_debug_view(computer, written["debug"])

    return written
