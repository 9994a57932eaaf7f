#!/usr/bin/env python3
"""Compute a thread-art rendition of an image.

Loads an image and a threading.v1 config, runs the greedy thread computation
to the target line count, then writes the enabled artifacts.

Usage:
    python scripts/thread_image.py --image photo.jpg --output outputs/photo

    # Colored threads on a black background, 4000 lines, reproducible
    python scripts/thread_image.py --image photo.jpg --output outputs/photo \
        --mode colors --invert-colors --nb-lines 4000 --seed 7

Outputs (in --output):
    - <stem>.svg: vector document (1000 × 1000 viewBox)
    - <stem>.png: raster render
    - <stem>_instructions.txt: peg positions and steps (monochrome, dark thread)
    - <stem>_debug.png: ink raster as seen by the engine (--debug-view)
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

sys.path.insert(0, str(Path(__file__).parent.parent))

from src.thread_engine import export
from src.thread_engine.computer import ThreadComputer
from src.thread_engine.pegs import PegLayoutError
from src.utils import fs, logging_config, profiler, validators

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = Path(__file__).parent.parent / "configs" / "threading_v1.yaml"


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Compute a thread-art rendition of an image",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument("--image", type=str, required=True, help="Source image (PNG/JPEG)")
    parser.add_argument("--output", type=str, required=True, help="Output directory")
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="threading.v1 YAML config (default: configs/threading_v1.yaml of the repository if present, else built-in defaults)",
    )

    # Config overrides
    parser.add_argument("--nb-lines", type=int, default=None, help="Target number of segments")
    parser.add_argument("--mode", choices=["monochrome", "colors"], default=None, help="Thread mode")
    parser.add_argument("--shape", choices=["rectangle", "ellipse"], default=None, help="Frame shape")
    parser.add_argument("--quality", type=int, default=None, help="Ink raster resolution factor (1-8)")
    parser.add_argument("--seed", type=int, default=None, help="Tie-break random seed")
    parser.add_argument(
        "--invert-colors",
        action="store_true",
        default=None,
        help="Light thread on a black background",
    )

    parser.add_argument("--debug-view", action="store_true", help="Also write the ink raster snapshot")
    parser.add_argument("--log-level", type=str, default="INFO", help="Logging level")
    parser.add_argument("--log-file", type=str, default=None, help="Optional log file")
    return parser.parse_args(argv)


def load_params(config_path: Optional[str], args: argparse.Namespace) -> validators.ThreadingV1:
    """Config file (or defaults) with the CLI overrides applied."""
    if config_path is not None:
        params = validators.load_threading_config(config_path)
    elif DEFAULT_CONFIG.exists():
        params = validators.load_threading_config(DEFAULT_CONFIG)
    else:
        params = validators.ThreadingV1()

    overrides = {
        "nb_lines": args.nb_lines,
        "mode": args.mode,
        "shape": args.shape,
        "quality": args.quality,
        "seed": args.seed,
        "invert_colors": args.invert_colors,
    }
    return validators.apply_overrides(params, overrides)


def thread_image_main(
    image_path: str,
    output_dir: str,
    params: validators.ThreadingV1,
    debug_view: bool = False
) -> Dict[str, Path]:
    """Compute the thread for one image and write its artifacts.

    Returns
    -------
    dict
        Artifact kind → written path
    """
    image = fs.load_image_rgb(image_path)
    logger.info(f"Loaded {image_path}: {image.shape[1]}x{image.shape[0]}")

    computer = ThreadComputer(image, params)
    with profiler.timer("compute_thread"):
        export.compute_all(
            computer,
            max_ms_per_step=params.run.max_ms_per_step,
            log_every=params.run.log_every_segments,
        )

    indicators = computer.indicators
    logger.info(
        f"Done: {indicators.segments_count} segments on {indicators.pegs_count} pegs, "
        f"error average={indicators.error_average} variance={indicators.error_variance}"
    )

    return export.write_outputs(computer, output_dir, Path(image_path).stem, debug_view=debug_view)


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    args = parse_args(argv)
    logging_config.setup_logging(
        log_level=args.log_level,
        log_file=args.log_file,
        quiet_libs=["PIL"],
        context={"app": "thread_image"},
    )
    logging_config.install_excepthook()
    logging_config.push_context(image=Path(args.image).name)

    try:
        params = load_params(args.config, args)
        written = thread_image_main(args.image, args.output, params, debug_view=args.debug_view)
    except (FileNotFoundError, ValueError, PegLayoutError) as e:
        logger.error(str(e))
        return 1
    finally:
        logging_config.pop_context(["image"])

    print("\n=== Threading Complete ===")
    for kind, path in written.items():
        print(f"{kind}: {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
