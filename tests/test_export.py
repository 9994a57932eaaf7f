"""Test batch computation, exports and the thread_image CLI.

Tests for src.thread_engine.export and scripts/thread_image.py:
    - compute_all() reaches the target, even with a tiny per-step budget,
      rejects a zero budget, reports progress
    - SVG export: one <line> per segment, empty thread still a document
    - PNG export: longest side = size_px, aspect of the ink raster
    - write_outputs(): enabled artifacts only, debug view on request
    - Default config resolved against the repository, not the working
      directory
    - main(): exit code 0 with files written, 1 on a missing image or a bad
      override

Synthetic test:
    - Tiny 40×24 image, 30 lines
    - Verify completes without errors and outputs are well-formed

Run:
    pytest tests/test_export.py -v
"""

from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from scripts.thread_image import DEFAULT_CONFIG, load_params, main, parse_args
from src.thread_engine import export
from src.thread_engine.computer import ThreadComputer
from src.utils import validators
from src.utils.validators import ThreadingV1


def make_image():
    image = np.full((24, 40, 3), 220, dtype=np.uint8)
    image[6:18, 10:30] = (30, 30, 30)
    return image


@pytest.fixture
def computer():
    params = ThreadingV1(pegs_spacing=2.0, nb_lines=30, seed=0)
    return ThreadComputer(make_image(), params)


@pytest.fixture
def image_file(tmp_path):
    path = tmp_path / "input.png"
    Image.fromarray(make_image()).save(path)
    return path


# ============================================================================
# COMPUTE
# ============================================================================

def test_compute_all_reaches_target(computer):
    seen = []
    nb_steps = export.compute_all(computer, max_ms_per_step=50.0, log_every=10,
                                  progress=lambda done, target: seen.append((done, target)))

    assert computer.nb_segments == 30
    assert nb_steps == len(seen) >= 1
    assert seen[-1] == (30, 30)
    # Already at the target: nothing to do
    assert export.compute_all(computer) == 0


def test_compute_all_tiny_budget_reaches_target():
    image = np.full((40, 40, 3), 220, dtype=np.uint8)
    image[10:30, 10:30] = 30
    computer = ThreadComputer(image, ThreadingV1(pegs_spacing=2.0, nb_lines=50, seed=0))

    nb_steps = export.compute_all(computer, max_ms_per_step=1e-6)

    assert computer.nb_segments == 50
    # One whole segment per call once the budget is spent
    assert nb_steps == 50


def test_compute_all_rejects_zero_budget(computer):
    with pytest.raises(ValueError):
        export.compute_all(computer, max_ms_per_step=0.0)


# ============================================================================
# EXPORTS
# ============================================================================

def test_export_svg(computer, tmp_path):
    export.compute_all(computer)
    path = tmp_path / "thread.svg"

    document = export.export_svg(computer, path)

    assert path.read_text(encoding="utf-8") == document
    assert document.count("<line ") == 30
    assert document.rstrip().endswith("</svg>")


def test_export_svg_empty_thread(computer):
    document = export.export_svg(computer)
    assert "<rect" in document
    assert "<line " not in document


def test_export_png_aspect(computer, tmp_path):
    export.compute_all(computer)
    path = tmp_path / "thread.png"

    image = export.export_png(computer, path, size_px=200)

    # Ink raster is 100 x 60
    assert image.size == (200, 120)
    with Image.open(path) as written:
        assert written.size == (200, 120)
        pixels = np.asarray(written.convert("RGB"))
    assert pixels.min() < 255


def test_write_outputs(computer, tmp_path):
    export.compute_all(computer)

    written = export.write_outputs(computer, tmp_path / "out", "cat", debug_view=True)

    assert set(written) == {"svg", "png", "instructions", "debug"}
    assert written["instructions"].name == "cat_instructions.txt"
    assert written["debug"].name == "cat_debug.png"
    for path in written.values():
        assert path.exists()
    assert "then go to PEG_" in written["instructions"].read_text(encoding="utf-8")


def test_write_outputs_respects_config(tmp_path):
    params = ThreadingV1(pegs_spacing=2.0, nb_lines=5, output={"svg": False, "instructions": False})
    computer = ThreadComputer(make_image(), params)
    export.compute_all(computer)

    written = export.write_outputs(computer, tmp_path, "cat")

    assert set(written) == {"png"}
    assert sorted(p.name for p in tmp_path.iterdir()) == ["cat.png"]


# ============================================================================
# CLI
# ============================================================================

def test_parse_args_overrides_default_to_none():
    args = parse_args(["--image", "a.png", "--output", "out"])
    assert args.nb_lines is None
    assert args.invert_colors is None
    assert args.debug_view is False


def test_default_config_found_outside_repo_root(tmp_path, monkeypatch):
    repo_config = Path(__file__).parent.parent / "configs" / "threading_v1.yaml"
    monkeypatch.chdir(tmp_path)

    params = load_params(None, parse_args(["--image", "a.png", "--output", "out"]))

    assert DEFAULT_CONFIG.resolve() == repo_config.resolve()
    assert params == validators.load_threading_config(repo_config)


def test_main_writes_outputs(image_file, tmp_path):
    output_dir = tmp_path / "out"
    exit_code = main([
        "--image", str(image_file),
        "--output", str(output_dir),
        "--nb-lines", "20",
        "--seed", "1",
        "--debug-view",
    ])

    assert exit_code == 0
    names = sorted(p.name for p in output_dir.iterdir())
    assert names == ["input.png", "input.svg", "input_debug.png", "input_instructions.txt"]


def test_main_missing_image(tmp_path):
    exit_code = main(["--image", str(tmp_path / "missing.png"), "--output", str(tmp_path / "out")])
    assert exit_code == 1


def test_main_bad_override(image_file, tmp_path):
    exit_code = main(["--image", str(image_file), "--output", str(tmp_path / "out"), "--quality", "0"])
    assert exit_code == 1
