"""Test the greedy anytime thread computer.

Tests for src.thread_engine.computer:
    - advance() is a no-op at the target, converges to it, adds at least one
      segment per call even with a spent budget, and shrinks by truncation
      + replay
    - Grow 500 → shrink 200 keeps a prefix of the grown thread
    - Shrinking to zero restores the baseline raster exactly
    - Tri-color totals reach the target, also after shrinking
    - Segment potential on a raster already at the target level
    - Seeded runs are reproducible; uniform images still converge
    - Degenerate layouts raise PegLayoutError
    - Indicators, indicator callback ids, instructions text

Run:
    pytest tests/test_computer.py -v
"""

import numpy as np
import pytest

from src.thread_engine import computer as computer_module
from src.thread_engine.computer import ThreadComputer
from src.thread_engine.pegs import Peg, PegLayout, PegLayoutError
from src.thread_engine.threads import ThreadMonochrome, ThreadRedGreenBlue
from src.utils.metrics import compute_error_measure
from src.utils.validators import ThreadingV1

BUDGET_MS = 1000.0


def make_image(size=40):
    """Dark disc on a light background, with a colored corner."""
    ys, xs = np.mgrid[0:size, 0:size]
    image = np.full((size, size, 3), 230, dtype=np.uint8)
    disc = (xs - size / 2) ** 2 + (ys - size / 2) ** 2 < (size / 4) ** 2
    image[disc] = (20, 20, 20)
    image[: size // 4, : size // 4] = (200, 40, 40)
    return image


def make_params(**kwargs):
    values = dict(pegs_spacing=2.0, nb_lines=0, seed=0)
    values.update(kwargs)
    return ThreadingV1(**values)


def run_to_target(computer, max_calls=10_000):
    calls = 0
    while computer.advance(BUDGET_MS):
        calls += 1
        assert calls < max_calls
    return calls


@pytest.fixture
def computer():
    return ThreadComputer(make_image(), make_params())


# ============================================================================
# SETUP
# ============================================================================

def test_initial_state(computer):
    assert isinstance(computer.thread, ThreadMonochrome)
    assert computer.nb_segments == 0
    assert computer.target_nb_segments == 0
    assert computer.raster.size == (100, 100)
    # ellipse, spacing 40 in a 1000 domain
    assert len(computer.pegs) == 79


def test_error_matches_snapshot_after_reset(computer):
    assert computer.error == compute_error_measure(computer.raster.snapshot)


def test_rejects_non_rgb_image():
    with pytest.raises(ValueError):
        ThreadComputer(np.zeros((10, 10), dtype=np.uint8), make_params())


def test_reset_switches_strategy(computer):
    computer.target_nb_segments = 5
    run_to_target(computer)

    computer.reset(make_params(mode="colors"))

    assert isinstance(computer.thread, ThreadRedGreenBlue)
    assert computer.nb_segments == 0
    assert computer.target_nb_segments == 5


def test_negative_target_means_empty(computer):
    computer.target_nb_segments = -4
    assert computer.target_nb_segments == 0


# ============================================================================
# ANYTIME SCHEDULER
# ============================================================================

def test_advance_at_target_is_noop(computer):
    assert computer.advance(BUDGET_MS) is False
    assert computer.nb_segments == 0

    computer.target_nb_segments = 12
    run_to_target(computer)
    pegs_before = list(computer.thread.thread_pegs)
    snapshot_before = computer.debug_view()

    assert computer.advance(BUDGET_MS) is False
    assert computer.thread.thread_pegs == pegs_before
    assert np.array_equal(computer.debug_view(), snapshot_before)


def test_advance_converges(computer):
    computer.target_nb_segments = 150
    run_to_target(computer)

    assert computer.nb_segments == 150
    assert len(computer.thread.thread_pegs) == 151


def test_spent_budget_still_adds_one_segment(computer):
    computer.target_nb_segments = 10

    assert computer.advance(0.0) is True
    assert computer.nb_segments == 1

    assert computer.advance(1e-6) is True
    assert computer.nb_segments == 2


def test_segments_avoid_recent_pegs(computer):
    computer.target_nb_segments = 80
    run_to_target(computer)

    pegs = computer.thread.thread_pegs
    for i in range(1, len(pegs)):
        assert pegs[i] not in pegs[max(0, i - 20):i]
        assert not computer.layout.too_close(pegs[i - 1], pegs[i])


@pytest.mark.slow
def test_grow_then_shrink_keeps_prefix(computer):
    computer.target_nb_segments = 500
    run_to_target(computer)
    grown = list(computer.thread.thread_pegs)
    assert computer.nb_segments == 500

    computer.target_nb_segments = 200
    assert computer.advance(BUDGET_MS) is True

    assert computer.nb_segments == 200
    assert computer.thread.thread_pegs == grown[:201]
    assert computer.error == compute_error_measure(computer.raster.snapshot)


def test_shrink_to_zero_restores_baseline(computer):
    baseline = computer.debug_view()

    computer.target_nb_segments = 30
    run_to_target(computer)
    assert not np.array_equal(computer.debug_view(), baseline)

    computer.target_nb_segments = 0
    assert computer.advance(BUDGET_MS) is True
    assert computer.nb_segments == 0
    assert np.array_equal(computer.debug_view(), baseline)


def test_error_refreshed_every_100_segments(computer):
    computer.target_nb_segments = 100
    run_to_target(computer)
    assert computer.error == compute_error_measure(computer.raster.snapshot)


# ============================================================================
# TRI-COLOR
# ============================================================================

def test_colors_reach_target():
    computer = ThreadComputer(make_image(), make_params(mode="colors", nb_lines=60))
    run_to_target(computer)

    thread = computer.thread
    assert computer.nb_segments == 60
    assert len(thread.thread_pegs_red) > 0
    assert len(thread.thread_pegs_green) > 0
    assert len(thread.thread_pegs_blue) > 0


def test_colors_shrink_then_regrow():
    computer = ThreadComputer(make_image(), make_params(mode="colors", nb_lines=60))
    run_to_target(computer)

    computer.target_nb_segments = 25
    assert computer.advance(BUDGET_MS) is True
    assert computer.nb_segments <= 25

    run_to_target(computer)
    assert computer.nb_segments == 25


# ============================================================================
# SELECTION
# ============================================================================

def test_potential_on_target_raster():
    # 254 halves to 127: the raster already sits at the target everywhere
    flat = np.full((30, 30, 3), 254, dtype=np.uint8)
    computer = ThreadComputer(flat, make_params())

    starts = np.array([[10.0, 10.0], [0.0, 50.0], [5.0, 5.0]])
    ends = np.array([[90.0, 80.0], [100.0, 50.0], [5.0, 5.0]])
    potentials = computer.compute_segment_potentials(starts, ends)

    expected = -computer.raster.line_opacity_internal * 255
    assert potentials[0] == pytest.approx(expected)
    assert potentials[1] == pytest.approx(expected)
    assert potentials[2] == -np.inf


def test_potential_prefers_dark_regions():
    image = np.full((100, 100, 3), 255, dtype=np.uint8)
    image[:, :50] = 0
    computer = ThreadComputer(image, make_params())

    potentials = computer.compute_segment_potentials(
        np.array([[10.0, 0.0], [90.0, 0.0]]),
        np.array([[10.0, 100.0], [90.0, 100.0]]),
    )
    # Black halves to 0: far from the target, worth more ink
    assert potentials[0] > potentials[1]


def test_seeded_runs_are_reproducible():
    first = ThreadComputer(make_image(), make_params(nb_lines=40, seed=3))
    second = ThreadComputer(make_image(), make_params(nb_lines=40, seed=3))
    run_to_target(first)
    run_to_target(second)

    assert first.thread.thread_pegs == second.thread.thread_pegs


@pytest.mark.parametrize("mode", ["monochrome", "colors"])
def test_uniform_image_converges(mode):
    flat = np.full((32, 48, 3), 255, dtype=np.uint8)
    computer = ThreadComputer(flat, make_params(mode=mode, nb_lines=30, shape="rectangle"))
    run_to_target(computer)

    assert computer.nb_segments == 30
    if mode == "colors":
        assert computer.thread.frequencies == pytest.approx((1 / 3, 1 / 3, 1 / 3))


def test_no_starting_segment_raises(monkeypatch):
    pegs = [Peg(0.0, 0.0), Peg(99.0, 0.0), Peg(99.0, 99.0), Peg(0.0, 99.0)]
    monkeypatch.setattr(
        computer_module, "compute_pegs",
        lambda size, shape, spacing: PegLayout(pegs, lambda a, b: True)
    )
    computer = ThreadComputer(make_image(), make_params(nb_lines=1))

    with pytest.raises(PegLayoutError):
        computer.advance(BUDGET_MS)


def test_no_next_peg_raises(monkeypatch):
    # Square corners: only the diagonals are usable, and they share pegs
    pegs = [Peg(0.0, 0.0), Peg(99.0, 0.0), Peg(99.0, 99.0), Peg(0.0, 99.0)]
    monkeypatch.setattr(
        computer_module, "compute_pegs",
        lambda size, shape, spacing: PegLayout(pegs, lambda a, b: a.x == b.x or a.y == b.y)
    )
    computer = ThreadComputer(make_image(), make_params(nb_lines=2))

    with pytest.raises(PegLayoutError):
        computer.advance(BUDGET_MS)
    assert computer.nb_segments == 1


# ============================================================================
# INDICATORS AND INSTRUCTIONS
# ============================================================================

def test_indicators(computer):
    computer.target_nb_segments = 20
    run_to_target(computer)
    indicators = computer.indicators

    assert indicators.pegs_count == 79
    assert indicators.segments_count == 20
    assert indicators.error_average == computer.error.average


def test_update_indicators_ids(computer):
    received = {}
    computer.update_indicators(lambda key, value: received.__setitem__(key, value))

    assert list(received) == [
        "pegs-count", "segments-count", "error-average", "error-mean-square", "error-variance",
    ]
    assert received["pegs-count"] == "79"
    assert received["segments-count"] == "0"


def test_instructions_monochrome(computer):
    computer.target_nb_segments = 10
    run_to_target(computer)
    text = computer.instructions

    assert "Computed for a total size of 100x" in text
    assert "  - PEG_0: x=100.00 ; y=50.00" in text
    assert "  - First start from PEG_" in text
    assert text.count("  - then go to PEG_") == 10
    assert text.endswith("(this is segment 10 / 10)")

    first = computer.thread.thread_pegs[0]
    assert f"First start from PEG_{computer.pegs.index(first)}" in text


def test_instructions_unavailable():
    colors = ThreadComputer(make_image(), make_params(mode="colors"))
    assert colors.instructions == "Instructions are only available for monochrome mode."

    inverted = ThreadComputer(make_image(), make_params(invert_colors=True))
    assert inverted.instructions == "Instructions are only available for black thread."
