"""Lightweight wall-clock timing.

Provides:
    - timer(): context manager for wall-clock timing with optional sink
    - Deadline: millisecond budget checked between units of work

Used to measure:
    - Full thread computation in the CLI
    - Per-call time budget of ThreadComputer.advance()

Both rely on time.perf_counter (monotonic, unaffected by clock changes).
"""

import logging
import time
from contextlib import contextmanager
from typing import Callable, Optional

logger = logging.getLogger(__name__)


@contextmanager
def timer(name: str, sink: Optional[Callable[[str, float], None]] = None):
    """Context manager for wall-clock timing.

    Parameters
    ----------
    name : str
        Timer name (for logging/display)
    sink : Optional[Callable[[str, float], None]]
        Optional callback(name, elapsed_seconds)
        If None, logs at INFO level

    Yields
    ------
    None

    Examples
    --------
    >>> with timer("compute_thread"):
    ...     export.compute_all(computer, max_ms_per_step=20.0)
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        if sink is not None:
            sink(name, elapsed)
        else:
            logger.info(f"{name}: {elapsed:.3f} s")


class Deadline:
    """Time budget expressed in milliseconds.

    Examples
    --------
    >>> deadline = Deadline(20.0)
    >>> while work_left() and not deadline.expired():
    ...     do_one_unit()
    """

    def __init__(self, budget_ms: float):
        self.budget_ms = budget_ms
        self._start = time.perf_counter()

    @property
    def elapsed_ms(self) -> float:
        return 1000.0 * (time.perf_counter() - self._start)

    def expired(self) -> bool:
        return self.elapsed_ms >= self.budget_ms
