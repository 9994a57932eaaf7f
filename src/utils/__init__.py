"""Cross-cutting utilities (lowest dependency layer).

This package provides shared primitives for:
    - Config validation (validators)
    - Planar geometry & device transforms (geometry)
    - Atomic I/O, YAML and image loading (fs)
    - Raster error metrics (metrics)
    - Timing and time budgets (profiler)
    - Unified logging (logging_config)

No module in utils/ may import from upper layers (simulator, engine, plotters).

Convenience imports:
    from src.utils import fs, geometry, validators
    from src.utils.logging_config import setup_logging, get_logger
"""

from . import fs
from . import geometry
from . import logging_config
from . import metrics
from . import profiler
from . import validators

from .logging_config import get_logger, push_context, setup_logging

__all__ = [
    # Modules
    'fs',
    'geometry',
    'logging_config',
    'metrics',
    'profiler',
    'validators',
    # Direct exports
    'setup_logging',
    'get_logger',
    'push_context',
]
