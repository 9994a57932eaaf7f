"""Thread Art: image → string-art thread generator.

This package turns a raster image into an ordered sequence of straight thread
segments strung between pegs around a frame, so that the superposition of all
segments approximates the source image.

Architecture layers (strict one-way dependency):
    scripts/ → src/{thread_engine,plotters}/ → src/thread_simulator/ → src/utils/

Key invariants:
    - Pegs and threads live in ink-raster pixel space; plotters receive
      device-space points through utils.geometry.Transformation
    - Thread sequences only grow or shrink at the tail
    - The simulated raster targets mid-gray (127); ink accumulates with
      "lighter" compositing
    - YAML-only configs, validated by pydantic
"""

__version__ = "0.3.0"
