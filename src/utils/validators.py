"""YAML schema validation and config loading.

Provides centralized validation for configuration files using pydantic:
    - Threading schema (threading.v1.yaml): peg layout, quality, mode, line
      appearance, target line count, run budget and outputs

All modules must use these validators to load configs for fail-fast error
detection with actionable messages (offending keys, expected ranges).

Units:
    - pegs_spacing: multiple of 20 abstract units in a 1000-unit domain
    - lines_thickness: ink-raster pixels at quality 1
    - lines_opacity: [0, 1]
    - blur: device units

Usage:
    from src.utils import validators

    params = validators.load_threading_config("configs/threading_v1.yaml")
    params = validators.ThreadingV1(mode="colors", nb_lines=3000)
"""

from pathlib import Path
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ============================================================================
# THREADING SCHEMA V1
# ============================================================================

class RunConfig(BaseModel):
    """Anytime computation settings."""
    max_ms_per_step: float = Field(20.0, gt=0.0, description="Budget of one advance() call (ms)")
    log_every_segments: int = Field(500, ge=1, description="Progress log cadence (segments)")


class OutputConfig(BaseModel):
    """Which artifacts the CLI writes."""
    svg: bool = Field(True, description="Write the vector export")
    png: bool = Field(True, description="Write a raster render")
    instructions: bool = Field(True, description="Write the peg-by-peg instructions")
    png_size_px: int = Field(1000, ge=16, le=8192, description="Side of the square PNG render")


class ThreadingV1(BaseModel):
    """Thread computation parameters (threading.v1.yaml schema).

    Any change to shape, pegs_spacing, quality, mode, lines_opacity,
    lines_thickness or invert_colors requires a ThreadComputer.reset();
    nb_lines only moves the target segment count.
    """
    model_config = ConfigDict(populate_by_name=True)

    schema_version: str = Field("threading.v1", alias="schema", description="Schema version")
    shape: Literal["rectangle", "ellipse"] = Field("ellipse", description="Frame shape")
    pegs_spacing: float = Field(0.6, gt=0.0, le=5.0, description="Peg spacing factor")
    quality: int = Field(1, ge=1, le=8, description="Ink raster resolution factor (100 px per unit)")
    mode: Literal["monochrome", "colors"] = Field("monochrome", description="Single thread or R/G/B threads")
    nb_lines: int = Field(1000, ge=0, description="Target number of segments")
    lines_opacity: float = Field(0.0625, gt=0.0, le=1.0, description="Opacity of one thread pass")
    lines_thickness: float = Field(1.0, gt=0.0, le=10.0, description="Thread width")
    invert_colors: bool = Field(False, description="Light thread on dark background")
    display_pegs: bool = Field(False, description="Draw peg markers on renders")
    blur: float = Field(0.0, ge=0.0, le=20.0, description="Render blur radius")
    seed: Optional[int] = Field(None, ge=0, description="Seed of the tie-break random source")
    run: RunConfig = Field(default_factory=RunConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    @field_validator('schema_version')
    @classmethod
    def validate_schema(cls, v: str) -> str:
        if v != "threading.v1":
            raise ValueError(f"Expected schema 'threading.v1', got '{v}'")
        return v

    @property
    def background_color(self) -> str:
        """Background of final renders."""
        return "black" if self.invert_colors else "white"


def load_threading_config(path: Union[str, Path]) -> ThreadingV1:
    """Load and validate threading config from YAML.

    Parameters
    ----------
    path : Union[str, Path]
        Path to threading.v1 YAML file

    Returns
    -------
    ThreadingV1
        Validated configuration

    Raises
    ------
    FileNotFoundError
        If path doesn't exist
    ValueError
        If validation fails (with actionable error message)
    """
    from . import fs

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Threading config not found: {path}")

    data = fs.load_yaml(path)
    try:
        return ThreadingV1(**data)
    except Exception as e:
        raise ValueError(f"Threading config validation failed at {path}: {e}") from e


def apply_overrides(params: ThreadingV1, overrides: Dict[str, Any]) -> ThreadingV1:
    """Return a re-validated copy of params with non-None overrides applied.

    Parameters
    ----------
    params : ThreadingV1
        Base configuration
    overrides : dict
        Field name → value; None values are ignored (CLI flags not given)

    Returns
    -------
    ThreadingV1
        New validated configuration

    Raises
    ------
    ValueError
        If an override is out of range
    """
    data = params.model_dump(by_alias=True)
    data.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return ThreadingV1(**data)
    except Exception as e:
        raise ValueError(f"Invalid override: {e}") from e
