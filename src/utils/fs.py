"""Filesystem helpers: atomic writes, YAML and image loading.

Provides:
    - Atomic writes: tmp file → fsync → rename (no partially written exports)
    - Atomic image save via PIL
    - YAML loading (PyYAML safe_load)
    - Source image loading to an RGB uint8 array

Used by:
    - utils.validators: config loading
    - thread_engine.export: SVG / PNG / instructions outputs
    - scripts/thread_image.py: source image input

All paths use pathlib.Path for cross-platform compatibility.

Usage:
    from src.utils import fs
    rgb = fs.load_image_rgb("data/cat.jpg")
    fs.atomic_write_text(svg_string, out_dir / "thread.svg")
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import numpy as np
import yaml
from PIL import Image


def ensure_dir(p: Union[str, Path]) -> Path:
    """Create directory if it doesn't exist, return Path object.

    Parameters
    ----------
    p : Union[str, Path]
        Directory path

    Returns
    -------
    Path
        Path object (guaranteed to exist)
    """
    p = Path(p)
    p.mkdir(parents=True, exist_ok=True)
    return p


def atomic_write_bytes(
    path: Union[str, Path],
    data: bytes,
    tmp_suffix: str = ".tmp"
) -> None:
    """Write bytes to file atomically (tmp → fsync → rename).

    Parameters
    ----------
    path : Union[str, Path]
        Target file path
    data : bytes
        Data to write
    tmp_suffix : str
        Temporary file suffix, default ".tmp"

    Raises
    ------
    RuntimeError
        If the write or the rename fails (tmp file is removed)
    """
    path = Path(path)
    ensure_dir(path.parent)

    tmp_path = path.with_suffix(path.suffix + tmp_suffix)

    try:
        with open(tmp_path, 'wb') as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())

        # Atomic rename (overwrites existing file on POSIX)
        tmp_path.replace(path)
    except Exception as e:
        if tmp_path.exists():
            tmp_path.unlink()
        raise RuntimeError(f"Failed to write {path} atomically: {e}") from e


def atomic_write_text(
    text: str,
    path: Union[str, Path],
    encoding: str = "utf-8"
) -> None:
    """Write text to file atomically.

    Parameters
    ----------
    text : str
        Content (SVG document, instructions, ...)
    path : Union[str, Path]
        Target file path
    encoding : str
        Text encoding, default utf-8
    """
    atomic_write_bytes(path, text.encode(encoding))


def atomic_save_image(
    img: Union[np.ndarray, Image.Image],
    path: Union[str, Path],
    pil_kwargs: Optional[Dict[str, Any]] = None
) -> None:
    """Save image atomically (prevents partial reads).

    Parameters
    ----------
    img : Union[np.ndarray, Image.Image]
        Image data: numpy (H, W, 3) or (H, W), any numeric dtype (clipped to
        [0, 255] and cast to uint8), or a PIL image
    path : Union[str, Path]
        Target file path (extension determines format)
    pil_kwargs : Optional[Dict[str, Any]]
        Additional kwargs for PIL.Image.save (e.g., optimize=True)
    """
    path = Path(path)
    pil_kwargs = pil_kwargs or {}
    ensure_dir(path.parent)

    if isinstance(img, Image.Image):
        pil_img = img
    else:
        if img.dtype != np.uint8:
            img = np.clip(np.rint(img), 0, 255).astype(np.uint8)
        if img.ndim == 3 and img.shape[2] == 1:
            img = img.squeeze(2)
        pil_img = Image.fromarray(img)

    # Keep the real extension last so PIL detects the format
    tmp_path = path.with_name(path.stem + ".tmp" + path.suffix)
    try:
        pil_img.save(tmp_path, **pil_kwargs)
        tmp_path.replace(path)
    except Exception as e:
        if tmp_path.exists():
            tmp_path.unlink()
        raise RuntimeError(f"Failed to save image {path} atomically: {e}") from e


def load_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    """Load YAML file safely.

    Parameters
    ----------
    path : Union[str, Path]
        YAML file path

    Returns
    -------
    Dict[str, Any]
        Parsed YAML content ({} for an empty file)

    Raises
    ------
    FileNotFoundError
        If file doesn't exist
    yaml.YAMLError
        If YAML parsing fails
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"YAML file not found: {path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise yaml.YAMLError(f"Failed to parse YAML file {path}: {e}") from e


def load_image_rgb(path: Union[str, Path]) -> np.ndarray:
    """Load an image file as an RGB uint8 array.

    Parameters
    ----------
    path : Union[str, Path]
        Image file (PNG, JPEG, ...)

    Returns
    -------
    np.ndarray
        Shape (H, W, 3), dtype uint8

    Raises
    ------
    FileNotFoundError
        If file doesn't exist
    ValueError
        If PIL cannot decode the file

    Notes
    -----
    Transparent pixels are flattened over white, so a transparent background
    reads as "no ink needed" on the default light background.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Image not found: {path}")

    try:
        with Image.open(path) as image:
            image.load()
            if image.mode in ("RGBA", "LA", "P"):
                rgba = image.convert("RGBA")
                background = Image.new("RGBA", rgba.size, (255, 255, 255, 255))
                image = Image.alpha_composite(background, rgba)
            rgb = image.convert("RGB")
            return np.asarray(rgb, dtype=np.uint8).copy()
    except OSError as e:
        raise ValueError(f"Failed to load image {path}: {e}") from e
