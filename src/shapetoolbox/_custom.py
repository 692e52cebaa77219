"""Height maps for custom perturbations: images and numeric matrices."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import numpy as np
from PIL import Image
from scipy import ndimage

from ._errors import ShapeConfigError


def load_image_map(path: Path | str) -> np.ndarray:
    """Load an image as a grayscale height map with row 0 at the bottom.

    Color channels are averaged (an alpha channel is ignored).
    """
    path = Path(path)
    if not path.is_file():
        raise ShapeConfigError(f"Image file not found: '{path}'")
    with Image.open(path) as img:
        if img.mode not in ("L", "I", "F", "RGB", "RGBA"):
            img = img.convert("RGB")
        data = np.asarray(img, dtype=float)
    if data.ndim == 3:
        data = data[..., :3].mean(axis=2)
    return np.flipud(data)


def resample_map(values: np.ndarray, shape: tuple[int, int]) -> np.ndarray:
    """Bilinearly resample a 2D map so that its corners land on the grid corners."""
    if values.shape == shape:
        return values
    rows = np.linspace(0, values.shape[0] - 1, shape[0])
    cols = np.linspace(0, values.shape[1] - 1, shape[1])
    R, C = np.meshgrid(rows, cols, indexing="ij")
    return ndimage.map_coordinates(values, [R, C], order=1, mode="nearest")


def as_map(source: Any) -> np.ndarray:
    """Validate a numeric 2D height map (3D input is averaged over its color channels, alpha excluded)."""
    try:
        values = np.asarray(source, dtype=float)
    except (TypeError, ValueError):
        raise ShapeConfigError(
            "Custom source must be a profile function, an image path or a numeric matrix, "
            f"got {type(source).__name__}"
        ) from None
    if values.ndim == 3:
        values = values[..., :3].mean(axis=2)
    if values.ndim != 2 or min(values.shape) < 2:
        raise ShapeConfigError(f"Custom matrix must be 2D with at least 2x2 values, got {values.shape}")
    if not np.all(np.isfinite(values)):
        raise ShapeConfigError("Custom matrix contains non-finite values")
    return values

