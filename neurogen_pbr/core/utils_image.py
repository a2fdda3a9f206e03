"""Image utility helpers for luminance, saturation and resampling."""
from __future__ import annotations

from typing import Tuple

import numpy as np
from PIL import Image

from .errors import InvalidParameter

LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float64)

RESAMPLE_FILTERS = {
    "nearest": Image.Resampling.NEAREST,
    "bilinear": Image.Resampling.BILINEAR,
}


def resolve_resample(name: str) -> Image.Resampling:
    """Map a filter name onto the Pillow resampling constant."""

    try:
        return RESAMPLE_FILTERS[name.lower()]
    except (KeyError, AttributeError):
        raise InvalidParameter(
            f"Unsupported resample filter {name!r}; expected one of {sorted(RESAMPLE_FILTERS)}"
        ) from None


def validate_size(size: Tuple[int, int]) -> Tuple[int, int]:
    """Return *size* as a ``(width, height)`` tuple of positive ints."""

    try:
        width, height = (int(value) for value in size)
    except (TypeError, ValueError):
        raise InvalidParameter(f"Size must be a (width, height) pair, got {size!r}") from None
    if width <= 0 or height <= 0:
        raise InvalidParameter(f"Size must be positive, got {width}x{height}")
    return width, height


def luminance(rgb: np.ndarray) -> np.ndarray:
    """Return the Rec. 601 luma of an ``(H, W, 3)`` uint8 array in ``[0, 1]``."""

    return np.dot(rgb[..., :3].astype(np.float64), LUMA_WEIGHTS) / 255.0


def saturation(rgb: np.ndarray) -> np.ndarray:
    """Return HSV saturation of an ``(H, W, 3)`` uint8 array in ``[0, 1]``."""

    values = rgb[..., :3].astype(np.float32) / 255.0
    high = values.max(axis=2)
    low = values.min(axis=2)
    with np.errstate(divide="ignore", invalid="ignore"):
        sat = np.where(high > 1e-8, (high - low) / high, 0.0)
    return sat.astype(np.float32)


def normalize(array: np.ndarray) -> np.ndarray:
    """Stretch *array* into the full ``[0, 1]`` range."""

    min_val = float(array.min())
    max_val = float(array.max())
    if max_val - min_val < 1e-8:
        return np.zeros_like(array, dtype=np.float32)
    return ((array - min_val) / (max_val - min_val)).astype(np.float32)


def to_uint8(array: np.ndarray) -> np.ndarray:
    """Quantize a ``[0, 1]`` field to 8 bits with round-half-even."""

    return np.clip(np.rint(array * 255.0), 0, 255).astype(np.uint8)


def gray_to_rgba(gray: np.ndarray) -> np.ndarray:
    """Stack an 8-bit gray field into an opaque RGBA array."""

    alpha = np.full(gray.shape, 255, dtype=np.uint8)
    return np.dstack([gray, gray, gray, alpha])
