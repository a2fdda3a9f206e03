"""Owned, immutable RGBA8 pixel grid shared by every map operation.

A :class:`PixelBuffer` wraps a read-only ``numpy`` array of shape
``(height, width, 4)`` and dtype ``uint8``. Buffers are never mutated in
place: every transform returns a new buffer and consumers only ever see
read-only views or explicit copies.

Neighbour lookups that must respect tiling go through
:func:`sample_wrapped`, which implements toroidal addressing once for the
whole engine.
"""
from __future__ import annotations

import base64
import binascii
import io
import logging
from pathlib import Path
from typing import Tuple, Union

import numpy as np
from PIL import Image

from .errors import DecodeFailure, InvalidParameter
from .utils_image import luminance, resolve_resample, validate_size

LOGGER = logging.getLogger("neurogen_pbr.pixel_buffer")

Pixel = Tuple[int, int, int, int]
DecodeSource = Union[bytes, bytearray, str, Path]

_DATA_URL_PREFIX = "data:"


def _ensure_rgba(array: np.ndarray) -> np.ndarray:
    if array.dtype != np.uint8:
        raise InvalidParameter(f"Pixel data must be uint8, got {array.dtype}")
    if array.ndim == 2:
        array = array[..., None]
    if array.ndim != 3:
        raise InvalidParameter(f"Pixel data must be 2D or 3D, got {array.ndim} dimensions")
    height, width, channels = array.shape
    if height <= 0 or width <= 0:
        raise InvalidParameter(f"Pixel buffers need positive dimensions, got {width}x{height}")
    opaque = np.full((height, width, 1), 255, dtype=np.uint8)
    if channels == 4:
        return array
    if channels == 3:
        return np.concatenate((array, opaque), axis=2)
    if channels == 1:
        return np.concatenate((np.repeat(array, 3, axis=2), opaque), axis=2)
    raise InvalidParameter(f"Unsupported channel count: {channels}")


def sample_wrapped(field: np.ndarray, dx: int, dy: int) -> np.ndarray:
    """Return *field* sampled at ``(x + dx, y + dy)`` with wrap-around edges.

    Column ``-1`` resolves to ``width - 1`` and row ``height`` resolves to
    ``0``, so kernels built on top of this stay seamless when tiled.
    """

    return np.roll(field, shift=(-dy, -dx), axis=(0, 1))


class PixelBuffer:
    """Immutable row-major grid of RGBA8 samples."""

    __slots__ = ("_array",)

    def __init__(self, array: np.ndarray, *, copy: bool = True) -> None:
        rgba = _ensure_rgba(np.asarray(array))
        if copy:
            rgba = np.array(rgba, dtype=np.uint8, order="C", copy=True)
        else:
            rgba = np.ascontiguousarray(rgba)
        rgba.setflags(write=False)
        self._array = rgba

    # -- construction -----------------------------------------------------

    @classmethod
    def from_array(cls, array: np.ndarray) -> "PixelBuffer":
        return cls(array)

    @classmethod
    def solid(cls, width: int, height: int, rgba: Pixel) -> "PixelBuffer":
        """Create a uniform buffer filled with *rgba*."""

        width, height = validate_size((width, height))
        fill = np.empty((height, width, 4), dtype=np.uint8)
        fill[...] = np.asarray(rgba, dtype=np.uint8)
        return cls(fill, copy=False)

    @classmethod
    def from_image(cls, image: Image.Image) -> "PixelBuffer":
        rgba = np.asarray(image.convert("RGBA"), dtype=np.uint8)
        return cls(rgba)

    @classmethod
    def decode(cls, source: DecodeSource) -> "PixelBuffer":
        """Decode raw bytes, a file path or a base64 data URL."""

        try:
            if isinstance(source, (bytes, bytearray)):
                stream: Union[io.BytesIO, Path] = io.BytesIO(bytes(source))
            elif isinstance(source, str) and source.startswith(_DATA_URL_PREFIX):
                header, _, payload = source.partition(",")
                if not header.endswith(";base64") or not payload:
                    raise DecodeFailure(f"Unsupported data URL header {header[:40]!r}")
                stream = io.BytesIO(base64.b64decode(payload, validate=True))
            else:
                stream = Path(source)
            with Image.open(stream) as image:
                image.load()
                buffer = cls.from_image(image)
        except DecodeFailure:
            raise
        except (OSError, ValueError, binascii.Error, Image.DecompressionBombError) as exc:
            raise DecodeFailure(f"Could not decode image: {exc}") from exc
        LOGGER.debug("Decoded %dx%d buffer", buffer.width, buffer.height)
        return buffer

    # -- geometry ---------------------------------------------------------

    @property
    def width(self) -> int:
        return int(self._array.shape[1])

    @property
    def height(self) -> int:
        return int(self._array.shape[0])

    @property
    def size(self) -> Tuple[int, int]:
        """``(width, height)``, matching Pillow's ordering."""

        return self.width, self.height

    @property
    def array(self) -> np.ndarray:
        """Read-only ``(height, width, 4)`` view of the samples."""

        return self._array

    def copy_array(self) -> np.ndarray:
        """Return a private writable copy of the samples."""

        return self._array.copy()

    def tobytes(self) -> bytes:
        return self._array.tobytes()

    # -- access -----------------------------------------------------------

    def pixel(self, x: int, y: int) -> Pixel:
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"Pixel ({x}, {y}) outside {self.width}x{self.height} buffer")
        return tuple(int(value) for value in self._array[y, x])  # type: ignore[return-value]

    def pixel_wrapped(self, x: int, y: int) -> Pixel:
        return self.pixel(x % self.width, y % self.height)

    def channel(self, index: int) -> np.ndarray:
        if not 0 <= index < 4:
            raise IndexError(f"Channel index {index} outside RGBA")
        return self._array[..., index]

    def luminance(self) -> np.ndarray:
        """Height proxy ``0.299 R + 0.587 G + 0.114 B`` normalized to ``[0, 1]``."""

        return luminance(self._array)

    # -- transforms -------------------------------------------------------

    def resized(self, size: Tuple[int, int], resample: str = "bilinear") -> "PixelBuffer":
        """Return a copy resampled to *size*; channels are filtered independently."""

        width, height = validate_size(size)
        if (width, height) == self.size:
            return self
        method = resolve_resample(resample)
        bands = [
            np.asarray(Image.fromarray(np.ascontiguousarray(self._array[..., index])).resize((width, height), method), dtype=np.uint8)
            for index in range(4)
        ]
        LOGGER.debug("Resampled %dx%d -> %dx%d (%s)", self.width, self.height, width, height, resample)
        return PixelBuffer(np.dstack(bands), copy=False)

    def to_image(self) -> Image.Image:
        return Image.fromarray(self._array.copy())

    def encode_png(self) -> bytes:
        stream = io.BytesIO()
        self.to_image().save(stream, format="PNG")
        return stream.getvalue()

    # -- dunder -----------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PixelBuffer):
            return NotImplemented
        return self.size == other.size and np.array_equal(self._array, other._array)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"PixelBuffer({self.width}x{self.height})"


__all__ = ["Pixel", "PixelBuffer", "sample_wrapped"]
