"""Offline map sources that stand in for the remote map generator.

Each generator reads the albedo luminance or saturation and returns an opaque
grayscale :class:`PixelBuffer`. Filtering uses wrap-around edges so that
tileable inputs stay tileable.
"""
from __future__ import annotations

import logging
from typing import Callable, Dict

import numpy as np
from scipy import ndimage

from ...core.errors import InvalidParameter
from ...core.map_kinds import MapKind
from ...core.pixel_buffer import PixelBuffer
from ...core.utils_image import gray_to_rgba, normalize, saturation, to_uint8

LOGGER = logging.getLogger("neurogen_pbr.surface_maps.local")

METALLIC_SATURATION_THRESHOLD = 0.45
SPECULAR_BOOST = 1.2
CAVITY_GAIN = 4.0


def _as_buffer(field: np.ndarray) -> PixelBuffer:
    return PixelBuffer(gray_to_rgba(to_uint8(np.clip(field, 0.0, 1.0))), copy=False)


def generate_height(buffer: PixelBuffer) -> PixelBuffer:
    """Convert luminance to a height map stretched to the full range."""

    return _as_buffer(normalize(buffer.luminance()))


def generate_roughness(buffer: PixelBuffer) -> PixelBuffer:
    """Invert a softened specular estimate: bright areas read as glossy."""

    specular = np.clip(buffer.luminance() * SPECULAR_BOOST, 0.0, 1.0)
    specular = ndimage.gaussian_filter(specular, sigma=1.0, mode="wrap")
    return _as_buffer(1.0 - specular)


def generate_metallic(buffer: PixelBuffer) -> PixelBuffer:
    """Estimate metallic regions using color saturation."""

    sat = saturation(buffer.array)
    metallic = np.where(sat > METALLIC_SATURATION_THRESHOLD, 1.0, sat)
    return _as_buffer(metallic)


def generate_occlusion(buffer: PixelBuffer) -> PixelBuffer:
    """Darken cavities: pixels lower than their blurred neighbourhood."""

    height = normalize(buffer.luminance())
    blurred = ndimage.gaussian_filter(height, sigma=2.0, mode="wrap")
    cavity = np.maximum(blurred - height, 0.0)
    return _as_buffer(1.0 - cavity * CAVITY_GAIN)


GENERATORS: Dict[MapKind, Callable[[PixelBuffer], PixelBuffer]] = {
    MapKind.HEIGHT: generate_height,
    MapKind.ROUGHNESS: generate_roughness,
    MapKind.METALLIC: generate_metallic,
    MapKind.OCCLUSION: generate_occlusion,
}


def generate(buffer: PixelBuffer, kind: MapKind) -> PixelBuffer:
    """Map generator entry point with the same signature as a remote source."""

    try:
        generator = GENERATORS[MapKind.parse(kind)]
    except (KeyError, ValueError):
        raise InvalidParameter(f"No local generator for map kind {kind!r}") from None
    LOGGER.debug("Generating local %s map for %dx%d source", kind, buffer.width, buffer.height)
    return generator(buffer)


if __name__ == "__main__":  # pragma: no cover
    sample = PixelBuffer.solid(16, 16, (200, 180, 120, 255))
    generate(sample, MapKind.ROUGHNESS).to_image().show()
