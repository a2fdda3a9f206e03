"""Generate seamless tangent-space normal maps from a luminance height field."""
from __future__ import annotations

import logging
import math

import numpy as np

from ...core.errors import InvalidParameter
from ...core.pixel_buffer import PixelBuffer, sample_wrapped
from ...core.utils_image import to_uint8

LOGGER = logging.getLogger("neurogen_pbr.surface_maps.normal")

DEFAULT_INTENSITY = 2.0


def sobel_gradients(height: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Return the wrap-around Sobel gradients ``(dX, dY)`` of *height*.

    ``dX`` is right minus left and ``dY`` is bottom minus top, with rows
    counted downwards. Neighbours outside the grid wrap to the opposite edge.
    """

    tl = sample_wrapped(height, -1, -1)
    t = sample_wrapped(height, 0, -1)
    tr = sample_wrapped(height, 1, -1)
    l = sample_wrapped(height, -1, 0)
    r = sample_wrapped(height, 1, 0)
    bl = sample_wrapped(height, -1, 1)
    b = sample_wrapped(height, 0, 1)
    br = sample_wrapped(height, 1, 1)

    grad_x = (tr + 2.0 * r + br) - (tl + 2.0 * l + bl)
    grad_y = (bl + 2.0 * b + br) - (tl + 2.0 * t + tr)
    return grad_x, grad_y


def generate(buffer: PixelBuffer, intensity: float = DEFAULT_INTENSITY) -> PixelBuffer:
    """Create a tangent-space normal map from the luminance of *buffer*.

    The luminance of every pixel is treated as height. Gradients come from a
    3x3 Sobel kernel with toroidal addressing, so a tileable source yields a
    tileable normal map. The vector ``(dX, dY, 1 / intensity)`` is normalised
    and packed as ``round((n * 0.5 + 0.5) * 255)`` into RGB with opaque alpha.

    Green follows the OpenGL (Y+) convention; DirectX consumers must invert
    the green channel themselves.
    """

    try:
        strength = float(intensity)
    except (TypeError, ValueError):
        raise InvalidParameter(f"Normal intensity must be numeric, got {intensity!r}") from None
    if not math.isfinite(strength) or strength <= 0:
        raise InvalidParameter(f"Normal intensity must be a positive finite number, got {intensity!r}")

    height = buffer.luminance()
    grad_x, grad_y = sobel_gradients(height)
    grad_z = np.full_like(height, 1.0 / strength)

    length = np.sqrt(grad_x * grad_x + grad_y * grad_y + grad_z * grad_z)
    normal = np.stack([grad_x / length, grad_y / length, grad_z / length], axis=-1)

    rgb = to_uint8(normal * 0.5 + 0.5)
    alpha = np.full(height.shape + (1,), 255, dtype=np.uint8)
    LOGGER.debug("Synthesized %dx%d normal map (intensity=%.3f)", buffer.width, buffer.height, strength)
    return PixelBuffer(np.concatenate((rgb, alpha), axis=2), copy=False)


synthesize_normal_map = generate


if __name__ == "__main__":  # pragma: no cover - manual smoke test
    sample = PixelBuffer.solid(16, 16, (120, 100, 90, 255))
    generate(sample).to_image().show()
