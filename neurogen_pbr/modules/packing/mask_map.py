"""Pack metallic, occlusion and roughness into an HDRP mask map.

Channel layout::

    R  metallic                  absent -> 0   (non-metal)
    G  ambient occlusion         absent -> 255 (unoccluded)
    B  detail mask (reserved)    always 0
    A  smoothness = 255 - rough  absent -> 255 (fully smooth)

Only the red channel of each source map is read.
"""
from __future__ import annotations

import logging
from typing import Dict, Optional, Tuple

import numpy as np

from ...core.config import MASK_RESOLUTION, RESAMPLE
from ...core.errors import DimensionMismatch, InsufficientInputs
from ...core.pixel_buffer import PixelBuffer
from ...core.utils_image import resolve_resample, validate_size

LOGGER = logging.getLogger("neurogen_pbr.packing.mask_map")

METALLIC_DEFAULT = 0
OCCLUSION_DEFAULT = 255
DETAIL_VALUE = 0
SMOOTHNESS_DEFAULT = 255


def _target_size(sources: Dict[str, PixelBuffer], size: Optional[Tuple[int, int]]) -> Tuple[int, int]:
    if size is not None:
        return validate_size(size)
    sizes = {name: buffer.size for name, buffer in sources.items()}
    distinct = set(sizes.values())
    if len(distinct) > 1:
        detail = ", ".join(f"{name}={w}x{h}" for name, (w, h) in sizes.items())
        raise DimensionMismatch(f"Source maps disagree in size and no output size was given: {detail}")
    return distinct.pop()


def generate(
    metallic: Optional[PixelBuffer] = None,
    occlusion: Optional[PixelBuffer] = None,
    roughness: Optional[PixelBuffer] = None,
    *,
    size: Optional[Tuple[int, int]] = MASK_RESOLUTION,
    resample: str = RESAMPLE,
) -> PixelBuffer:
    """Build the packed mask map from whichever sources are present.

    Every source is resampled with the same *resample* filter to *size*
    before its red channel is read. Passing ``size=None`` packs at the
    sources' native resolution, which must then agree.
    """

    candidates = {"metallic": metallic, "occlusion": occlusion, "roughness": roughness}
    sources = {name: buffer for name, buffer in candidates.items() if buffer is not None}
    if not sources:
        raise InsufficientInputs("Mask packing needs at least one of metallic, occlusion or roughness")

    resolve_resample(resample)
    width, height = _target_size(sources, size)
    red = {name: buffer.resized((width, height), resample).channel(0) for name, buffer in sources.items()}

    packed = np.empty((height, width, 4), dtype=np.uint8)
    packed[..., 0] = red["metallic"] if "metallic" in red else METALLIC_DEFAULT
    packed[..., 1] = red["occlusion"] if "occlusion" in red else OCCLUSION_DEFAULT
    packed[..., 2] = DETAIL_VALUE
    packed[..., 3] = 255 - red["roughness"] if "roughness" in red else SMOOTHNESS_DEFAULT

    missing = sorted(set(candidates) - set(sources))
    if missing:
        LOGGER.info("Mask map packed with defaults for: %s", ", ".join(missing))
    LOGGER.debug("Packed %dx%d mask map from %s", width, height, ", ".join(sorted(sources)))
    return PixelBuffer(packed, copy=False)


pack_mask_map = generate

__all__ = ["generate", "pack_mask_map"]
