"""Populate texture set slots from local synthesis and a map generator.

The map generator is an external collaborator with the signature
``(source, kind) -> image``. It may return a :class:`PixelBuffer`, a Pillow
image, encoded bytes or a data URL; ``None`` or an exception counts as an
upstream failure. Nothing here retries.
"""
from __future__ import annotations

import functools
import logging
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional, Sequence, Tuple

from PIL import Image

from ..core.config import NORMAL_INTENSITY
from ..core.errors import InvalidParameter, PBREngineError, SlotBusy, UpstreamFailure
from ..core.map_kinds import DERIVED_KINDS, MapKind
from ..core.pixel_buffer import PixelBuffer
from ..core.utils_parallel import run_parallel
from .surface_maps import normal_map
from .texture_set import MapSlot, Producer, SlotState, TextureSet

LOGGER = logging.getLogger("neurogen_pbr.generation")

MapGenerator = Callable[[PixelBuffer, MapKind], object]


def coerce_result(result: object) -> PixelBuffer:
    """Turn whatever a generator handed back into a :class:`PixelBuffer`."""

    if isinstance(result, PixelBuffer):
        return result
    if isinstance(result, Image.Image):
        return PixelBuffer.from_image(result)
    if isinstance(result, (bytes, bytearray, str, Path)):
        return PixelBuffer.decode(result)
    raise UpstreamFailure(f"Map generator returned unsupported type {type(result).__name__}")


def generator_producer(generator: MapGenerator, kind: MapKind) -> Producer:
    """Wrap *generator* so that its failures surface as :class:`UpstreamFailure`."""

    def produce(source: PixelBuffer) -> PixelBuffer:
        try:
            result = generator(source, kind)
        except PBREngineError:
            raise
        except Exception as exc:
            raise UpstreamFailure(f"{kind.value} generation failed: {exc}") from exc
        if result is None:
            raise UpstreamFailure(f"{kind.value} generation returned no image")
        return coerce_result(result)

    return produce


def normal_producer(intensity: float = NORMAL_INTENSITY) -> Producer:
    return functools.partial(normal_map.generate, intensity=intensity)


def build_jobs(
    kinds: Iterable[MapKind | str],
    generator: Optional[MapGenerator],
    *,
    intensity: float = NORMAL_INTENSITY,
) -> Sequence[Tuple[MapKind, Producer]]:
    jobs = []
    for kind in dict.fromkeys(MapKind.parse(value) for value in kinds):
        if kind is MapKind.NORMAL:
            jobs.append((kind, normal_producer(intensity)))
        elif kind in DERIVED_KINDS:
            if generator is None:
                raise InvalidParameter(f"A map generator is required to populate {kind.value}")
            jobs.append((kind, generator_producer(generator, kind)))
        else:
            raise InvalidParameter(f"{kind.value} cannot be populated from the albedo")
    return jobs


def populate_texture_set(
    texture_set: TextureSet,
    generator: Optional[MapGenerator] = None,
    *,
    kinds: Iterable[MapKind | str] = DERIVED_KINDS,
    intensity: float = NORMAL_INTENSITY,
    max_workers: Optional[int] = None,
) -> Dict[MapKind, MapSlot]:
    """Fill *kinds* concurrently; each job writes only its own slot.

    Returns the final slot snapshots. Failed slots carry their reason and
    can be populated again later.
    """

    jobs = build_jobs(kinds, generator, intensity=intensity)
    snapshot = texture_set.snapshot()
    busy = [kind.value for kind, _ in jobs if snapshot[kind].state is SlotState.PENDING]
    if busy:
        raise SlotBusy(f"Slots already pending on texture set {texture_set.identifier}: {', '.join(busy)}")

    LOGGER.info(
        "Populating %s on texture set %s",
        ", ".join(kind.value for kind, _ in jobs),
        texture_set.identifier,
    )
    slots = run_parallel(lambda job: texture_set.populate(*job), jobs, max_workers=max_workers)
    failed = [slot.kind.value for slot in slots if slot.state is SlotState.FAILED]
    if failed:
        LOGGER.warning("Texture set %s finished with failed slots: %s", texture_set.identifier, ", ".join(failed))
    return {slot.kind: slot for slot in slots}


__all__ = [
    "MapGenerator",
    "build_jobs",
    "coerce_result",
    "generator_producer",
    "normal_producer",
    "populate_texture_set",
]
