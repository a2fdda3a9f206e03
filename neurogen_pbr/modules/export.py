"""File naming contract shared with external asset-import tools.

Every exported file is named ``{prefix}_{id}_{suffix}.png``. Import bridges
group files purely by ``id`` and recognise maps by their fixed suffix; there
is no manifest. Suffixes are therefore part of the wire format and must not
be renamed. Readers skip files whose suffix they do not know.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ..core.config import EXPORT_PREFIX, MASK_RESOLUTION
from ..core.errors import InsufficientInputs, InvalidParameter
from ..core.map_kinds import MapKind
from ..core.pixel_buffer import PixelBuffer
from ..core.utils_io import SafeFileManager
from .texture_set import TextureSet, validate_identifier

LOGGER = logging.getLogger("neurogen_pbr.export")

EXTENSION = ".png"

EXPORT_SUFFIXES: Dict[MapKind, str] = {
    MapKind.ALBEDO: "albedo",
    MapKind.NORMAL: "normal",
    MapKind.ROUGHNESS: "roughness",
    MapKind.METALLIC: "metallic",
    MapKind.OCCLUSION: "occlusion",
    MapKind.HEIGHT: "height",
    MapKind.PACKED_MASK: "HDRP_Mask",
}

_KINDS_BY_SUFFIX = {suffix: kind for kind, suffix in EXPORT_SUFFIXES.items()}


def export_filename(identifier: str, kind: MapKind | str, prefix: str = EXPORT_PREFIX) -> str:
    """Return ``{prefix}_{identifier}_{suffix}.png`` for *kind*."""

    token = validate_identifier(identifier)
    return f"{prefix}_{token}_{EXPORT_SUFFIXES[MapKind.parse(kind)]}{EXTENSION}"


def parse_export_filename(name: str, prefix: str = EXPORT_PREFIX) -> Optional[Tuple[str, MapKind]]:
    """Split an exported file name into ``(identifier, kind)``.

    Returns ``None`` for files that do not follow the contract or carry an
    unknown suffix.
    """

    lead = f"{prefix}_"
    if not name.startswith(lead) or not name.lower().endswith(EXTENSION):
        return None
    stem = name[len(lead) : -len(EXTENSION)]
    identifier, sep, suffix = stem.partition("_")
    if not sep or not identifier:
        return None
    kind = _KINDS_BY_SUFFIX.get(suffix)
    if kind is None:
        return None
    return identifier, kind


def plan_export(
    texture_set: TextureSet,
    *,
    prefix: str = EXPORT_PREFIX,
    include_mask: bool = False,
    mask_size: Optional[Tuple[int, int]] = MASK_RESOLUTION,
) -> Dict[str, PixelBuffer]:
    """Map file names to the buffers that would be written.

    Only READY slots are included. The mask map is packed from the slots as
    they are right now and is skipped when none of its sources is ready.
    The texture set is not modified.
    """

    plan: Dict[str, PixelBuffer] = {}
    for kind, buffer in texture_set.ready_maps().items():
        plan[export_filename(texture_set.identifier, kind, prefix)] = buffer
    if include_mask:
        try:
            plan[export_filename(texture_set.identifier, MapKind.PACKED_MASK, prefix)] = texture_set.packed_mask(mask_size)
        except InsufficientInputs:
            LOGGER.info("Skipping mask map for %s: no metallic, occlusion or roughness map ready", texture_set.identifier)
    return plan


def export_texture_set(
    texture_set: TextureSet,
    directory: Path | str,
    *,
    prefix: str = EXPORT_PREFIX,
    include_mask: bool = False,
    mask_size: Optional[Tuple[int, int]] = MASK_RESOLUTION,
) -> List[Path]:
    """Write every ready map of *texture_set* into *directory*."""

    plan = plan_export(texture_set, prefix=prefix, include_mask=include_mask, mask_size=mask_size)
    manager = SafeFileManager(Path(directory))
    written = [manager.atomic_write(buffer.encode_png(), name) for name, buffer in plan.items()]
    LOGGER.info("Exported %d files for texture set %s to %s", len(written), texture_set.identifier, manager.base_dir)
    return written


def discover_texture_sets(directory: Path | str, prefix: str = EXPORT_PREFIX) -> Dict[str, Dict[MapKind, Path]]:
    """Group the exported files in *directory* by texture set identifier."""

    root = Path(directory)
    if not root.is_dir():
        raise InvalidParameter(f"Not a directory: {root}")
    found: Dict[str, Dict[MapKind, Path]] = {}
    for path in sorted(root.iterdir()):
        if not path.is_file():
            continue
        parsed = parse_export_filename(path.name, prefix)
        if parsed is None:
            LOGGER.debug("Ignoring %s", path.name)
            continue
        identifier, kind = parsed
        found.setdefault(identifier, {})[kind] = path
    return found


__all__ = [
    "EXPORT_SUFFIXES",
    "discover_texture_sets",
    "export_filename",
    "export_texture_set",
    "parse_export_filename",
    "plan_export",
]
