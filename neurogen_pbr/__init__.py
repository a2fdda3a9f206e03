"""PBR map synthesis, mask packing and texture set export."""
from __future__ import annotations

from .core.errors import (
    DecodeFailure,
    DimensionMismatch,
    InsufficientInputs,
    InvalidParameter,
    PBREngineError,
    SlotBusy,
    UpstreamFailure,
)
from .core.map_kinds import MapKind
from .core.pixel_buffer import PixelBuffer
from .modules.export import discover_texture_sets, export_filename, export_texture_set, plan_export
from .modules.generation import populate_texture_set
from .modules.packing.mask_map import pack_mask_map
from .modules.surface_maps.normal_map import synthesize_normal_map
from .modules.texture_set import SlotState, TextureSession, TextureSet

__version__ = "0.1.0"

__all__ = [
    "DecodeFailure",
    "DimensionMismatch",
    "InsufficientInputs",
    "InvalidParameter",
    "MapKind",
    "PBREngineError",
    "PixelBuffer",
    "SlotBusy",
    "SlotState",
    "TextureSession",
    "TextureSet",
    "UpstreamFailure",
    "discover_texture_sets",
    "export_filename",
    "export_texture_set",
    "pack_mask_map",
    "plan_export",
    "populate_texture_set",
    "synthesize_normal_map",
]
