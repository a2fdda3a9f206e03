"""Map kinds that make up a texture set."""
from __future__ import annotations

from enum import Enum

from .errors import InvalidParameter


class MapKind(str, Enum):
    ALBEDO = "albedo"
    NORMAL = "normal"
    ROUGHNESS = "roughness"
    METALLIC = "metallic"
    OCCLUSION = "occlusion"
    HEIGHT = "height"
    PACKED_MASK = "packed_mask"

    @classmethod
    def parse(cls, value: "str | MapKind") -> "MapKind":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise InvalidParameter(f"Unknown map kind {value!r}") from None


# Slots held by a texture set; the packed mask is only produced at export.
SLOT_KINDS = (
    MapKind.ALBEDO,
    MapKind.NORMAL,
    MapKind.ROUGHNESS,
    MapKind.METALLIC,
    MapKind.OCCLUSION,
    MapKind.HEIGHT,
)

DERIVED_KINDS = SLOT_KINDS[1:]

# Kinds served by a map generator rather than computed locally.
GENERATED_KINDS = (
    MapKind.ROUGHNESS,
    MapKind.METALLIC,
    MapKind.OCCLUSION,
    MapKind.HEIGHT,
)

__all__ = ["MapKind", "SLOT_KINDS", "DERIVED_KINDS", "GENERATED_KINDS"]
