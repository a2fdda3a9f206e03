"""Error kinds raised by the map synthesis and packing engine."""
from __future__ import annotations


class PBREngineError(Exception):
    """Base class for every engine failure."""


class InvalidParameter(PBREngineError, ValueError):
    """A numeric or structural argument is outside its valid domain."""


class DimensionMismatch(PBREngineError):
    """Source buffers disagree in size and cannot be reconciled."""


class InsufficientInputs(PBREngineError):
    """Packing was requested without a single usable source map."""


class DecodeFailure(PBREngineError):
    """An input could not be decoded to a pixel buffer."""


class UpstreamFailure(PBREngineError):
    """A remote map generator failed or returned no image."""


class SlotBusy(PBREngineError):
    """A slot already has a pending writer."""


__all__ = [
    "PBREngineError",
    "InvalidParameter",
    "DimensionMismatch",
    "InsufficientInputs",
    "DecodeFailure",
    "UpstreamFailure",
    "SlotBusy",
]
