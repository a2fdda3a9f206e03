"""Texture set aggregate and the per-slot population lifecycle.

A :class:`TextureSet` owns the albedo of one material plus one slot per
derived map. Slots move through ``EMPTY -> PENDING -> READY`` or
``EMPTY -> PENDING -> FAILED``; a failed slot can be started again. Slots are
independent of each other: a failure or a deletion in one slot never touches
its siblings.

The slot table is the only mutable state in the engine. Each set guards it
with its own lock. :meth:`TextureSet.begin` hands out a ticket that is unique
within the set, and a slot accepts a result only from the operation holding
its current ticket, so a late result for a slot the user cleared (or cleared
and restarted) in the meantime is dropped.
"""
from __future__ import annotations

import itertools
import logging
import threading
import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Dict, Optional, Tuple

from ..core.config import MASK_RESOLUTION, RESAMPLE
from ..core.errors import InvalidParameter, PBREngineError, SlotBusy, UpstreamFailure
from ..core.map_kinds import DERIVED_KINDS, SLOT_KINDS, MapKind
from ..core.pixel_buffer import PixelBuffer
from .packing import mask_map

LOGGER = logging.getLogger("neurogen_pbr.texture_set")

Producer = Callable[[PixelBuffer], Optional[PixelBuffer]]

_FORBIDDEN_ID_CHARACTERS = set("_/\\. ")


class SlotState(str, Enum):
    EMPTY = "empty"
    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class MapSlot:
    """Immutable snapshot of one slot."""

    kind: MapKind
    state: SlotState = SlotState.EMPTY
    buffer: Optional[PixelBuffer] = None
    error: Optional[str] = None
    ticket: int = 0


def validate_identifier(identifier: object) -> str:
    """Identifiers end up inside file names, so they must stay a single token."""

    token = str(identifier)
    if not token or any(char in _FORBIDDEN_ID_CHARACTERS for char in token):
        raise InvalidParameter(f"Texture set identifier {identifier!r} must be a non-empty token without '_', '.', '/' or spaces")
    return token


def _derived_kind(kind: MapKind | str) -> MapKind:
    parsed = MapKind.parse(kind)
    if parsed not in DERIVED_KINDS:
        raise InvalidParameter(f"{parsed.value} is not a derived map slot")
    return parsed


def _slot_kind(kind: MapKind | str) -> MapKind:
    parsed = MapKind.parse(kind)
    if parsed not in SLOT_KINDS:
        raise InvalidParameter(f"{parsed.value} is not a texture set slot")
    return parsed


class TextureSet:
    """Albedo plus independently populated derived maps for one material."""

    def __init__(self, identifier: str, albedo: PixelBuffer, *, resample: str = RESAMPLE) -> None:
        if not isinstance(albedo, PixelBuffer):
            raise InvalidParameter(f"Albedo must be a PixelBuffer, got {type(albedo).__name__}")
        self.identifier = validate_identifier(identifier)
        self.resample = resample
        self._lock = threading.Lock()
        self._tickets = itertools.count(1)
        self._albedo = albedo
        self._slots: Dict[MapKind, MapSlot] = {kind: MapSlot(kind) for kind in SLOT_KINDS}
        self._slots[MapKind.ALBEDO] = MapSlot(MapKind.ALBEDO, SlotState.READY, albedo)
        LOGGER.info("Texture set %s created from %dx%d albedo", self.identifier, albedo.width, albedo.height)

    @classmethod
    def create(
        cls,
        albedo: PixelBuffer,
        identifier: Optional[str] = None,
        *,
        identifiers: Optional[Callable[[], str]] = None,
        **kwargs,
    ) -> "TextureSet":
        """Create a set, drawing a fresh identifier when none is given.

        Default identifiers come from *identifiers* or from the process-wide
        :class:`IdentifierFactory`, so sets created in the same millisecond
        still get distinct ids.
        """

        if identifier is None:
            identifier = (identifiers or _DEFAULT_IDENTIFIERS)()
        return cls(identifier, albedo, **kwargs)

    # -- inspection -------------------------------------------------------

    @property
    def albedo(self) -> PixelBuffer:
        with self._lock:
            return self._albedo

    @property
    def size(self) -> Tuple[int, int]:
        return self.albedo.size

    def slot(self, kind: MapKind | str) -> MapSlot:
        parsed = _slot_kind(kind)
        with self._lock:
            return self._slots[parsed]

    def state(self, kind: MapKind | str) -> SlotState:
        return self.slot(kind).state

    def get(self, kind: MapKind | str) -> Optional[PixelBuffer]:
        return self.slot(kind).buffer

    def error(self, kind: MapKind | str) -> Optional[str]:
        return self.slot(kind).error

    def snapshot(self) -> Dict[MapKind, MapSlot]:
        with self._lock:
            return dict(self._slots)

    def ready_maps(self) -> Dict[MapKind, PixelBuffer]:
        """Buffers of every READY slot, in slot order."""

        return {
            kind: slot.buffer
            for kind, slot in self.snapshot().items()
            if slot.state is SlotState.READY and slot.buffer is not None
        }

    # -- transitions ------------------------------------------------------

    def begin(self, kind: MapKind | str) -> int:
        """Mark a derived slot as pending and return its ticket.

        A slot can only have one writer. Passing the ticket to
        :meth:`complete` or :meth:`fail` ties the result to this operation.
        """

        parsed = _derived_kind(kind)
        with self._lock:
            current = self._slots[parsed]
            if current.state is SlotState.PENDING:
                raise SlotBusy(f"{parsed.value} slot of texture set {self.identifier} is already pending")
            ticket = next(self._tickets)
            self._slots[parsed] = MapSlot(parsed, SlotState.PENDING, ticket=ticket)
        LOGGER.debug("Slot %s/%s pending (ticket %d)", self.identifier, parsed.value, ticket)
        return ticket

    @staticmethod
    def _stale(current: MapSlot, ticket: Optional[int]) -> Optional[str]:
        if current.state is not SlotState.PENDING:
            return f"slot is {current.state.value}"
        if ticket is not None and ticket != current.ticket:
            return f"ticket {ticket} was superseded by {current.ticket}"
        return None

    def complete(self, kind: MapKind | str, buffer: PixelBuffer, ticket: Optional[int] = None) -> bool:
        """Store *buffer* in a pending slot, resampled to the albedo size.

        Returns ``False`` when the slot stopped being pending in the meantime,
        or when *ticket* belongs to an operation that has since been
        superseded. The result is discarded in both cases.
        """

        parsed = _derived_kind(kind)
        if not isinstance(buffer, PixelBuffer):
            raise InvalidParameter(f"Slot results must be PixelBuffers, got {type(buffer).__name__}")
        if buffer.size != self.size:
            LOGGER.debug(
                "Resampling %s result %dx%d to albedo size %dx%d",
                parsed.value, buffer.width, buffer.height, *self.size,
            )
            buffer = buffer.resized(self.size, self.resample)
        with self._lock:
            current = self._slots[parsed]
            stale = self._stale(current, ticket)
            if stale is not None:
                LOGGER.warning("Dropping %s result for texture set %s: %s", parsed.value, self.identifier, stale)
                return False
            self._slots[parsed] = MapSlot(parsed, SlotState.READY, buffer, ticket=current.ticket)
        LOGGER.info("Slot %s/%s ready", self.identifier, parsed.value)
        return True

    def fail(self, kind: MapKind | str, error: BaseException | str, ticket: Optional[int] = None) -> bool:
        """Record a failure reason on a pending slot; siblings are untouched."""

        parsed = _derived_kind(kind)
        reason = str(error) or type(error).__name__
        with self._lock:
            current = self._slots[parsed]
            stale = self._stale(current, ticket)
            if stale is not None:
                LOGGER.warning("Ignoring %s failure for texture set %s: %s", parsed.value, self.identifier, stale)
                return False
            self._slots[parsed] = MapSlot(parsed, SlotState.FAILED, error=reason, ticket=current.ticket)
        LOGGER.warning("Slot %s/%s failed: %s", self.identifier, parsed.value, reason)
        return True

    def clear(self, kind: MapKind | str) -> None:
        """Delete a derived map. The albedo is only replaced by a new set."""

        parsed = _slot_kind(kind)
        if parsed is MapKind.ALBEDO:
            raise InvalidParameter("The albedo cannot be cleared; start a new texture set instead")
        with self._lock:
            self._slots[parsed] = MapSlot(parsed)
        LOGGER.info("Slot %s/%s cleared", self.identifier, parsed.value)

    def replace_albedo(self, albedo: PixelBuffer) -> None:
        """Swap the albedo while nothing has been derived from it yet."""

        if not isinstance(albedo, PixelBuffer):
            raise InvalidParameter(f"Albedo must be a PixelBuffer, got {type(albedo).__name__}")
        with self._lock:
            busy = [kind.value for kind in DERIVED_KINDS if self._slots[kind].state is not SlotState.EMPTY]
            if busy:
                raise InvalidParameter(f"Albedo is locked while derived maps exist: {', '.join(busy)}")
            self._albedo = albedo
            self._slots[MapKind.ALBEDO] = replace(self._slots[MapKind.ALBEDO], buffer=albedo)

    def populate(self, kind: MapKind | str, producer: Producer) -> MapSlot:
        """Run *producer* on the albedo and store its result in *kind*.

        Failures are recorded on the slot instead of being raised; only
        :class:`SlotBusy` escapes, because it signals a caller error.
        """

        parsed = _derived_kind(kind)
        ticket = self.begin(parsed)
        source = self.albedo
        try:
            result = producer(source)
            if result is None:
                raise UpstreamFailure(f"{parsed.value} source returned no image")
            self.complete(parsed, result, ticket)
        except PBREngineError as exc:
            self.fail(parsed, exc, ticket)
        except Exception as exc:
            LOGGER.exception("Unexpected error while producing %s map", parsed.value)
            self.fail(parsed, exc, ticket)
        return self.slot(parsed)

    # -- derived artifacts ------------------------------------------------

    def packed_mask(self, size: Optional[Tuple[int, int]] = MASK_RESOLUTION) -> PixelBuffer:
        """Pack the current metallic/occlusion/roughness slots into a mask map."""

        ready = self.ready_maps()
        return mask_map.generate(
            metallic=ready.get(MapKind.METALLIC),
            occlusion=ready.get(MapKind.OCCLUSION),
            roughness=ready.get(MapKind.ROUGHNESS),
            size=size,
            resample=self.resample,
        )

    def __repr__(self) -> str:
        states = ", ".join(f"{kind.value}={slot.state.value}" for kind, slot in self.snapshot().items())
        return f"TextureSet({self.identifier!r}, {states})"


class IdentifierFactory:
    """Millisecond timestamps, bumped so that no two calls share a value."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._last = 0
        self._lock = threading.Lock()

    def __call__(self) -> str:
        with self._lock:
            value = max(int(self._clock() * 1000), self._last + 1)
            self._last = value
        return str(value)


_DEFAULT_IDENTIFIERS = IdentifierFactory()


class TextureSession:
    """Holds the current texture set; a new generation replaces it wholesale."""

    def __init__(self, identifiers: Optional[Callable[[], str]] = None, *, resample: str = RESAMPLE) -> None:
        self._identifiers = identifiers or IdentifierFactory()
        self._resample = resample
        self._current: Optional[TextureSet] = None
        self._lock = threading.Lock()

    @property
    def current(self) -> Optional[TextureSet]:
        with self._lock:
            return self._current

    def start(self, albedo: PixelBuffer) -> TextureSet:
        """Create a fresh texture set for *albedo*, discarding the previous one."""

        texture_set = TextureSet.create(albedo, identifiers=self._identifiers, resample=self._resample)
        with self._lock:
            previous, self._current = self._current, texture_set
        if previous is not None:
            LOGGER.info("Discarded texture set %s in favour of %s", previous.identifier, texture_set.identifier)
        return texture_set

    def discard(self) -> None:
        with self._lock:
            self._current = None


__all__ = [
    "IdentifierFactory",
    "MapSlot",
    "SlotState",
    "TextureSession",
    "TextureSet",
    "validate_identifier",
]
