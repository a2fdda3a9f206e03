"""Tests for concurrent slot population."""
from __future__ import annotations

import pytest

np = pytest.importorskip("numpy")
pytest.importorskip("PIL")
from PIL import Image

from neurogen_pbr.core.errors import InvalidParameter, SlotBusy
from neurogen_pbr.core.map_kinds import DERIVED_KINDS, MapKind
from neurogen_pbr.core.pixel_buffer import PixelBuffer
from neurogen_pbr.modules.generation import coerce_result, populate_texture_set
from neurogen_pbr.modules.surface_maps import local_maps
from neurogen_pbr.modules.texture_set import SlotState, TextureSet


def _texture_set() -> TextureSet:
    rng = np.random.default_rng(11)
    albedo = rng.integers(0, 256, size=(16, 16, 4), dtype=np.uint8)
    albedo[..., 3] = 255
    return TextureSet("1700000000001", PixelBuffer(albedo))


def _solid_generator(source: PixelBuffer, kind: MapKind) -> PixelBuffer:
    values = {MapKind.ROUGHNESS: 180, MapKind.METALLIC: 0, MapKind.OCCLUSION: 230, MapKind.HEIGHT: 128}
    value = values[kind]
    return PixelBuffer.solid(source.width, source.height, (value, value, value, 255))


def test_all_slots_become_ready() -> None:
    texture_set = _texture_set()
    slots = populate_texture_set(texture_set, _solid_generator, max_workers=4)
    assert set(slots) == set(DERIVED_KINDS)
    assert all(slot.state is SlotState.READY for slot in slots.values())
    assert texture_set.get(MapKind.ROUGHNESS).pixel(3, 3) == (180, 180, 180, 255)


def test_one_upstream_failure_does_not_spread() -> None:
    def flaky(source: PixelBuffer, kind: MapKind):
        if kind is MapKind.METALLIC:
            raise ConnectionError("HTTP 503")
        if kind is MapKind.HEIGHT:
            return None
        return _solid_generator(source, kind)

    texture_set = _texture_set()
    slots = populate_texture_set(texture_set, flaky, max_workers=4)
    assert slots[MapKind.METALLIC].state is SlotState.FAILED
    assert "HTTP 503" in slots[MapKind.METALLIC].error
    assert slots[MapKind.HEIGHT].state is SlotState.FAILED
    for kind in (MapKind.NORMAL, MapKind.ROUGHNESS, MapKind.OCCLUSION):
        assert texture_set.state(kind) is SlotState.READY


def test_normal_needs_no_generator() -> None:
    texture_set = _texture_set()
    slots = populate_texture_set(texture_set, kinds=[MapKind.NORMAL], intensity=4.0)
    assert slots[MapKind.NORMAL].state is SlotState.READY
    assert texture_set.state(MapKind.ROUGHNESS) is SlotState.EMPTY


def test_generated_kinds_need_a_generator() -> None:
    with pytest.raises(InvalidParameter):
        populate_texture_set(_texture_set(), kinds=["normal", "roughness"])


def test_albedo_is_not_a_population_target() -> None:
    with pytest.raises(InvalidParameter):
        populate_texture_set(_texture_set(), _solid_generator, kinds=[MapKind.ALBEDO])


def test_pending_slots_block_a_new_run() -> None:
    texture_set = _texture_set()
    texture_set.begin(MapKind.OCCLUSION)
    with pytest.raises(SlotBusy):
        populate_texture_set(texture_set, _solid_generator)
    assert texture_set.state(MapKind.NORMAL) is SlotState.EMPTY


def test_generator_results_are_coerced() -> None:
    image = Image.new("RGBA", (2, 2), (5, 6, 7, 255))
    png = PixelBuffer.solid(2, 2, (5, 6, 7, 255)).encode_png()
    assert coerce_result(image).pixel(0, 0) == (5, 6, 7, 255)
    assert coerce_result(png).pixel(1, 1) == (5, 6, 7, 255)

    texture_set = _texture_set()
    slots = populate_texture_set(texture_set, lambda source, kind: 42, kinds=[MapKind.HEIGHT])
    assert slots[MapKind.HEIGHT].state is SlotState.FAILED
    assert "unsupported type" in slots[MapKind.HEIGHT].error


def test_undecodable_generator_output_fails_the_slot() -> None:
    texture_set = _texture_set()
    slots = populate_texture_set(texture_set, lambda source, kind: b"<html>quota</html>", kinds=["roughness"])
    assert slots[MapKind.ROUGHNESS].state is SlotState.FAILED
    assert "decode" in slots[MapKind.ROUGHNESS].error


def test_local_sources_fill_every_slot() -> None:
    texture_set = _texture_set()
    populate_texture_set(texture_set, local_maps.generate, max_workers=2)
    ready = texture_set.ready_maps()
    assert set(ready) == {MapKind.ALBEDO, *DERIVED_KINDS}
    assert all(buffer.size == (16, 16) for buffer in ready.values())


def test_worker_count_must_be_positive() -> None:
    texture_set = _texture_set()
    with pytest.raises(InvalidParameter):
        populate_texture_set(texture_set, _solid_generator, max_workers=0)
    assert all(texture_set.state(kind) is SlotState.EMPTY for kind in DERIVED_KINDS)
