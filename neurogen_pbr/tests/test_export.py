"""Tests for the exported file naming contract."""
from __future__ import annotations

import pytest

np = pytest.importorskip("numpy")
pytest.importorskip("PIL")

from neurogen_pbr.core.errors import InvalidParameter
from neurogen_pbr.core.map_kinds import MapKind
from neurogen_pbr.core.pixel_buffer import PixelBuffer
from neurogen_pbr.modules.export import (
    EXPORT_SUFFIXES,
    discover_texture_sets,
    export_filename,
    export_texture_set,
    parse_export_filename,
    plan_export,
)
from neurogen_pbr.modules.texture_set import TextureSet


def _gray(value: int) -> PixelBuffer:
    return PixelBuffer.solid(4, 4, (value, value, value, 255))


@pytest.fixture
def texture_set() -> TextureSet:
    texture_set = TextureSet("1700000000000", PixelBuffer.solid(4, 4, (200, 100, 50, 255)))
    texture_set.populate(MapKind.NORMAL, lambda source: PixelBuffer.solid(4, 4, (128, 128, 255, 255)))
    return texture_set


def test_suffixes_are_fixed() -> None:
    assert set(EXPORT_SUFFIXES.values()) == {
        "albedo",
        "normal",
        "roughness",
        "metallic",
        "occlusion",
        "height",
        "HDRP_Mask",
    }


def test_filename_scheme() -> None:
    assert export_filename("1700000000000", MapKind.PACKED_MASK) == "neurogen_1700000000000_HDRP_Mask.png"
    assert export_filename("42", "height", prefix="studio") == "studio_42_height.png"
    with pytest.raises(InvalidParameter):
        export_filename("42_1", MapKind.ALBEDO)


def test_albedo_and_normal_export_exactly_two_files(texture_set: TextureSet, tmp_path) -> None:
    written = export_texture_set(texture_set, tmp_path)
    assert sorted(path.name for path in written) == [
        "neurogen_1700000000000_albedo.png",
        "neurogen_1700000000000_normal.png",
    ]
    assert sorted(path.name for path in tmp_path.iterdir()) == [
        "neurogen_1700000000000_albedo.png",
        "neurogen_1700000000000_normal.png",
    ]


def test_written_files_decode_to_slot_contents(texture_set: TextureSet, tmp_path) -> None:
    export_texture_set(texture_set, tmp_path)
    decoded = PixelBuffer.decode(tmp_path / "neurogen_1700000000000_normal.png")
    assert decoded == texture_set.get(MapKind.NORMAL)


def test_export_skips_pending_and_failed_slots(texture_set: TextureSet) -> None:
    texture_set.begin(MapKind.HEIGHT)
    texture_set.begin(MapKind.ROUGHNESS)
    texture_set.fail(MapKind.ROUGHNESS, "blocked")
    assert set(plan_export(texture_set)) == {
        "neurogen_1700000000000_albedo.png",
        "neurogen_1700000000000_normal.png",
    }


def test_export_does_not_modify_the_texture_set(texture_set: TextureSet, tmp_path) -> None:
    texture_set.populate(MapKind.OCCLUSION, lambda source: _gray(30))
    before = texture_set.snapshot()
    export_texture_set(texture_set, tmp_path, include_mask=True, mask_size=(4, 4))
    assert texture_set.snapshot() == before


def test_mask_is_skipped_without_sources(texture_set: TextureSet) -> None:
    plan = plan_export(texture_set, include_mask=True, mask_size=(4, 4))
    assert "neurogen_1700000000000_HDRP_Mask.png" not in plan


def test_mask_is_packed_from_current_slots(texture_set: TextureSet) -> None:
    texture_set.populate(MapKind.ROUGHNESS, lambda source: _gray(100))
    plan = plan_export(texture_set, include_mask=True, mask_size=(4, 4))
    mask = plan["neurogen_1700000000000_HDRP_Mask.png"]
    assert mask.size == (4, 4)
    assert mask.pixel(2, 2) == (0, 255, 0, 155)


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("neurogen_1700000000000_albedo.png", ("1700000000000", MapKind.ALBEDO)),
        ("neurogen_1700000000000_HDRP_Mask.png", ("1700000000000", MapKind.PACKED_MASK)),
        ("neurogen_1700000000000_curvature.png", None),
        ("neurogen_1700000000000.png", None),
        ("other_1700000000000_albedo.png", None),
        ("neurogen_1700000000000_albedo.jpg", None),
    ],
)
def test_parse_export_filename(name, expected) -> None:
    assert parse_export_filename(name) == expected


def test_discover_groups_by_identifier(tmp_path) -> None:
    first = TextureSet("100", _gray(10))
    first.populate(MapKind.HEIGHT, lambda source: _gray(90))
    second = TextureSet("200", _gray(20))
    export_texture_set(first, tmp_path)
    export_texture_set(second, tmp_path)
    (tmp_path / "neurogen_100_curvature.png").write_bytes(_gray(0).encode_png())
    (tmp_path / "notes.txt").write_text("scratch")

    found = discover_texture_sets(tmp_path)
    assert set(found) == {"100", "200"}
    assert set(found["100"]) == {MapKind.ALBEDO, MapKind.HEIGHT}
    assert found["200"][MapKind.ALBEDO].name == "neurogen_200_albedo.png"


def test_discover_requires_a_directory(tmp_path) -> None:
    with pytest.raises(InvalidParameter):
        discover_texture_sets(tmp_path / "missing")
