"""Tests for the immutable pixel buffer and wrap-aware sampling."""
from __future__ import annotations

import base64

import pytest

np = pytest.importorskip("numpy")
pytest.importorskip("PIL")

from neurogen_pbr.core.errors import DecodeFailure, InvalidParameter
from neurogen_pbr.core.pixel_buffer import PixelBuffer, sample_wrapped


def _gradient(width: int = 5, height: int = 3) -> PixelBuffer:
    array = np.zeros((height, width, 4), dtype=np.uint8)
    array[..., 0] = np.arange(width, dtype=np.uint8)[None, :] * 10
    array[..., 1] = np.arange(height, dtype=np.uint8)[:, None] * 20
    array[..., 3] = 255
    return PixelBuffer(array)


def test_length_invariant() -> None:
    buffer = _gradient()
    assert buffer.size == (5, 3)
    assert len(buffer.tobytes()) == buffer.width * buffer.height * 4


def test_buffer_is_read_only_and_detached_from_source() -> None:
    source = np.zeros((2, 2, 4), dtype=np.uint8)
    buffer = PixelBuffer(source)
    source[0, 0] = (9, 9, 9, 9)
    assert buffer.pixel(0, 0) == (0, 0, 0, 0)
    with pytest.raises(ValueError):
        buffer.array[0, 0, 0] = 1


def test_gray_and_rgb_inputs_gain_opaque_alpha() -> None:
    gray = PixelBuffer.from_array(np.full((2, 3), 77, dtype=np.uint8))
    rgb = PixelBuffer(np.full((2, 3, 3), 12, dtype=np.uint8))
    assert gray.pixel(2, 1) == (77, 77, 77, 255)
    assert rgb.pixel(0, 0) == (12, 12, 12, 255)


@pytest.mark.parametrize(
    "array",
    [
        np.zeros((2, 2, 4), dtype=np.float32),
        np.zeros((0, 2, 4), dtype=np.uint8),
        np.zeros((2, 2, 2), dtype=np.uint8),
    ],
)
def test_invalid_arrays_are_rejected(array) -> None:
    with pytest.raises(InvalidParameter):
        PixelBuffer(array)


def test_pixel_access_is_bounds_checked() -> None:
    buffer = _gradient()
    with pytest.raises(IndexError):
        buffer.pixel(5, 0)
    with pytest.raises(IndexError):
        buffer.pixel(0, -1)


def test_wrapped_access_crosses_edges() -> None:
    buffer = _gradient()
    assert buffer.pixel_wrapped(-1, 0) == buffer.pixel(4, 0)
    assert buffer.pixel_wrapped(5, 3) == buffer.pixel(0, 0)
    assert buffer.pixel_wrapped(2, -1) == buffer.pixel(2, 2)


def test_sample_wrapped_uses_opposite_edge() -> None:
    field = np.arange(12, dtype=np.float64).reshape(3, 4)
    left = sample_wrapped(field, -1, 0)
    below = sample_wrapped(field, 0, 1)
    assert np.array_equal(left[:, 0], field[:, 3])
    assert np.array_equal(left[:, 2], field[:, 1])
    assert np.array_equal(below[2], field[0])
    assert np.array_equal(below[0], field[1])


def test_luminance_uses_rec601_weights() -> None:
    buffer = PixelBuffer.solid(2, 2, (255, 0, 0, 255))
    assert np.allclose(buffer.luminance(), 0.299)
    assert np.allclose(PixelBuffer.solid(1, 1, (255, 255, 255, 0)).luminance(), 1.0)


def test_resized_nearest_and_identity() -> None:
    buffer = PixelBuffer(np.array([[[0, 0, 0, 255], [200, 0, 0, 255]]], dtype=np.uint8))
    scaled = buffer.resized((4, 2), "nearest")
    assert scaled.size == (4, 2)
    assert scaled.pixel(0, 1)[0] == 0
    assert scaled.pixel(3, 0)[0] == 200
    assert buffer.resized(buffer.size) is buffer


def test_resized_rejects_unknown_filter() -> None:
    with pytest.raises(InvalidParameter):
        _gradient().resized((2, 2), "lanczos-ish")


def test_decode_png_bytes_and_data_url() -> None:
    buffer = _gradient()
    payload = buffer.encode_png()
    assert PixelBuffer.decode(payload) == buffer
    url = "data:image/png;base64," + base64.b64encode(payload).decode("ascii")
    assert PixelBuffer.decode(url) == buffer


def test_decode_path(tmp_path) -> None:
    path = tmp_path / "albedo.png"
    path.write_bytes(_gradient().encode_png())
    assert PixelBuffer.decode(path).size == (5, 3)


@pytest.mark.parametrize(
    "source",
    [b"definitely not an image", "data:image/png;base64,@@@", "data:text/plain,hello"],
)
def test_decode_failures(source) -> None:
    with pytest.raises(DecodeFailure):
        PixelBuffer.decode(source)


def test_decode_missing_file(tmp_path) -> None:
    with pytest.raises(DecodeFailure):
        PixelBuffer.decode(tmp_path / "missing.png")
