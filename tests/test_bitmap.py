import numpy as np
import pytest

import bitmap


def digit(height=28, width=28, seed=0):
    return np.random.default_rng(seed).integers(0, 256, (height, width), dtype=np.uint8)


def test_write_then_read_keeps_pixels_and_label(tmp_path):
    path = tmp_path / "00007.bmp"
    pixels = digit()
    bitmap.write_bitmap(path, pixels, 7)

    bmp = bitmap.read_bitmap(path)
    assert bmp.label == 7
    assert bmp.pixels.shape == (28, 28, 3)
    np.testing.assert_array_equal(bmp.pixels[..., 2], pixels)

def test_label_lives_in_reserved_header_field(tmp_path):
    path = tmp_path / "label.bmp"
    bitmap.write_bitmap(path, digit(4, 4), 9)
    raw = path.read_bytes()
    assert raw[:2] == b"BM"
    assert int.from_bytes(raw[6:10], "little") == 9
    assert int.from_bytes(raw[10:14], "little") == bitmap.DATA_OFFSET

def test_rows_with_padding(tmp_path):
    # 3 pixels * 3 bytes = 9 bytes per row, padded to 12 on disk
    path = tmp_path / "odd.bmp"
    pixels = digit(5, 3, seed=1)
    bitmap.write_bitmap(path, pixels, 1)
    np.testing.assert_array_equal(bitmap.read_bitmap(path).pixels[..., 2], pixels)

def test_rgb_pixels_use_blue_channel(tmp_path):
    path = tmp_path / "rgb.bmp"
    pixels = np.zeros((2, 2, 3), dtype=np.uint8)
    pixels[..., 0] = 10    # red
    pixels[..., 2] = 255   # blue
    bitmap.write_bitmap(path, pixels, 3)
    vec = bitmap.to_vector(bitmap.read_bitmap(path))
    assert vec.dtype == np.float32
    np.testing.assert_allclose(vec, np.ones(4))

def test_to_vector_scales_to_unit_interval(tmp_path):
    path = tmp_path / "scale.bmp"
    pixels = np.array([[0, 51], [102, 255]], dtype=np.uint8)
    bitmap.write_bitmap(path, pixels, 0)
    np.testing.assert_allclose(bitmap.to_vector(bitmap.read_bitmap(path)), [0.0, 0.2, 0.4, 1.0], rtol=1e-6)

def test_bad_magic_rejected(tmp_path):
    path = tmp_path / "bad.bmp"
    bitmap.write_bitmap(path, digit(4, 4), 2)
    raw = bytearray(path.read_bytes())
    raw[0:2] = b"XX"
    path.write_bytes(bytes(raw))
    with pytest.raises(bitmap.BitmapError, match="not a bitmap"):
        bitmap.read_bitmap(path)

def test_unsupported_bit_depth_rejected(tmp_path):
    path = tmp_path / "deep.bmp"
    bitmap.write_bitmap(path, digit(4, 4), 2)
    raw = bytearray(path.read_bytes())
    raw[28:30] = (32).to_bytes(2, "little")   # bits per pixel
    path.write_bytes(bytes(raw))
    with pytest.raises(bitmap.BitmapError, match="24-bit"):
        bitmap.read_bitmap(path)

def test_truncated_file_rejected(tmp_path):
    path = tmp_path / "short.bmp"
    path.write_bytes(b"BM\x00\x00")
    with pytest.raises(bitmap.BitmapError, match="truncated"):
        bitmap.read_bitmap(path)

def test_write_rejects_flat_arrays(tmp_path):
    with pytest.raises(bitmap.BitmapError):
        bitmap.write_bitmap(tmp_path / "flat.bmp", np.zeros(784, dtype=np.uint8), 0)
