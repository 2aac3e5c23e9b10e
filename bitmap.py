"""24-bit BMP images whose reserved header field carries the class label."""
import io
import struct
from typing import NamedTuple

import numpy as np
from PIL import Image

BMP_HEADER_SIZE = 14
DIB_HEADER_SIZE = 40
DATA_OFFSET = BMP_HEADER_SIZE + DIB_HEADER_SIZE
BITS_PER_PIXEL = 24


class BitmapError(ValueError):
    pass


class Bitmap(NamedTuple):
    pixels: np.ndarray   # (H, W, 3) uint8, RGB, top row first
    label: int


def _check_headers(raw, path):
    if len(raw) < DATA_OFFSET:
        raise BitmapError(f"{path}: truncated header ({len(raw)} bytes)")

    # Bitmap file header: 'BM', file size, reserved (label), data offset
    magic, _, label, offset = struct.unpack_from("<2sIiI", raw, 0)
    if magic != b"BM":
        raise BitmapError(f"{path}: not a bitmap (magic {magic!r})")
    if offset != DATA_OFFSET:
        raise BitmapError(f"{path}: pixel data at offset {offset}, expected {DATA_OFFSET}")

    # DIB header: size, width, height, colour planes, bits per pixel, compression
    dib_size, _, _, planes, bpp, compression = struct.unpack_from("<IiiHHI", raw, BMP_HEADER_SIZE)
    if dib_size != DIB_HEADER_SIZE:
        raise BitmapError(f"{path}: DIB header is {dib_size} bytes, expected {DIB_HEADER_SIZE}")
    if planes != 1 or bpp != BITS_PER_PIXEL or compression != 0:
        raise BitmapError(f"{path}: only uncompressed single-plane {BITS_PER_PIXEL}-bit bitmaps are supported")
    return label


def read_bitmap(path):
    with open(path, "rb") as f:
        raw = f.read()
    label = _check_headers(raw, path)
    try:
        with Image.open(io.BytesIO(raw)) as img:
            pixels = np.asarray(img.convert("RGB"))
    except (OSError, SyntaxError) as e:
        raise BitmapError(f"{path}: {e}") from e
    return Bitmap(pixels, label)


def write_bitmap(path, pixels, label):
    """Save a (H, W) grayscale or (H, W, 3) RGB uint8 array with `label` in the reserved field."""
    pixels = np.asarray(pixels, dtype=np.uint8)
    if pixels.ndim not in (2, 3):
        raise BitmapError(f"expected a (H, W) or (H, W, 3) array, got shape {pixels.shape}")
    buf = io.BytesIO()
    Image.fromarray(pixels).convert("RGB").save(buf, format="BMP")
    data = bytearray(buf.getvalue())
    struct.pack_into("<i", data, 6, int(label))
    with open(path, "wb") as f:
        f.write(data)


# the first stored byte of each BGR pixel is blue
def to_vector(bitmap):
    return bitmap.pixels[..., 2].reshape(-1).astype(np.float32) / 255.0
