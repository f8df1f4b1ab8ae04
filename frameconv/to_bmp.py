"""Convert raw camera frames to 24-bit BGR pixels and BMP files."""

from __future__ import annotations

import struct

from frameconv.pixels import PixFormat, yuv2rgb

BMP_HEADER_LEN = 54
_DIB_HEADER_LEN = 40
_PIXELS_PER_METRE = 0x0B13  # 72 DPI
_HEADER = struct.Struct("<IIIIiiHHIIIIII")


def _as_bytes(src: bytes | bytearray | memoryview) -> bytes:
    return bytes(memoryview(src).cast("B"))


def _rgb565_to_bgr(data: bytes, count: int) -> bytes:
    out = bytearray()
    for hb, lb in zip(data[0:count * 2:2], data[1:count * 2:2]):
        out += bytes(((lb & 0x1F) << 3, (hb & 0x07) << 5 | (lb & 0xE0) >> 3, hb & 0xF8))
    return bytes(out)


def _yuv422_to_bgr(data: bytes, pairs: int) -> bytes:
    out = bytearray()
    for i in range(0, pairs * 4, 4):
        y0, u, y1, v = data[i:i + 4]
        for luma in (y0, y1):
            r, g, b = yuv2rgb(luma, u, v)
            out += bytes((b, g, r))
    return bytes(out)


def _jpeg_unsupported() -> ValueError:
    return ValueError("JPEG frames cannot be decoded by this converter")


def fmt2rgb888(src: bytes | bytearray | memoryview, fmt: PixFormat) -> bytes:
    """Expand a whole frame to three bytes per pixel in the order BMP stores them."""
    data = _as_bytes(src)
    if fmt is PixFormat.JPEG:
        raise _jpeg_unsupported()
    if fmt is PixFormat.RGB888:
        return data
    if fmt is PixFormat.RGB565:
        return _rgb565_to_bgr(data, len(data) // 2)
    if fmt is PixFormat.GRAYSCALE:
        return bytes(b for value in data for b in (value, value, value))
    if fmt is PixFormat.YUV422:
        return _yuv422_to_bgr(data, len(data) // 4)
    raise ValueError(f"unsupported pixel format {fmt}")


def fmt2bmp(
    src: bytes | bytearray | memoryview, width: int, height: int, fmt: PixFormat
) -> bytes:
    """Build a top-down BMP file; greyscale frames become 8-bit paletted images."""
    if fmt is PixFormat.JPEG:
        raise _jpeg_unsupported()
    if width < 0 or height < 0:
        raise ValueError(f"image size must not be negative, got {width}x{height}")
    need_per_pixel = {
        PixFormat.RGB888: 3,
        PixFormat.RGB565: 2,
        PixFormat.GRAYSCALE: 1,
        PixFormat.YUV422: 2,
    }
    if fmt not in need_per_pixel:
        raise ValueError(f"unsupported pixel format {fmt}")

    data = _as_bytes(src)
    pix_count = width * height
    if fmt is PixFormat.YUV422:
        needed = (pix_count // 2) * 4
    else:
        needed = pix_count * need_per_pixel[fmt]
    if len(data) < needed:
        raise ValueError(f"source buffer holds {len(data)} bytes, {needed} required")

    grey = fmt is PixFormat.GRAYSCALE
    bpp = 1 if grey else 3
    palette_size = 4 * 256 if grey else 0
    image_size = pix_count * bpp
    out_size = image_size + BMP_HEADER_LEN + palette_size

    header = b"BM" + _HEADER.pack(
        out_size,
        0,
        BMP_HEADER_LEN + palette_size,
        _DIB_HEADER_LEN,
        width,
        -height,
        1,
        bpp * 8,
        0,
        image_size,
        _PIXELS_PER_METRE,
        _PIXELS_PER_METRE,
        0,
        0,
    )
    palette = b"".join(bytes((i, i, i, 0)) for i in range(256)) if grey else b""

    if fmt is PixFormat.RGB888 or grey:
        pixels = data[:image_size]
    elif fmt is PixFormat.RGB565:
        pixels = _rgb565_to_bgr(data, pix_count)
    else:
        pixels = _yuv422_to_bgr(data, pix_count // 2)
    pixels = pixels.ljust(image_size, b"\x00")

    return header + palette + pixels