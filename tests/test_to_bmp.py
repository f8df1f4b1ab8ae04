import struct

import pytest

from frameconv.pixels import PixFormat, yuv2rgb
from frameconv.to_bmp import BMP_HEADER_LEN, fmt2bmp, fmt2rgb888


def _header(bmp):
    return struct.unpack("<IIIIiiHHIIIIII", bmp[2:54])


def test_rgb888_bmp_header_fields():
    width, height = 3, 2
    src = bytes(range(width * height * 3))
    bmp = fmt2bmp(src, width, height, PixFormat.RGB888)
    assert bmp[:2] == b"BM"
    fields = _header(bmp)
    assert fields[0] == len(bmp)
    assert fields[2] == BMP_HEADER_LEN
    assert fields[3] == 40
    assert fields[4] == width
    assert fields[5] == -height
    assert fields[6] == 1
    assert fields[7] == 24
    assert fields[9] == width * height * 3
    assert fields[10] == 0x0B13 and fields[11] == 0x0B13
    assert bmp[BMP_HEADER_LEN:] == src


def test_grayscale_bmp_has_palette():
    src = bytes([10, 20, 30, 40])
    bmp = fmt2bmp(src, 2, 2, PixFormat.GRAYSCALE)
    fields = _header(bmp)
    assert fields[2] == BMP_HEADER_LEN + 1024
    assert fields[7] == 8
    assert len(bmp) == BMP_HEADER_LEN + 1024 + 4
    palette = bmp[BMP_HEADER_LEN:BMP_HEADER_LEN + 1024]
    assert palette[4 * 200:4 * 200 + 4] == bytes([200, 200, 200, 0])
    assert bmp[-4:] == src


def test_rgb565_bmp_pixel_is_bgr():
    bmp = fmt2bmp(bytes([0xF8, 0x00]), 1, 1, PixFormat.RGB565)
    assert bmp[BMP_HEADER_LEN:] == bytes([0x00, 0x00, 0xF8])


def test_yuv422_bmp_matches_yuv2rgb():
    src = bytes([50, 100, 180, 140])
    bmp = fmt2bmp(src, 2, 1, PixFormat.YUV422)
    r0, g0, b0 = yuv2rgb(50, 100, 140)
    r1, g1, b1 = yuv2rgb(180, 100, 140)
    assert bmp[BMP_HEADER_LEN:] == bytes([b0, g0, r0, b1, g1, r1])


def test_bmp_pixels_agree_with_fmt2rgb888():
    src = bytes((i * 13) % 256 for i in range(4 * 3 * 2))
    bmp = fmt2bmp(src, 4, 3, PixFormat.RGB565)
    assert bmp[BMP_HEADER_LEN:] == fmt2rgb888(src, PixFormat.RGB565)


def test_fmt2rgb888_grayscale_triples():
    assert fmt2rgb888(bytes([7, 9]), PixFormat.GRAYSCALE) == bytes([7, 7, 7, 9, 9, 9])


def test_fmt2rgb888_rgb888_is_copy():
    src = bytes([1, 2, 3, 4, 5, 6])
    assert fmt2rgb888(bytearray(src), PixFormat.RGB888) == src


def test_fmt2rgb888_yuv_length():
    out = fmt2rgb888(bytes(range(8)), PixFormat.YUV422)
    assert len(out) == 4 * 3


def test_jpeg_is_rejected():
    with pytest.raises(ValueError):
        fmt2bmp(b"\xff\xd8", 1, 1, PixFormat.JPEG)
    with pytest.raises(ValueError):
        fmt2rgb888(b"\xff\xd8", PixFormat.JPEG)


def test_short_source_is_rejected():
    with pytest.raises(ValueError):
        fmt2bmp(bytes(5), 2, 2, PixFormat.RGB888)


def test_negative_size_is_rejected():
    with pytest.raises(ValueError):
        fmt2bmp(b"", -1, 2, PixFormat.GRAYSCALE)