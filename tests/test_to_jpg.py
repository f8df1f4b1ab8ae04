import pytest

from frameconv.pixels import PixFormat, yuv2rgb
from frameconv.to_jpg import (
    CallbackStream,
    MemoryStream,
    convert_line_format,
    fmt2jpg,
    fmt2jpg_cb,
)


def _gradient_rgb888(width, height):
    return bytes((x * 7 + y * 3 + c * 50) % 256 for y in range(height) for x in range(width) for c in range(3))


def test_memory_stream_truncates_and_ignores_end():
    stream = MemoryStream(4)
    assert stream.put_buf(b"abcdef") is True
    assert stream.put_buf(None) is True
    assert bytes(stream) == b"abcd"
    assert len(stream) == 4


def test_memory_stream_appends_chunks():
    stream = MemoryStream(10)
    stream.put_buf(b"ab")
    stream.put_buf(b"cd")
    assert bytes(stream) == b"abcd"


def test_callback_stream_accumulates_reported_counts():
    seen = []

    def cb(index, data):
        seen.append((index, data))
        return 0 if data is None else len(data)

    stream = CallbackStream(cb)
    stream.put_buf(b"xyz")
    stream.put_buf(b"qq")
    stream.put_buf(None)
    assert seen == [(0, b"xyz"), (3, b"qq"), (5, None)]
    assert len(stream) == 5


def test_convert_line_grayscale_selects_row():
    src = bytes(range(6))
    assert convert_line_format(src, PixFormat.GRAYSCALE, 3, 1) == bytes([3, 4, 5])


def test_convert_line_rgb888_swaps_channels():
    src = bytes([1, 2, 3, 4, 5, 6])
    assert convert_line_format(src, PixFormat.RGB888, 1, 1) == bytes([6, 5, 4])


def test_convert_line_rgb565_primaries():
    src = bytes([0xF8, 0x00, 0x07, 0xE0, 0x00, 0x1F])
    assert convert_line_format(src, PixFormat.RGB565, 3, 0) == bytes(
        [0xF8, 0, 0, 0, 0xFC, 0, 0, 0, 0xF8]
    )


def test_convert_line_yuv422_uses_shared_chroma():
    src = bytes([40, 90, 200, 160])
    expected = bytes(yuv2rgb(40, 90, 160)) + bytes(yuv2rgb(200, 90, 160))
    assert convert_line_format(src, PixFormat.YUV422, 2, 0) == expected


def test_convert_line_short_source_raises():
    with pytest.raises(ValueError):
        convert_line_format(bytes(4), PixFormat.RGB888, 2, 0)


def test_convert_line_jpeg_rejected():
    with pytest.raises(ValueError):
        convert_line_format(bytes(16), PixFormat.JPEG, 2, 0)


@pytest.mark.parametrize(
    "fmt,bpp",
    [(PixFormat.RGB888, 3), (PixFormat.RGB565, 2), (PixFormat.YUV422, 2), (PixFormat.GRAYSCALE, 1)],
)
def test_fmt2jpg_produces_jpeg_markers(fmt, bpp):
    width, height = 20, 13
    src = bytes((i * 37) % 256 for i in range(width * height * bpp))
    out = fmt2jpg(src, width, height, fmt, 80)
    assert out[:4] == b"\xff\xd8\xff\xe0"
    assert out[-2:] == b"\xff\xd9"
    sof = out.index(b"\xff\xc0")
    assert out[sof + 5:sof + 7] == height.to_bytes(2, "big")
    assert out[sof + 7:sof + 9] == width.to_bytes(2, "big")
    assert out[sof + 9] == (1 if fmt is PixFormat.GRAYSCALE else 3)


def test_fmt2jpg_quality_is_clamped():
    src = _gradient_rgb888(16, 16)
    assert fmt2jpg(src, 16, 16, PixFormat.RGB888, 0) == fmt2jpg(src, 16, 16, PixFormat.RGB888, 1)
    assert fmt2jpg(src, 16, 16, PixFormat.RGB888, 250) == fmt2jpg(src, 16, 16, PixFormat.RGB888, 100)


def test_fmt2jpg_quality_100_gives_unit_quant_table():
    out = fmt2jpg(bytes(64), 8, 8, PixFormat.GRAYSCALE, 100)
    dqt = out.index(b"\xff\xdb\x00\x43\x00")
    assert out[dqt + 5:dqt + 69] == b"\x01" * 64


def test_fmt2jpg_cb_matches_memory_output():
    src = _gradient_rgb888(24, 10)
    chunks = []

    def cb(index, data):
        if data is None:
            return 0
        chunks.append(bytes(data))
        return len(data)

    total = fmt2jpg_cb(src, 24, 10, PixFormat.RGB888, 60, cb)
    joined = b"".join(chunks)
    assert joined == fmt2jpg(src, 24, 10, PixFormat.RGB888, 60)
    assert total == len(joined)


def test_fmt2jpg_rejects_jpeg_input():
    with pytest.raises(ValueError):
        fmt2jpg(bytes(100), 5, 5, PixFormat.JPEG, 50)


def test_fmt2jpg_rejects_short_source():
    with pytest.raises(ValueError):
        fmt2jpg(bytes(10), 4, 4, PixFormat.RGB565, 50)


def test_fmt2jpg_rejects_empty_image():
    with pytest.raises(ValueError):
        fmt2jpg(b"", 0, 4, PixFormat.GRAYSCALE, 50)