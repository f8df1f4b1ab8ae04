"""Encode raw camera frames (greyscale, RGB888, RGB565, YUV422) as JPEG."""

from __future__ import annotations

from typing import Callable, Optional

from frameconv.encoder import JpegEncoder, OutputStream, Params, Subsampling
from frameconv.pixels import PixFormat, yuv2rgb

JpegOutCallback = Callable[[int, Optional[bytes]], int]

DEFAULT_JPEG_BUFFER = 128 * 1024

_BYTES_PER_PIXEL = {
    PixFormat.GRAYSCALE: 1,
    PixFormat.RGB888: 3,
    PixFormat.RGB565: 2,
    PixFormat.YUV422: 2,
}


class CallbackStream(OutputStream):
    """Hands every chunk of encoded output to a callback.

    The callback is called as ``cb(index, data)`` where ``index`` is the number
    of bytes accepted so far and ``data`` is the chunk, or None once the image
    is complete. It returns how many bytes it accepted.
    """

    def __init__(self, cb: JpegOutCallback) -> None:
        self._cb = cb
        self._index = 0

    def put_buf(self, data: bytes | None) -> bool:
        self._index += self._cb(self._index, data)
        return True

    def __len__(self) -> int:
        return self._index


class MemoryStream(OutputStream):
    """Collects encoded output in memory, silently dropping what exceeds ``max_len``."""

    def __init__(self, max_len: int = DEFAULT_JPEG_BUFFER) -> None:
        if max_len < 0:
            raise ValueError(f"buffer size must not be negative, got {max_len}")
        self._max_len = max_len
        self._buf = bytearray()

    def put_buf(self, data: bytes | None) -> bool:
        if data is None:
            return True
        room = self._max_len - len(self._buf)
        self._buf += bytes(data[:room])
        return True

    def __len__(self) -> int:
        return len(self._buf)

    def __bytes__(self) -> bytes:
        return bytes(self._buf)


def _row(src: bytes | bytearray | memoryview, start: int, length: int) -> bytes:
    row = bytes(memoryview(src).cast("B")[start:start + length])
    if len(row) < length:
        raise ValueError(f"source buffer too short for a {length}-byte row at offset {start}")
    return row


def convert_line_format(
    src: bytes | bytearray | memoryview, fmt: PixFormat, width: int, line: int
) -> bytes:
    """Return row ``line`` of a frame as encoder input: luma bytes for greyscale, RGB triples otherwise."""
    if fmt is PixFormat.GRAYSCALE:
        return _row(src, line * width, width)
    if fmt is PixFormat.RGB888:
        length = width * 3
        row = _row(src, line * length, length)
        out = bytearray(length)
        out[0::3] = row[2::3]
        out[1::3] = row[1::3]
        out[2::3] = row[0::3]
        return bytes(out)
    if fmt is PixFormat.RGB565:
        length = width * 2
        row = _row(src, line * length, length)
        out = bytearray()
        for hi, lo in zip(row[0::2], row[1::2]):
            out += bytes((hi & 0xF8, (hi & 0x07) << 5 | (lo & 0xE0) >> 3, (lo & 0x1F) << 3))
        return bytes(out)
    if fmt is PixFormat.YUV422:
        length = width * 2
        start = line * length
        _row(src, start, length)
        pairs = (width + 1) // 2
        row = bytes(memoryview(src).cast("B")[start:start + pairs * 4]).ljust(pairs * 4, b"\x00")
        out = bytearray()
        for i in range(0, len(row), 4):
            y0, u, y1, v = row[i:i + 4]
            out += bytes(yuv2rgb(y0, u, v))
            out += bytes(yuv2rgb(y1, u, v))
        return bytes(out[:width * 3])
    raise ValueError(f"cannot encode frames in format {fmt}")


def _convert_image(
    src: bytes | bytearray | memoryview,
    width: int,
    height: int,
    fmt: PixFormat,
    quality: int,
    stream: OutputStream,
) -> None:
    if fmt not in _BYTES_PER_PIXEL:
        raise ValueError(f"cannot encode frames in format {fmt}")
    needed = max(width, 0) * max(height, 0) * _BYTES_PER_PIXEL[fmt]
    if len(memoryview(src).cast("B")) < needed:
        raise ValueError(f"source buffer holds fewer than the {needed} bytes the frame needs")

    if fmt is PixFormat.GRAYSCALE:
        channels, subsampling = 1, Subsampling.Y_ONLY
    else:
        channels, subsampling = 3, Subsampling.H2V2
    quality = min(max(quality, 1), 100)

    params = Params(quality=quality, subsampling=subsampling)
    with JpegEncoder(stream, width, height, channels, params) as encoder:
        for line in range(height):
            encoder.process_scanline(convert_line_format(src, fmt, width, line))
        encoder.process_scanline(None)


def fmt2jpg_cb(
    src: bytes | bytearray | memoryview,
    width: int,
    height: int,
    fmt: PixFormat,
    quality: int,
    cb: JpegOutCallback,
) -> int:
    """Encode a frame, passing output chunks to ``cb``; return the byte count it reported."""
    stream = CallbackStream(cb)
    _convert_image(src, width, height, fmt, quality, stream)
    return len(stream)


def fmt2jpg(
    src: bytes | bytearray | memoryview,
    width: int,
    height: int,
    fmt: PixFormat,
    quality: int,
) -> bytes:
    """Encode a frame to JPEG bytes, truncated to a 128 KiB buffer."""
    stream = MemoryStream(DEFAULT_JPEG_BUFFER)
    _convert_image(src, width, height, fmt, quality, stream)
    return bytes(stream)