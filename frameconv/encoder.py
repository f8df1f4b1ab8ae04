"""Streaming baseline JPEG encoder fed one scanline at a time."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable

from frameconv.jpeg_core import (
    AC_CHROMA_BITS,
    AC_CHROMA_VAL,
    AC_LUM_BITS,
    AC_LUM_VAL,
    DC_CHROMA_BITS,
    DC_CHROMA_VAL,
    DC_LUM_BITS,
    DC_LUM_VAL,
    STD_CHROMA_QUANT,
    STD_LUM_QUANT,
    compute_huffman_table,
    compute_quant_table,
    dct2d,
    quantize,
    rgb_to_y,
    rgb_to_ycc,
    y_to_ycc,
)

_M_SOF0 = 0xC0
_M_DHT = 0xC4
_M_SOI = 0xD8
_M_EOI = 0xD9
_M_SOS = 0xDA
_M_DQT = 0xDB
_M_APP0 = 0xE0

_OUT_BUF_SIZE = 512

# Table slots: 0 = DC luma, 1 = DC chroma, 2 = AC luma, 3 = AC chroma.
_HUFF_SPECS = (
    (DC_LUM_BITS, DC_LUM_VAL),
    (DC_CHROMA_BITS, DC_CHROMA_VAL),
    (AC_LUM_BITS, AC_LUM_VAL),
    (AC_CHROMA_BITS, AC_CHROMA_VAL),
)
_HUFF_TABLES = tuple(compute_huffman_table(bits, vals) for bits, vals in _HUFF_SPECS)


class Subsampling(IntEnum):
    """Chroma subsampling modes; Y_ONLY produces a greyscale image."""

    Y_ONLY = 0
    H1V1 = 1
    H2V1 = 2
    H2V2 = 3


# (luma h, luma v, mcu width, mcu height) for each mode.
_LAYOUT = {
    Subsampling.Y_ONLY: (1, 1, 8, 8),
    Subsampling.H1V1: (1, 1, 8, 8),
    Subsampling.H2V1: (2, 1, 16, 8),
    Subsampling.H2V2: (2, 2, 16, 16),
}


@dataclass
class Params:
    """Compression parameters: quality 1..100 and a subsampling mode."""

    quality: int = 85
    subsampling: Subsampling = Subsampling.H2V2

    def check(self) -> bool:
        """Tell whether the parameters are usable."""
        if not 1 <= self.quality <= 100:
            return False
        try:
            Subsampling(self.subsampling)
        except ValueError:
            return False
        return True


class OutputStream(ABC):
    """Destination for encoded bytes."""

    @abstractmethod
    def put_buf(self, data: bytes | None) -> bool:
        """Accept a chunk of output, or None at the end of the image; return False on failure."""


class JpegEncoder:
    """Encodes an image row by row into an OutputStream."""

    def __init__(
        self,
        stream: OutputStream,
        width: int,
        height: int,
        src_channels: int,
        params: Params | None = None,
    ) -> None:
        params = Params() if params is None else params
        if stream is None:
            raise ValueError("an output stream is required")
        if width < 1 or height < 1:
            raise ValueError(f"image size must be positive, got {width}x{height}")
        if src_channels not in (1, 3, 4):
            raise ValueError(f"source channels must be 1, 3 or 4, got {src_channels}")
        if not params.check():
            raise ValueError(f"invalid compression parameters: {params}")

        self._stream = stream
        self._params = params
        self._ok = True
        self._pass_num = 0
        self._open(width, height, src_channels)
        if not self._ok:
            raise OSError("output stream rejected the image header")

    def __enter__(self) -> JpegEncoder:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.deinit()

    # -- setup -------------------------------------------------------------

    def _open(self, width: int, height: int, src_channels: int) -> None:
        mode = Subsampling(self._params.subsampling)
        self._components = 1 if mode is Subsampling.Y_ONLY else 3
        h_samp, v_samp, self._mcu_x, self._mcu_y = _LAYOUT[mode]
        self._h_samp = [h_samp, 1, 1][: self._components]
        self._v_samp = [v_samp, 1, 1][: self._components]

        self._width = width
        self._height = height
        self._bpp = src_channels
        self._x_mcu = (width + self._mcu_x - 1) & ~(self._mcu_x - 1)
        self._bpl_mcu = self._x_mcu * self._components
        self._mcus_per_row = self._x_mcu // self._mcu_x
        self._mcu_lines: list[bytes] = [bytes(self._bpl_mcu)] * self._mcu_y
        self._mcu_y_ofs = 0

        self._quant = [
            compute_quant_table(self._params.quality, STD_LUM_QUANT),
            compute_quant_table(self._params.quality, STD_CHROMA_QUANT),
        ]

        self._out = bytearray()
        self._bit_buffer = 0
        self._bits_in = 0
        self._last_dc = [0, 0, 0]
        self._pass_num = 2

        self._emit_marker(_M_SOI)
        self._emit_jfif_app0()
        self._emit_dqt()
        self._emit_sof()
        self._emit_dhts()
        self._emit_sos()

    # -- byte output -------------------------------------------------------

    def _flush(self) -> None:
        if self._out:
            self._ok = self._ok and bool(self._stream.put_buf(bytes(self._out)))
        self._out = bytearray()

    def _emit_byte(self, value: int) -> None:
        self._out.append(value & 0xFF)
        if len(self._out) == _OUT_BUF_SIZE:
            self._flush()

    def _emit_bytes(self, values: Iterable[int]) -> None:
        for value in values:
            self._emit_byte(value)

    def _emit_word(self, value: int) -> None:
        self._emit_byte(value >> 8)
        self._emit_byte(value & 0xFF)

    def _emit_marker(self, marker: int) -> None:
        self._emit_byte(0xFF)
        self._emit_byte(marker)

    def _put_bits(self, bits: int, length: int) -> None:
        self._bits_in += length
        self._bit_buffer = (self._bit_buffer | (bits << (24 - self._bits_in))) & 0xFFFFFFFF
        while self._bits_in >= 8:
            c = (self._bit_buffer >> 16) & 0xFF
            self._emit_byte(c)
            if c == 0xFF:
                self._emit_byte(0)
            self._bit_buffer = (self._bit_buffer << 8) & 0xFFFFFFFF
            self._bits_in -= 8

    # -- headers -----------------------------------------------------------

    def _emit_jfif_app0(self) -> None:
        self._emit_marker(_M_APP0)
        self._emit_word(16)
        self._emit_bytes(b"JFIF\x00")
        self._emit_bytes((1, 1, 0))
        self._emit_word(1)
        self._emit_word(1)
        self._emit_bytes((0, 0))

    def _emit_dqt(self) -> None:
        for index in range(2 if self._components == 3 else 1):
            self._emit_marker(_M_DQT)
            self._emit_word(64 + 1 + 2)
            self._emit_byte(index)
            self._emit_bytes(self._quant[index])

    def _emit_sof(self) -> None:
        self._emit_marker(_M_SOF0)
        self._emit_word(3 * self._components + 2 + 5 + 1)
        self._emit_byte(8)
        self._emit_word(self._height)
        self._emit_word(self._width)
        self._emit_byte(self._components)
        for i in range(self._components):
            self._emit_byte(i + 1)
            self._emit_byte((self._h_samp[i] << 4) + self._v_samp[i])
            self._emit_byte(1 if i > 0 else 0)

    def _emit_dht(self, slot: int, index: int, ac: bool) -> None:
        bits, values = _HUFF_SPECS[slot]
        length = sum(bits[1:17])
        self._emit_marker(_M_DHT)
        self._emit_word(length + 2 + 1 + 16)
        self._emit_byte(index + (16 if ac else 0))
        self._emit_bytes(bits[1:17])
        self._emit_bytes(values[:length])

    def _emit_dhts(self) -> None:
        self._emit_dht(0, 0, False)
        self._emit_dht(2, 0, True)
        if self._components == 3:
            self._emit_dht(1, 1, False)
            self._emit_dht(3, 1, True)

    def _emit_sos(self) -> None:
        self._emit_marker(_M_SOS)
        self._emit_word(2 * self._components + 2 + 1 + 3)
        self._emit_byte(self._components)
        for i in range(self._components):
            self._emit_byte(i + 1)
            self._emit_byte(0x00 if i == 0 else 0x11)
        self._emit_bytes((0, 63, 0))

    # -- block loading -----------------------------------------------------

    def _load_block_8_8_grey(self, x: int) -> list[int]:
        start = x << 3
        return [v - 128 for line in self._mcu_lines[:8] for v in line[start:start + 8]]

    def _load_block_8_8(self, x: int, y: int, c: int) -> list[int]:
        start = x * 24 + c
        rows = self._mcu_lines[y * 8:y * 8 + 8]
        return [v - 128 for line in rows for v in line[start:start + 24:3]]

    def _load_block_16_8(self, x: int, c: int) -> list[int]:
        start = x * 48 + c
        block: list[int] = []
        a, b = 0, 2
        for i in range(0, 16, 2):
            top = self._mcu_lines[i][start:start + 48:3]
            bottom = self._mcu_lines[i + 1][start:start + 48:3]
            for k in range(8):
                total = top[2 * k] + top[2 * k + 1] + bottom[2 * k] + bottom[2 * k + 1]
                block.append(((total + (a if k % 2 == 0 else b)) >> 2) - 128)
            a, b = b, a
        return block

    def _load_block_16_8_8(self, x: int, c: int) -> list[int]:
        start = x * 48 + c
        block: list[int] = []
        for line in self._mcu_lines[:8]:
            samples = line[start:start + 48:3]
            block.extend(((samples[2 * k] + samples[2 * k + 1]) >> 1) - 128 for k in range(8))
        return block

    # -- entropy coding ----------------------------------------------------

    def _code_block(self, block: list[int], component: int) -> None:
        coeffs = quantize(dct2d(block), self._quant[1 if component > 0 else 0])
        dc_table = _HUFF_TABLES[0 if component == 0 else 1]
        ac_table = _HUFF_TABLES[2 if component == 0 else 3]

        diff = coeffs[0] - self._last_dc[component]
        self._last_dc[component] = coeffs[0]
        extra = diff - 1 if diff < 0 else diff
        nbits = abs(diff).bit_length()
        self._put_bits(dc_table.codes[nbits], dc_table.sizes[nbits])
        if nbits:
            self._put_bits(extra & ((1 << nbits) - 1), nbits)

        run_len = 0
        for value in coeffs[1:]:
            if value == 0:
                run_len += 1
                continue
            while run_len >= 16:
                self._put_bits(ac_table.codes[0xF0], ac_table.sizes[0xF0])
                run_len -= 16
            extra = value - 1 if value < 0 else value
            nbits = max(abs(value).bit_length(), 1)
            symbol = (run_len << 4) + nbits
            self._put_bits(ac_table.codes[symbol], ac_table.sizes[symbol])
            self._put_bits(extra & ((1 << nbits) - 1), nbits)
            run_len = 0
        if run_len:
            self._put_bits(ac_table.codes[0], ac_table.sizes[0])

    def _process_mcu_row(self) -> None:
        mode = Subsampling(self._params.subsampling)
        for i in range(self._mcus_per_row):
            if mode is Subsampling.Y_ONLY:
                self._code_block(self._load_block_8_8_grey(i), 0)
            elif mode is Subsampling.H1V1:
                for c in range(3):
                    self._code_block(self._load_block_8_8(i, 0, c), c)
            elif mode is Subsampling.H2V1:
                self._code_block(self._load_block_8_8(i * 2, 0, 0), 0)
                self._code_block(self._load_block_8_8(i * 2 + 1, 0, 0), 0)
                self._code_block(self._load_block_16_8_8(i, 1), 1)
                self._code_block(self._load_block_16_8_8(i, 2), 2)
            else:
                for y in (0, 1):
                    self._code_block(self._load_block_8_8(i * 2, y, 0), 0)
                    self._code_block(self._load_block_8_8(i * 2 + 1, y, 0), 0)
                self._code_block(self._load_block_16_8(i, 1), 1)
                self._code_block(self._load_block_16_8(i, 2), 2)

    # -- scanlines ---------------------------------------------------------

    def _load_mcu(self, scanline: memoryview) -> None:
        width = self._width
        if self._components == 1:
            row = rgb_to_y(scanline[:width * 3]) if self._bpp == 3 else bytes(scanline[:width])
            row += row[-1:] * (self._x_mcu - width)
        else:
            row = rgb_to_ycc(scanline[:width * 3]) if self._bpp == 3 else y_to_ycc(scanline[:width])
            row += row[-3:] * (self._x_mcu - width)
        self._mcu_lines[self._mcu_y_ofs] = row
        self._mcu_y_ofs += 1
        if self._mcu_y_ofs == self._mcu_y:
            self._process_mcu_row()
            self._mcu_y_ofs = 0

    def _finish(self) -> None:
        if self._mcu_y_ofs:
            last = self._mcu_lines[self._mcu_y_ofs - 1]
            for i in range(self._mcu_y_ofs, self._mcu_y):
                self._mcu_lines[i] = last
            self._process_mcu_row()
        self._put_bits(0x7F, 7)
        self._emit_marker(_M_EOI)
        self._flush()
        self._ok = self._ok and bool(self._stream.put_buf(None))
        self._pass_num += 1

    def process_scanline(self, scanline: bytes | bytearray | memoryview | None) -> None:
        """Feed one row of width * src_channels bytes, or None to finish the image."""
        if not 1 <= self._pass_num <= 2:
            raise RuntimeError("encoder is not accepting scanlines")
        if not self._ok:
            raise OSError("output stream rejected data")
        if scanline is None:
            self._finish()
        else:
            view = memoryview(scanline).cast("B")
            needed = self._width * self._bpp
            if len(view) < needed:
                raise ValueError(f"scanline holds {len(view)} bytes, {needed} required")
            self._load_mcu(view)
        if not self._ok:
            raise OSError("output stream rejected data")

    def deinit(self) -> None:
        """Release the row buffers; the encoder accepts no more scanlines."""
        self._mcu_lines = []
        self._pass_num = 0
        self._ok = True