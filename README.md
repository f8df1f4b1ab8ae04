# frameconv

This package converts raw camera frames into baseline JPEG and BMP files. It
is written in pure Python.

The supported input formats are listed in `frameconv.pixels.PixFormat`:
RGB565, RGB888, YUV422 (YUYV) and 8-bit grayscale. The package needs nothing
outside the standard library.

## Installation

```
pip install .
```

## Encoding to JPEG

```python
from frameconv.pixels import PixFormat
from frameconv.to_jpg import fmt2jpg

width, height = 64, 48
frame = bytes(width * height * 2)          # RGB565, high byte first
jpeg = fmt2jpg(frame, width, height, PixFormat.RGB565, 80)
with open("frame.jpg", "wb") as f:
    f.write(jpeg)
```

Quality is clamped to the range 1 to 100. Colour frames are encoded with H2V2
chroma subsampling. Grayscale frames are encoded with the luminance component
only.

`fmt2jpg` collects its output in a `MemoryStream` of 128 KiB. Any output past
that size is dropped without an error.

Both functions raise `ValueError` in these cases:

- the format cannot be encoded;
- the source buffer is too short for the frame;
- the image size is not positive.

### Streaming the output

`fmt2jpg_cb` streams the output instead of keeping it in memory. It wraps the
callback in a `CallbackStream`. The callback is called as `cb(index, data)`:

- `index` is the number of bytes accepted so far.
- `data` is a chunk of output, or `None` once the image is complete.
- The return value is the number of bytes the callback consumed.

`fmt2jpg_cb` returns the total of those counts.

```python
from frameconv.to_jpg import fmt2jpg_cb

chunks = []

def sink(index, data):
    if data is None:
        return 0
    chunks.append(data)
    return len(data)

size = fmt2jpg_cb(frame, width, height, PixFormat.RGB565, 80, sink)
```

### Converting single rows

`convert_line_format(src, fmt, width, line)` returns one row of a frame in
the form the encoder takes: luma bytes for grayscale frames, RGB triples for
the other formats.

## The encoder

`frameconv.encoder.JpegEncoder(stream, width, height, src_channels, params)`
writes to any `OutputStream` subclass, that is, any class that implements
`put_buf(data)`.

- `src_channels` must be 1, 3 or 4.
- `params` is a `Params` instance holding `quality` (1–100, default 85) and a
  `Subsampling` mode (`Y_ONLY`, `H1V1`, `H2V1` or `H2V2`, default `H2V2`).

To encode an image:

1. Call `process_scanline(row)` once for each row.
2. Call `process_scanline(None)` to finish the image.

The encoder raises these errors:

- `ValueError` for bad arguments or a short scanline.
- `RuntimeError` for a scanline after the encoder has been closed.
- `OSError` when the stream's `put_buf` returns `False`.

The encoder works as a context manager. On exit it calls `deinit()`.

## Converting to BMP and 24-bit pixels

```python
from frameconv.to_bmp import fmt2bmp, fmt2rgb888

bmp = fmt2bmp(frame, width, height, PixFormat.RGB565)
pixels = fmt2rgb888(frame, PixFormat.RGB565)
```

`fmt2bmp` writes BMP files top-down.

- Colour frames become 24-bit images.
- Grayscale frames become 8-bit images with a grey palette.

`fmt2rgb888` expands a whole frame to three bytes per pixel, in the byte
order a BMP stores them. RGB888 input is returned unchanged.

## Building blocks

- `frameconv.pixels.yuv2rgb(y, u, v)` converts a single pixel from YUV to a
  clamped `(r, g, b)` tuple. It works from a lookup table.
- `frameconv.jpeg_core` contains:
  - the colour transforms `rgb_to_ycc`, `rgb_to_y` and `y_to_ycc`;
  - the integer forward DCT `dct2d`;
  - `compute_quant_table` and `compute_huffman_table`;
  - `quantize`;
  - the standard JPEG tables.

## What it does not do

- It does not decode JPEG. `fmt2bmp` and `fmt2rgb888` raise `ValueError` for
  `PixFormat.JPEG` frames.
- It does not talk to cameras or capture frames. It converts buffers that you
  already hold.
- It has no command-line tool.

## Running the tests

```
pip install .[test]
pytest
```