"""Uncompressed and run-length encoded image writers: BMP, TGA and Radiance HDR."""

from __future__ import annotations

import math
import os
from collections.abc import Sequence

__all__ = [
    "ImageFormatError",
    "encode_bmp",
    "encode_tga",
    "encode_hdr",
    "linear_to_rgbe",
    "write_bmp",
    "write_tga",
    "write_hdr",
]

_HDR_HEADER = b"#?RADIANCE\n# Written by tareas\nFORMAT=32-bit_rle_rgbe\n"
_BMP_BACKGROUND = (255, 0, 255)


class ImageFormatError(ValueError):
    """Raised when image dimensions, channel count or pixel data are unusable."""


def _pack(fmt: str, *values: int) -> bytes:
    """Pack little-endian integers; '1', '2' and '4' give the field widths."""
    sizes = [int(ch) for ch in fmt if ch != " "]
    if len(sizes) != len(values):
        raise ValueError("field count does not match value count")
    out = bytearray()
    for size, value in zip(sizes, values):
        out += (value & ((1 << (8 * size)) - 1)).to_bytes(size, "little")
    return bytes(out)


def _check(width: int, height: int, components: int, data: Sequence) -> None:
    if width < 0 or height < 0:
        raise ImageFormatError(f"invalid dimensions {width}x{height}")
    if components not in (1, 2, 3, 4):
        raise ImageFormatError(f"unsupported channel count {components}")
    if len(data) < width * height * components:
        raise ImageFormatError("pixel data is shorter than width * height * components")


def _trunc_div(numerator: int, denominator: int) -> int:
    quotient = abs(numerator) // denominator
    return quotient if numerator >= 0 else -quotient


def _pixel_bytes(
    pixel: bytes, rgb_dir: int, write_alpha: int, expand_mono: bool
) -> bytes:
    comp = len(pixel)
    out = bytearray()
    if write_alpha < 0:
        out.append(pixel[comp - 1])
    if comp in (1, 2):
        out += bytes((pixel[0],) * 3) if expand_mono else bytes((pixel[0],))
    elif comp == 4 and not write_alpha:
        px = [
            (bg + _trunc_div((pixel[k] - bg) * pixel[3], 255)) & 0xFF
            for k, bg in enumerate(_BMP_BACKGROUND)
        ]
        out += bytes((px[1 - rgb_dir], px[1], px[1 + rgb_dir]))
    else:
        out += bytes((pixel[1 - rgb_dir], pixel[1], pixel[1 + rgb_dir]))
    if write_alpha > 0:
        out.append(pixel[comp - 1])
    return bytes(out)


def _row_order(height: int, bottom_up: bool) -> range:
    return range(height - 1, -1, -1) if bottom_up else range(height)


def _pixels_of_row(data: bytes, row: int, width: int, components: int) -> list[bytes]:
    start = row * width * components
    return [
        data[start + i * components : start + (i + 1) * components]
        for i in range(width)
    ]


def _plain_pixels(
    width: int,
    height: int,
    components: int,
    data: bytes,
    *,
    rgb_dir: int,
    bottom_up: bool,
    write_alpha: int,
    pad: int,
    expand_mono: bool,
) -> bytes:
    out = bytearray()
    for row in _row_order(height, bottom_up):
        for pixel in _pixels_of_row(data, row, width, components):
            out += _pixel_bytes(pixel, rgb_dir, write_alpha, expand_mono)
        out += bytes(pad)
    return bytes(out)


def encode_bmp(
    width: int, height: int, components: int, data: bytes, flip: bool = False
) -> bytes:
    """Encode 8-bit interleaved pixels as a BMP file (24-bit, or 32-bit with alpha)."""
    _check(width, height, components, data)
    data = bytes(data[: width * height * components])
    bottom_up = not flip
    if components != 4:
        pad = (-width * 3) & 3
        header = _pack(
            "11 4 22 4" "4 44 22 444444",
            ord("B"), ord("M"), 14 + 40 + (width * 3 + pad) * height, 0, 0, 14 + 40,
            40, width, height, 1, 24, 0, 0, 0, 0, 0, 0,
        )
        body = _plain_pixels(
            width, height, components, data,
            rgb_dir=-1, bottom_up=bottom_up, write_alpha=0, pad=pad, expand_mono=True,
        )
    else:
        header = _pack(
            "11 4 22 4" "4 44 22 444444 4444 4 444 444 444 444",
            ord("B"), ord("M"), 14 + 108 + width * height * 4, 0, 0, 14 + 108,
            108, width, height, 1, 32, 3, 0, 0, 0, 0, 0,
            0xFF0000, 0xFF00, 0xFF, 0xFF000000,
            0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0,
        )
        body = _plain_pixels(
            width, height, components, data,
            rgb_dir=-1, bottom_up=bottom_up, write_alpha=1, pad=0, expand_mono=True,
        )
    return header + body


def _tga_rle_row(pixels: list[bytes], has_alpha: int) -> bytes:
    out = bytearray()
    width = len(pixels)
    i = 0
    while i < width:
        length = 1
        differ = True
        if i < width - 1:
            length = 2
            differ = pixels[i] != pixels[i + 1]
            if differ:
                for k in range(i + 2, width):
                    if length >= 128:
                        break
                    if pixels[k - 2] != pixels[k]:
                        length += 1
                    else:
                        length -= 1
                        break
            else:
                for k in range(i + 2, width):
                    if length >= 128:
                        break
                    if pixels[i] == pixels[k]:
                        length += 1
                    else:
                        break
        if differ:
            out.append((length - 1) & 0xFF)
            for pixel in pixels[i : i + length]:
                out += _pixel_bytes(pixel, -1, has_alpha, False)
        else:
            out.append((length - 129) & 0xFF)
            out += _pixel_bytes(pixels[i], -1, has_alpha, False)
        i += length
    return bytes(out)


def encode_tga(
    width: int,
    height: int,
    components: int,
    data: bytes,
    rle: bool = True,
    flip: bool = False,
) -> bytes:
    """Encode 8-bit interleaved pixels as a TGA file, run-length encoded by default."""
    _check(width, height, components, data)
    data = bytes(data[: width * height * components])
    has_alpha = 1 if components in (2, 4) else 0
    colorbytes = components - 1 if has_alpha else components
    image_type = 3 if colorbytes < 2 else 2
    bits = (colorbytes + has_alpha) * 8
    if not rle:
        header = _pack(
            "111 221 2222 11",
            0, 0, image_type, 0, 0, 0, 0, 0, width, height, bits, has_alpha * 8,
        )
        return header + _plain_pixels(
            width, height, components, data,
            rgb_dir=-1, bottom_up=not flip, write_alpha=has_alpha, pad=0,
            expand_mono=False,
        )
    header = _pack(
        "111 221 2222 11",
        0, 0, image_type + 8, 0, 0, 0, 0, 0, width, height, bits, has_alpha * 8,
    )
    body = b"".join(
        _tga_rle_row(_pixels_of_row(data, row, width, components), has_alpha)
        for row in _row_order(height, bottom_up=not flip)
    )
    return header + body


def linear_to_rgbe(red: float, green: float, blue: float) -> tuple[int, int, int, int]:
    """Convert a linear colour to shared-exponent RGBE bytes."""
    maxcomp = max(red, max(green, blue))
    if maxcomp < 1e-32:
        return (0, 0, 0, 0)
    mantissa, exponent = math.frexp(maxcomp)
    normalize = mantissa * 256.0 / maxcomp
    return (
        int(red * normalize) & 0xFF,
        int(green * normalize) & 0xFF,
        int(blue * normalize) & 0xFF,
        (exponent + 128) & 0xFF,
    )


def _hdr_pixel(scanline: Sequence[float], x: int, components: int) -> tuple[int, ...]:
    base = x * components
    if components >= 3:
        return linear_to_rgbe(scanline[base], scanline[base + 1], scanline[base + 2])
    value = scanline[base]
    return linear_to_rgbe(value, value, value)


def _hdr_rle_channel(channel: bytes) -> bytes:
    out = bytearray()
    width = len(channel)
    x = 0
    while x < width:
        r = x
        while r + 2 < width:
            if channel[r] == channel[r + 1] == channel[r + 2]:
                break
            r += 1
        if r + 2 >= width:
            r = width
        while x < r:
            length = min(r - x, 128)
            out.append(length)
            out += channel[x : x + length]
            x += length
        if r + 2 < width:
            while r < width and channel[r] == channel[x]:
                r += 1
            while x < r:
                length = min(r - x, 127)
                out += bytes((length + 128, channel[x]))
                x += length
    return bytes(out)


def _hdr_scanline(scanline: Sequence[float], width: int, components: int) -> bytes:
    pixels = [_hdr_pixel(scanline, x, components) for x in range(width)]
    if width < 8 or width >= 32768:
        return b"".join(bytes(p) for p in pixels)
    out = bytearray((2, 2, (width & 0xFF00) >> 8, width & 0x00FF))
    for channel in range(4):
        out += _hdr_rle_channel(bytes(p[channel] for p in pixels))
    return bytes(out)


def encode_hdr(
    width: int,
    height: int,
    components: int,
    data: Sequence[float] | None,
    flip: bool = False,
) -> bytes:
    """Encode linear float pixels as a Radiance RGBE (.hdr) file."""
    if height <= 0 or width <= 0 or data is None:
        raise ImageFormatError("HDR images need positive dimensions and pixel data")
    _check(width, height, components, data)
    out = bytearray(_HDR_HEADER)
    out += f"EXPOSURE=          1.0000000000000\n\n-Y {height} +X {width}\n".encode("ascii")
    row_length = width * components
    for i in range(height):
        row = height - 1 - i if flip else i
        scanline = data[row * row_length : (row + 1) * row_length]
        out += _hdr_scanline(scanline, width, components)
    return bytes(out)


def _write(path: str | os.PathLike, payload: bytes) -> None:
    with open(path, "wb") as handle:
        handle.write(payload)


def write_bmp(path, width: int, height: int, components: int, data: bytes) -> None:
    """Write pixels to a BMP file."""
    _write(path, encode_bmp(width, height, components, data))


def write_tga(path, width: int, height: int, components: int, data: bytes) -> None:
    """Write pixels to a run-length encoded TGA file."""
    _write(path, encode_tga(width, height, components, data))


def write_hdr(path, width: int, height: int, components: int, data: Sequence[float]) -> None:
    """Write linear float pixels to a Radiance HDR file."""
    _write(path, encode_hdr(width, height, components, data))