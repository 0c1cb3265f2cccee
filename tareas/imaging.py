"""Pixel operations on RGB images: mirroring, rotation, attenuation, thresholding and ASCII art."""

from __future__ import annotations

import argparse
import math
import os
import struct
import sys
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from PIL import Image

from tareas.png import write_png
from tareas.rawformats import ImageFormatError

__all__ = [
    "ASCII_RAMP",
    "RgbImage",
    "load",
    "save",
    "mirror",
    "rotate",
    "attenuate",
    "threshold",
    "to_ascii",
    "save_ascii",
    "main",
]

CHANNELS = 3
ASCII_RAMP = ".,-~:;=!*#$@"
_LUMINANCE_STEP = 21.25

Pixel = tuple[int, int, int]


@dataclass(frozen=True)
class RgbImage:
    """An 8-bit RGB image stored row by row, top to bottom."""

    width: int
    height: int
    data: bytes

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ImageFormatError(f"invalid dimensions {self.width}x{self.height}")
        object.__setattr__(self, "data", bytes(self.data))
        if len(self.data) != self.width * self.height * CHANNELS:
            raise ImageFormatError("pixel data does not match width * height * 3")

    def pixel(self, x: int, y: int) -> Pixel:
        """Return the (red, green, blue) value at column ``x`` and row ``y``."""
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"pixel ({x}, {y}) is outside the image")
        start = (y * self.width + x) * CHANNELS
        red, green, blue = self.data[start : start + CHANNELS]
        return red, green, blue

    def _pixels(self) -> Iterator[Pixel]:
        view = memoryview(self.data)
        for start in range(0, len(view), CHANNELS):
            red, green, blue = view[start : start + CHANNELS]
            yield red, green, blue


def _from_pixels(width: int, height: int, pixels: Iterable[Pixel]) -> RgbImage:
    return RgbImage(width, height, bytes(channel for pixel in pixels for channel in pixel))


def load(path: str | os.PathLike) -> RgbImage:
    """Read an image file and convert it to three-channel RGB."""
    try:
        with Image.open(path) as picture:
            rgb = picture.convert("RGB")
            return RgbImage(rgb.width, rgb.height, rgb.tobytes())
    except OSError as exc:
        raise ImageFormatError(f"could not load image {os.fspath(path)!r}") from exc


def save(image: RgbImage, path: str | os.PathLike) -> None:
    """Write the image as a PNG file."""
    write_png(path, image.width, image.height, CHANNELS, image.data)


def mirror(image: RgbImage) -> RgbImage:
    """Reflect the image about its vertical centre line."""
    pixels = (
        image.pixel(image.width - 1 - x, y)
        for y in range(image.height)
        for x in range(image.width)
    )
    return _from_pixels(image.width, image.height, pixels)


def rotate(image: RgbImage) -> RgbImage:
    """Rotate the image 90 degrees clockwise; width and height swap."""
    pixels = (
        image.pixel(ny, image.height - 1 - nx)
        for ny in range(image.width)
        for nx in range(image.height)
    )
    return _from_pixels(image.height, image.width, pixels)


def attenuate(image: RgbImage, factor: float) -> RgbImage:
    """Scale every channel by ``factor`` (between 0 and 1), truncating the result."""
    if not 0.0 <= factor <= 1.0:
        raise ValueError(f"attenuation must lie between 0 and 1, got {factor}")
    return RgbImage(image.width, image.height, bytes(int(v * factor) for v in image.data))


def threshold(image: RgbImage, limit: int) -> RgbImage:
    """Turn pixels whose channel average is below ``limit`` black and the rest white."""
    black = (0, 0, 0)
    white = (255, 255, 255)
    pixels = (black if sum(p) // 3 < limit else white for p in image._pixels())
    return _from_pixels(image.width, image.height, pixels)


def _as_float32(value: float) -> float:
    return struct.unpack("f", struct.pack("f", value))[0]


def _glyph(pixel: Pixel) -> str:
    red, green, blue = pixel
    luminance = _as_float32(red * 0.299 + green * 0.587 + blue * 0.114)
    if luminance == 255:
        return " "
    index = min(math.ceil(luminance / _LUMINANCE_STEP), len(ASCII_RAMP) - 1)
    return ASCII_RAMP[index]


def to_ascii(image: RgbImage) -> list[str]:
    """Render each pixel as a character by apparent luminance; one string per row."""
    glyphs = [_glyph(p) for p in image._pixels()]
    return [
        "".join(glyphs[start : start + image.width])
        for start in range(0, len(glyphs), image.width or 1)
    ] if image.width else [""] * image.height


def save_ascii(rows: Iterable[str], path: str | os.PathLike) -> None:
    """Append ASCII-art rows to a text file, one line per row."""
    with open(path, "a", encoding="ascii") as handle:
        for row in rows:
            handle.write(row + "\n")


_OPERATIONS = ("ascii", "mirror", "rotate", "attenuate", "threshold")


def main(argv: list[str] | None = None) -> int:
    """Apply one operation to an image and write the result."""
    parser = argparse.ArgumentParser(
        prog="tareas-imaging", description="Transform an image or render it as ASCII art."
    )
    parser.add_argument("image", nargs="?", default="Pikachu_para_copiar.jpg")
    parser.add_argument("-o", "--operation", choices=_OPERATIONS, default="ascii")
    parser.add_argument("--output", help="output file (default depends on the operation)")
    parser.add_argument("--factor", type=float, default=0.5, help="attenuation factor")
    parser.add_argument("--limit", type=int, default=120, help="threshold limit")
    args = parser.parse_args(argv)

    try:
        image = load(args.image)
    except ImageFormatError:
        print("Error en la carga de la imagen", file=sys.stderr)
        return 1

    if args.operation == "ascii":
        save_ascii(to_ascii(image), args.output or "pikachu.txt")
        return 0

    output = args.output or "Pikachu.png"
    try:
        if args.operation == "mirror":
            result = mirror(image)
        elif args.operation == "rotate":
            result = rotate(image)
        elif args.operation == "attenuate":
            result = attenuate(image, args.factor)
        else:
            result = threshold(image, args.limit)
    except ValueError as exc:
        print(exc, file=sys.stderr)
        return 2
    save(result, output)
    print(f"Imagen guardada:  {output}")
    return 0