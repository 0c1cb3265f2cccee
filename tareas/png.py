"""PNG writer with its own DEFLATE compressor, row filters and chunk framing."""

from __future__ import annotations

import os
import zlib
from collections.abc import Sequence

from tareas.rawformats import ImageFormatError

__all__ = [
    "crc32",
    "adler32",
    "paeth",
    "zlib_compress",
    "encode_png",
    "write_png",
]

PNG_SIGNATURE = bytes((137, 80, 78, 71, 13, 10, 26, 10))

_ZHASH = 16384
_MASK32 = 0xFFFFFFFF
_MAX_MATCH = 258

_LENGTH_BASE = (
    3, 4, 5, 6, 7, 8, 9, 10, 11, 13, 15, 17, 19, 23, 27, 31, 35, 43, 51, 59,
    67, 83, 99, 115, 131, 163, 195, 227, 258, 259,
)
_LENGTH_EXTRA = (
    0, 0, 0, 0, 0, 0, 0, 0, 1, 1, 1, 1, 2, 2, 2, 2, 3, 3, 3, 3,
    4, 4, 4, 4, 5, 5, 5, 5, 0,
)
_DIST_BASE = (
    1, 2, 3, 4, 5, 7, 9, 13, 17, 25, 33, 49, 65, 97, 129, 193, 257, 385, 513,
    769, 1025, 1537, 2049, 3073, 4097, 6145, 8193, 12289, 16385, 24577, 32768,
)
_DIST_EXTRA = (
    0, 0, 0, 0, 1, 1, 2, 2, 3, 3, 4, 4, 5, 5, 6, 6, 7, 7, 8, 8,
    9, 9, 10, 10, 11, 11, 12, 12, 13, 13,
)

# PNG colour type for 1..4 interleaved channels: grey, grey+alpha, RGB, RGBA.
_COLOUR_TYPES = {1: 0, 2: 4, 3: 2, 4: 6}


def crc32(data: bytes) -> int:
    """Return the CRC-32 used by PNG chunks."""
    return zlib.crc32(bytes(data)) & _MASK32


def adler32(data: bytes) -> int:
    """Return the Adler-32 checksum that ends a zlib stream."""
    return zlib.adler32(bytes(data)) & _MASK32


def paeth(a: int, b: int, c: int) -> int:
    """Paeth predictor: whichever of left, up and up-left is nearest to a + b - c."""
    p = a + b - c
    pa, pb, pc = abs(p - a), abs(p - b), abs(p - c)
    if pa <= pb and pa <= pc:
        return a & 0xFF
    if pb <= pc:
        return b & 0xFF
    return c & 0xFF


def _bit_reverse(code: int, bits: int) -> int:
    result = 0
    for _ in range(bits):
        result = (result << 1) | (code & 1)
        code >>= 1
    return result


class _BitWriter:
    """Least-significant-bit-first writer appending whole bytes to a bytearray."""

    def __init__(self, out: bytearray) -> None:
        self.out = out
        self.buffer = 0
        self.count = 0

    def add(self, code: int, bits: int) -> None:
        self.buffer |= code << self.count
        self.count += bits
        while self.count >= 8:
            self.out.append(self.buffer & 0xFF)
            self.buffer >>= 8
            self.count -= 8

    def _huffman(self, code: int, bits: int) -> None:
        self.add(_bit_reverse(code, bits), bits)

    def symbol(self, n: int) -> None:
        """Emit a literal/length symbol with the fixed Huffman code."""
        if n <= 143:
            self._huffman(0x30 + n, 8)
        elif n <= 255:
            self._huffman(0x190 + n - 144, 9)
        elif n <= 279:
            self._huffman(n - 256, 7)
        else:
            self._huffman(0xC0 + n - 280, 8)

    def pad_to_byte(self) -> None:
        while self.count:
            self.add(0, 1)


def _zhash(data: bytes, i: int) -> int:
    h = data[i] + (data[i + 1] << 8) + (data[i + 2] << 16)
    h ^= (h << 3) & _MASK32
    h = (h + (h >> 5)) & _MASK32
    h ^= (h << 4) & _MASK32
    h = (h + (h >> 17)) & _MASK32
    h ^= (h << 25) & _MASK32
    h = (h + (h >> 6)) & _MASK32
    return h & (_ZHASH - 1)


def _match_length(data: bytes, a: int, b: int, limit: int) -> int:
    limit = min(limit, _MAX_MATCH)
    length = 0
    while length < limit and data[a + length] == data[b + length]:
        length += 1
    return length


def _stored_blocks(data: bytes) -> bytes:
    out = bytearray()
    position = 0
    while position < len(data):
        block = min(len(data) - position, 32767)
        final = 1 if len(data) - position == block else 0
        out += bytes((final, block & 0xFF, (block >> 8) & 0xFF,
                      ~block & 0xFF, (~block >> 8) & 0xFF))
        out += data[position : position + block]
        position += block
    return bytes(out)


def zlib_compress(data: bytes, quality: int = 8) -> bytes:
    """Compress to a zlib stream with fixed Huffman codes and hashed LZ77 matching.

    ``quality`` bounds the hash chain length (at least 5). Falls back to stored
    blocks when compression would expand the data.
    """
    data = bytes(data)
    data_len = len(data)
    quality = max(quality, 5)
    out = bytearray((0x78, 0x5E))
    bits = _BitWriter(out)
    bits.add(1, 1)  # final block
    bits.add(1, 2)  # fixed Huffman codes

    table: dict[int, list[int]] = {}
    i = 0
    while i < data_len - 3:
        h = _zhash(data, i)
        best = 3
        best_loc: int | None = None
        for candidate in table.get(h, ()):
            if candidate > i - 32768:
                d = _match_length(data, candidate, i, data_len - i)
                if d >= best:
                    best, best_loc = d, candidate
        chain = table.setdefault(h, [])
        if len(chain) == 2 * quality:
            chain = table[h] = chain[quality:]
        chain.append(i)

        if best_loc is not None:
            # Lazy matching: prefer a literal if the next byte starts a longer match.
            for candidate in table.get(_zhash(data, i + 1), ()):
                if candidate > i - 32767:
                    if _match_length(data, candidate, i + 1, data_len - i - 1) > best:
                        best_loc = None
                        break

        if best_loc is not None:
            distance = i - best_loc
            j = 0
            while best > _LENGTH_BASE[j + 1] - 1:
                j += 1
            bits.symbol(j + 257)
            if _LENGTH_EXTRA[j]:
                bits.add(best - _LENGTH_BASE[j], _LENGTH_EXTRA[j])
            j = 0
            while distance > _DIST_BASE[j + 1] - 1:
                j += 1
            bits.add(_bit_reverse(j, 5), 5)
            if _DIST_EXTRA[j]:
                bits.add(distance - _DIST_BASE[j], _DIST_EXTRA[j])
            i += best
        else:
            bits.symbol(data[i])
            i += 1

    for byte in data[i:]:
        bits.symbol(byte)
    bits.symbol(256)
    bits.pad_to_byte()

    if len(out) > data_len + 2 + ((data_len + 32766) // 32767) * 5:
        del out[2:]
        out += _stored_blocks(data)

    out += adler32(data).to_bytes(4, "big")
    return bytes(out)


def _filter_line(current: bytes, prior: bytes | None, n: int, kind: int) -> bytes:
    """Apply one filter; kinds 5 and 6 are average and Paeth with an all-zero prior row."""
    if kind == 0:
        return bytes(current)
    out = bytearray(len(current))
    for i, value in enumerate(current):
        left = current[i - n] if i >= n else 0
        if kind == 1:
            predicted = left
        elif kind == 2:
            predicted = prior[i]
        elif kind == 3:
            predicted = (left + prior[i]) >> 1
        elif kind == 4:
            up_left = prior[i - n] if i >= n else 0
            predicted = paeth(left, prior[i], up_left)
        elif kind == 5:
            predicted = left >> 1
        else:
            predicted = paeth(left, 0, 0)
        out[i] = (value - predicted) & 0xFF
    return bytes(out)


def _entropy(line: bytes) -> int:
    return sum(v if v < 128 else 256 - v for v in line)


def _chunk(tag: bytes, body: bytes) -> bytes:
    return (
        len(body).to_bytes(4, "big")
        + tag
        + body
        + crc32(tag + body).to_bytes(4, "big")
    )


def encode_png(
    pixels: bytes,
    width: int,
    height: int,
    components: int,
    stride: int = 0,
    compression_level: int = 8,
    force_filter: int = -1,
    flip: bool = False,
) -> bytes:
    """Encode 8-bit interleaved pixels as a PNG file.

    ``stride`` is the byte distance between rows (0 means tightly packed).
    ``force_filter`` 0..4 fixes the row filter; otherwise the filter with the
    smallest estimated entropy is chosen per row.
    """
    if components not in _COLOUR_TYPES:
        raise ImageFormatError(f"unsupported channel count {components}")
    if width < 0 or height < 0:
        raise ImageFormatError(f"invalid dimensions {width}x{height}")
    if stride < 0:
        raise ImageFormatError("stride must not be negative")
    row_bytes = width * components
    if stride == 0:
        stride = row_bytes
    pixels = bytes(pixels)
    if width and height and len(pixels) < (height - 1) * stride + row_bytes:
        raise ImageFormatError("pixel data is shorter than the image needs")
    if force_filter >= 5:
        force_filter = -1

    source_rows = [
        pixels[(height - 1 - y if flip else y) * stride :][:row_bytes]
        for y in range(height)
    ]
    first_row_map = (0, 1, 0, 5, 6)
    filtered = bytearray()
    prior: bytes | None = None
    for y, row in enumerate(source_rows):

        def encode(filter_type: int) -> bytes:
            kind = filter_type if y else first_row_map[filter_type]
            return _filter_line(row, prior, components, kind)

        if force_filter > -1:
            chosen, line = force_filter, encode(force_filter)
        else:
            candidates = [(f, encode(f)) for f in range(5)]
            chosen, line = min(candidates, key=lambda item: _entropy(item[1]))
        filtered.append(chosen)
        filtered += line
        prior = row

    compressed = zlib_compress(bytes(filtered), compression_level)
    header = (
        width.to_bytes(4, "big")
        + height.to_bytes(4, "big")
        + bytes((8, _COLOUR_TYPES[components], 0, 0, 0))
    )
    return (
        PNG_SIGNATURE
        + _chunk(b"IHDR", header)
        + _chunk(b"IDAT", compressed)
        + _chunk(b"IEND", b"")
    )


def write_png(
    path: str | os.PathLike,
    width: int,
    height: int,
    components: int,
    pixels: bytes | Sequence[int],
    stride: int = 0,
) -> None:
    """Encode pixels as PNG and write them to ``path``."""
    payload = encode_png(bytes(pixels), width, height, components, stride)
    with open(path, "wb") as handle:
        handle.write(payload)