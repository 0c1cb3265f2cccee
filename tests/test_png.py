import io
import random
import zlib

import pytest
from PIL import Image

from tareas.png import (
    adler32,
    crc32,
    encode_png,
    paeth,
    write_png,
    zlib_compress,
)
from tareas.rawformats import ImageFormatError


def _chunks(png):
    position = 8
    chunks = []
    while position < len(png):
        length = int.from_bytes(png[position : position + 4], "big")
        tag = png[position + 4 : position + 8]
        body = png[position + 8 : position + 8 + length]
        crc = int.from_bytes(png[position + 8 + length : position + 12 + length], "big")
        chunks.append((tag, body, crc))
        position += 12 + length
    return chunks


def _decode(png):
    image = Image.open(io.BytesIO(png))
    image.load()
    return image


def _gradient(width, height, components, seed=1):
    rng = random.Random(seed)
    return bytes(
        (x * 7 + y * 13 + c * 31 + rng.randrange(4)) & 0xFF
        for y in range(height)
        for x in range(width)
        for c in range(components)
    )


def test_crc32_check_value():
    assert crc32(b"123456789") == 0xCBF43926


def test_crc32_of_iend_tag():
    assert crc32(b"IEND") == 0xAE426082


def test_adler32_empty_and_worked_example():
    assert adler32(b"") == 1
    assert adler32(b"Wikipedia") == 0x11E60398


def test_paeth_picks_nearest_neighbour():
    assert paeth(10, 20, 10) == 20
    assert paeth(0, 0, 0) == 0
    for a, b, c in [(5, 200, 17), (255, 0, 128), (3, 3, 250)]:
        assert paeth(a, b, c) in (a, b, c)


def test_zlib_header_and_round_trip():
    data = b"abcabcabcabcabcabcabc hello hello hello" * 20
    out = zlib_compress(data)
    assert out[:2] == bytes((0x78, 0x5E))
    assert zlib.decompress(out) == data
    assert len(out) < len(data)
    assert int.from_bytes(out[-4:], "big") == adler32(data)


@pytest.mark.parametrize("quality", [1, 5, 8, 32])
def test_zlib_round_trip_at_any_quality(quality):
    rng = random.Random(quality)
    data = bytes(rng.choice(b"ab") for _ in range(3000))
    assert zlib.decompress(zlib_compress(data, quality)) == data


def test_zlib_long_runs_and_far_distances():
    rng = random.Random(7)
    block = rng.randbytes(5000)
    data = bytes(1000) + block * 3 + bytes(600)
    assert zlib.decompress(zlib_compress(data)) == data


def test_zlib_incompressible_data_is_stored():
    data = random.Random(0).randbytes(2000)
    out = zlib_compress(data)
    assert zlib.decompress(out) == data
    assert len(out) == len(data) + 2 + 5 + 4


def test_zlib_short_inputs():
    for data in [b"a", b"ab", b"abc", b"abcd"]:
        assert zlib.decompress(zlib_compress(data)) == data


def test_png_structure():
    pixels = _gradient(4, 3, 3)
    png = encode_png(pixels, 4, 3, 3)
    assert png[:8] == bytes((137, 80, 78, 71, 13, 10, 26, 10))
    chunks = _chunks(png)
    assert [tag for tag, _, _ in chunks] == [b"IHDR", b"IDAT", b"IEND"]
    for tag, body, crc in chunks:
        assert crc == crc32(tag + body)
    ihdr = chunks[0][1]
    assert int.from_bytes(ihdr[0:4], "big") == 4
    assert int.from_bytes(ihdr[4:8], "big") == 3
    assert ihdr[8] == 8
    assert ihdr[9] == 2


@pytest.mark.parametrize(
    "components,mode", [(1, "L"), (2, "LA"), (3, "RGB"), (4, "RGBA")]
)
def test_png_decodes_to_same_pixels(components, mode):
    pixels = _gradient(9, 6, components)
    image = _decode(encode_png(pixels, 9, 6, components))
    assert image.mode == mode
    assert image.size == (9, 6)
    assert image.tobytes() == pixels


@pytest.mark.parametrize("force_filter", [0, 1, 2, 3, 4])
def test_forced_filter_is_recorded_and_decodes(force_filter):
    width, height, components = 7, 5, 3
    pixels = _gradient(width, height, components, seed=force_filter)
    png = encode_png(pixels, width, height, components, force_filter=force_filter)
    raw = zlib.decompress(_chunks(png)[1][1])
    row = width * components + 1
    assert [raw[y * row] for y in range(height)] == [force_filter] * height
    assert _decode(png).tobytes() == pixels


def test_automatic_filter_choice_is_valid():
    width, height = 8, 8
    pixels = _gradient(width, height, 3, seed=3)
    png = encode_png(pixels, width, height, 3)
    raw = zlib.decompress(_chunks(png)[1][1])
    row = width * 3 + 1
    assert all(raw[y * row] in range(5) for y in range(height))
    assert _decode(png).tobytes() == pixels


def test_flip_reverses_rows():
    width, height = 5, 4
    pixels = _gradient(width, height, 3)
    image = _decode(encode_png(pixels, width, height, 3, flip=True))
    row = width * 3
    expected = b"".join(
        pixels[y * row : (y + 1) * row] for y in reversed(range(height))
    )
    assert image.tobytes() == expected


def test_stride_skips_padding():
    width, height = 3, 4
    tight = _gradient(width, height, 3)
    row = width * 3
    padded = b"".join(tight[y * row : (y + 1) * row] + b"\xee\xee" for y in range(height))
    image = _decode(encode_png(padded, width, height, 3, stride=row + 2))
    assert image.tobytes() == tight


def test_compression_level_keeps_pixels():
    pixels = _gradient(10, 10, 3)
    for level in (1, 20):
        assert _decode(encode_png(pixels, 10, 10, 3, compression_level=level)).tobytes() == pixels


def test_unsupported_channel_count():
    with pytest.raises(ImageFormatError):
        encode_png(bytes(20), 2, 2, 5)


def test_short_pixel_data():
    with pytest.raises(ImageFormatError):
        encode_png(bytes(10), 2, 2, 3)


def test_write_png_creates_readable_file(tmp_path):
    pixels = _gradient(6, 4, 3)
    path = tmp_path / "out.png"
    write_png(path, 6, 4, 3, pixels)
    with Image.open(path) as image:
        assert image.size == (6, 4)
        assert image.tobytes() == pixels