import io

import pytest
from PIL import Image

from tareas.jpeg import encode_jpeg, write_jpeg
from tareas.rawformats import ImageFormatError


def _solid(width, height, colour):
    return bytes(colour) * (width * height)


def _gradient(width, height):
    data = bytearray()
    for y in range(height):
        for x in range(width):
            data += bytes(((x * 255) // max(width - 1, 1), (y * 255) // max(height - 1, 1), 128))
    return bytes(data)


def _decode(payload):
    image = Image.open(io.BytesIO(payload))
    image.load()
    return image


def test_starts_with_soi_and_jfif_and_ends_with_eoi():
    payload = encode_jpeg(_solid(8, 8, (10, 20, 30)), 8, 8, 3)
    assert payload[:4] == b"\xff\xd8\xff\xe0"
    assert payload[6:11] == b"JFIF\x00"
    assert payload[-2:] == b"\xff\xd9"


def test_frame_header_records_size():
    payload = encode_jpeg(_solid(300, 5, (0, 0, 0)), 300, 5, 3)
    sof = payload.index(b"\xff\xc0")
    assert payload[sof + 5 : sof + 7] == (5).to_bytes(2, "big")
    assert payload[sof + 7 : sof + 9] == (300).to_bytes(2, "big")


@pytest.mark.parametrize("quality, sampling", [(90, 0x22), (91, 0x11), (100, 0x11), (0, 0x22)])
def test_chroma_subsampling_depends_on_quality(quality, sampling):
    payload = encode_jpeg(_solid(4, 4, (1, 2, 3)), 4, 4, 3, quality)
    sof = payload.index(b"\xff\xc0")
    assert payload[sof + 11] == sampling


def test_quality_fifty_uses_standard_luminance_table():
    payload = encode_jpeg(_solid(4, 4, (1, 2, 3)), 4, 4, 3, 50)
    dqt = payload.index(b"\xff\xdb")
    # First luminance entry of the standard table is 16.
    assert payload[dqt + 5] == 16


def test_zero_quality_equals_ninety():
    data = _gradient(20, 12)
    assert encode_jpeg(data, 20, 12, 3, 0) == encode_jpeg(data, 20, 12, 3, 90)


@pytest.mark.parametrize("quality", [60, 95])
def test_solid_colour_round_trip(quality):
    colour = (200, 100, 50)
    payload = encode_jpeg(_solid(16, 16, colour), 16, 16, 3, quality)
    image = _decode(payload)
    assert image.size == (16, 16)
    for channel, expected in zip(image.convert("RGB").getpixel((7, 7)), colour):
        assert abs(channel - expected) <= 8


def test_gradient_round_trip_is_close():
    width, height = 24, 20
    data = _gradient(width, height)
    image = _decode(encode_jpeg(data, width, height, 3, 95)).convert("RGB")
    assert image.size == (width, height)
    decoded = image.tobytes()
    error = sum(abs(a - b) for a, b in zip(data, decoded)) / len(data)
    assert error < 6


def test_greyscale_input_decodes_grey():
    payload = encode_jpeg(bytes([100]) * 64, 8, 8, 1, 95)
    r, g, b = _decode(payload).convert("RGB").getpixel((3, 3))
    assert abs(r - 100) <= 4
    assert abs(g - 100) <= 4
    assert abs(b - 100) <= 4


def test_alpha_channel_is_ignored():
    rgb = _gradient(10, 10)
    rgba = bytearray()
    for i in range(0, len(rgb), 3):
        rgba += rgb[i : i + 3] + b"\x7f"
    assert encode_jpeg(bytes(rgba), 10, 10, 4) == encode_jpeg(rgb, 10, 10, 3)


def test_flip_equals_encoding_reversed_rows():
    width, height = 9, 7
    data = _gradient(width, height)
    row = width * 3
    reversed_rows = b"".join(data[y * row : (y + 1) * row] for y in reversed(range(height)))
    assert encode_jpeg(data, width, height, 3, flip=True) == encode_jpeg(reversed_rows, width, height, 3)


def test_odd_sizes_decode_with_correct_size():
    image = _decode(encode_jpeg(_gradient(17, 3), 17, 3, 3))
    assert image.size == (17, 3)


@pytest.mark.parametrize(
    "width, height, components, data",
    [
        (0, 4, 3, b"\x00" * 12),
        (4, 0, 3, b"\x00" * 12),
        (2, 2, 5, b"\x00" * 20),
        (2, 2, 0, b"\x00" * 4),
        (2, 2, 3, b""),
        (4, 4, 3, b"\x00" * 10),
    ],
)
def test_invalid_input_raises(width, height, components, data):
    with pytest.raises(ImageFormatError):
        encode_jpeg(data, width, height, components)


def test_write_jpeg_writes_encoded_bytes(tmp_path):
    data = _gradient(12, 8)
    target = tmp_path / "out.jpg"
    write_jpeg(target, 12, 8, 3, list(data), 75)
    assert target.read_bytes() == encode_jpeg(data, 12, 8, 3, 75)