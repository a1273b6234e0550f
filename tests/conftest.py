import io
import random
import struct
import zlib
from pathlib import Path

import pytest
from PIL import Image

from tilemark.settings import WatermarkSettings


def make_image_bytes(size=(300, 200), color=(120, 120, 120), fmt="PNG", mode="RGB") -> bytes:
    buffer = io.BytesIO()
    Image.new(mode, size, color).save(buffer, format=fmt)
    return buffer.getvalue()


def write_image(path: Path, size=(300, 200), color=(120, 120, 120), fmt=None) -> Path:
    fmt = fmt or {".jpg": "JPEG", ".jpeg": "JPEG", ".gif": "GIF", ".bmp": "BMP"}.get(path.suffix.lower(), "PNG")
    path.write_bytes(make_image_bytes(size, color, fmt))
    return path


def _png_chunk(kind: bytes, body: bytes) -> bytes:
    return struct.pack(">I", len(body)) + kind + body + struct.pack(">I", zlib.crc32(kind + body))


def make_broken_png_bytes(size=(64, 64)) -> bytes:
    """A PNG whose pixel data continues in a chunk with a garbage type code."""
    noise = random.Random(7).randbytes(size[0] * size[1] * 3)
    buffer = io.BytesIO()
    Image.frombytes("RGB", size, noise).save(buffer, format="PNG")
    data = buffer.getvalue()
    start = data.index(b"IDAT") - 4
    (length,) = struct.unpack(">I", data[start:start + 4])
    payload = data[start + 8:start + 8 + length]
    half = length // 2
    return (
        data[:start]
        + _png_chunk(b"IDAT", payload[:half])
        + _png_chunk(b"\x00\x01\x02\x03", payload[half:])
        + data[start + 12 + length:]
    )


@pytest.fixture
def settings():
    return WatermarkSettings(
        text="SAMPLE",
        font_size=40,
        color=(255, 0, 0),
        rotation=30,
        h_spacing=300,
        v_spacing=300,
        opacity=50,
        density=5,
    )


@pytest.fixture
def image_folder(tmp_path):
    folder = tmp_path / "input"
    folder.mkdir()
    write_image(folder / "page01.png", size=(400, 300))
    write_image(folder / "page02.jpg", size=(300, 400), color=(30, 90, 160))
    write_image(folder / "page03.bmp", size=(320, 320), color=(200, 200, 200))
    return folder
