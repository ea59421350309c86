import struct

import pytest

from icao_verify.core.types import FaceBox, ImageMetadata


def png_header(width, height, total_size=64):
    data = (
        b"\x89PNG\r\n\x1a\n"
        + struct.pack(">I", 13) + b"IHDR"
        + struct.pack(">II", width, height)
        + b"\x08\x02\x00\x00\x00"
    )
    return data + b"\x00" * max(0, total_size - len(data))


def jpeg_header(width, height, total_size=64, marker=0xC0):
    app0 = b"\xff\xe0" + struct.pack(">H", 16) + b"JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00"
    sof = (
        bytes([0xFF, marker])
        + struct.pack(">HBHH", 17, 8, height, width)
        + b"\x03\x01\x22\x00\x02\x11\x01\x03\x11\x01"
    )
    data = b"\xff\xd8" + app0 + sof
    return data + b"\x00" * max(0, total_size - len(data))


def centered_face(meta, face_height_ratio=0.75, face_width=None, dx=0.0, dy=0.0, **attrs):
    h = meta.height * face_height_ratio
    w = face_width if face_width is not None else h * 0.8
    cx, cy = meta.width / 2 + dx, meta.height / 2 + dy
    return FaceBox(x=cx - w / 2, y=cy - h / 2, width=w, height=h, **attrs)


@pytest.fixture
def make_png():
    return png_header


@pytest.fixture
def make_jpeg():
    return jpeg_header


@pytest.fixture
def good_meta():
    return ImageMetadata(width=450, height=500, byte_size=60_000)


@pytest.fixture
def make_face():
    return centered_face
