# icao_verify/core/metadata.py
"""Read pixel dimensions straight from PNG/JPEG headers.

No image decoding happens here. Unknown or truncated data yields 0×0, which
the rule engine treats as "dimensions unknown" rather than as an error.
"""
from __future__ import annotations

import logging
import struct
from typing import Optional

from icao_verify.core.types import ImageMetadata

log = logging.getLogger(__name__)

PNG_SIGNATURE = b"\x89PNG"
JPEG_SIGNATURE = b"\xff\xd8\xff"
# Baseline and progressive Start-Of-Frame
JPEG_SOF_MARKERS = (0xC0, 0xC2)


def detect_format(data: bytes) -> Optional[str]:
    if data[:4] == PNG_SIGNATURE:
        return "png"
    if data[:3] == JPEG_SIGNATURE:
        return "jpeg"
    return None


def _png_size(data: bytes) -> tuple[int, int]:
    # IHDR width/height live at fixed offsets 16 and 20
    if len(data) < 24:
        return 0, 0
    width, height = struct.unpack_from(">II", data, 16)
    return width, height


def _jpeg_size(data: bytes) -> tuple[int, int]:
    for i in range(2, len(data) - 10):
        if data[i] == 0xFF and data[i + 1] in JPEG_SOF_MARKERS:
            height, width = struct.unpack_from(">HH", data, i + 5)
            return width, height
    return 0, 0


def extract_metadata(data: bytes) -> ImageMetadata:
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise TypeError(f"expected a bytes-like image buffer, got {type(data).__name__}")
    data = bytes(data)

    fmt = detect_format(data)
    if fmt == "png":
        width, height = _png_size(data)
    elif fmt == "jpeg":
        width, height = _jpeg_size(data)
    else:
        width, height = 0, 0

    meta = ImageMetadata(width=width, height=height, byte_size=len(data))
    log.debug("image_metadata", extra={"format": fmt, "width": width,
                                       "height": height, "bytes": meta.byte_size})
    return meta
