"""Image sniffing and inspection.

Formats are identified from content (Pillow's per-plugin magic byte
checks), never from the entry's extension.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from io import BytesIO
from typing import Iterable, Optional

from PIL import Image, UnidentifiedImageError

from .logging_config import get_logger

logger = get_logger(__name__)


# Config format names -> Pillow plugin ids
PILLOW_FORMATS = {
    "jpg": "JPEG",
    "jpeg": "JPEG",
    "png": "PNG",
    "webp": "WEBP",
    "gif": "GIF",
    "bmp": "BMP",
    "tif": "TIFF",
    "tiff": "TIFF",
    "avif": "AVIF",
}

_DECODE_ERRORS = (
    UnidentifiedImageError,
    OSError,
    SyntaxError,
    ValueError,
    EOFError,
    struct.error,
    Image.DecompressionBombError,
)


@dataclass(frozen=True)
class ImageInfo:
    width: int
    height: int
    format: str
    mime_type: Optional[str] = None


def pillow_formats(allowed: Iterable[str]) -> list[str]:
    """Translate configured format names into Pillow plugin ids (deduped)."""
    Image.init()
    formats: list[str] = []
    for name in allowed:
        fmt = PILLOW_FORMATS.get(name.strip().lower().lstrip("."))
        if fmt is None or fmt not in Image.OPEN:
            logger.debug(f"Ignoring unknown image format: {name}")
            continue
        if fmt not in formats:
            formats.append(fmt)
    return formats


def sniff_format(data: bytes, allowed: Iterable[str]) -> Optional[str]:
    """Return the lowercased format if the bytes are an allowed image type."""
    formats = pillow_formats(allowed)
    if not data or not formats:
        return None
    try:
        with Image.open(BytesIO(data), formats=formats) as im:
            return (im.format or "").lower() or None
    except _DECODE_ERRORS:
        return None


def inspect_image(data: bytes) -> Optional[ImageInfo]:
    """Check image structure and read its dimensions, or None if invalid.

    Only the header is decoded; `verify()` walks the chunk structure without
    producing pixels.
    """
    try:
        with Image.open(BytesIO(data)) as im:
            width, height = im.size
            fmt = im.format
            mime_type = im.get_format_mimetype()
            im.verify()
    except _DECODE_ERRORS:
        return None

    if not width or not height or not fmt:
        return None
    return ImageInfo(width=width, height=height, format=fmt.lower(), mime_type=mime_type)
