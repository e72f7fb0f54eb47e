"""Thumbnail generation for processed archives.

Produces one square thumbnail per configured size from the cover image,
stored under `{thumbnails_dir}/{token}-{size}.{ext}`, where the token is the
sanitized file id plus a short hash of the raw id.
"""

from __future__ import annotations

import asyncio
from io import BytesIO
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

from PIL import Image, ImageOps

from .logging_config import get_logger
from .utils import short_path, storage_token

if TYPE_CHECKING:
    from .cache import ResultCache

logger = get_logger(__name__)


# Output format -> (Pillow encoder, file extension)
THUMBNAIL_FORMATS = {
    "webp": ("WEBP", "webp"),
    "jpeg": ("JPEG", "jpg"),
    "jpg": ("JPEG", "jpg"),
    "png": ("PNG", "png"),
}


def thumbnail_extension(fmt: str) -> str:
    return THUMBNAIL_FORMATS[fmt.lower()][1]


def thumbnail_path(thumbnails_dir: Path, file_id: str, size: int, fmt: str) -> Path:
    return thumbnails_dir / f"{storage_token(file_id)}-{size}.{thumbnail_extension(fmt)}"


def make_thumbnail(img_bytes: bytes, size: int, fmt: str = "webp", quality: int = 85) -> bytes:
    """Cover-fit `img_bytes` into an exact `size`x`size` square, center-cropped."""
    encoder = THUMBNAIL_FORMATS[fmt.lower()][0]
    with Image.open(BytesIO(img_bytes)) as im:
        im = ImageOps.exif_transpose(im)
        im = im.convert("RGBA" if encoder == "PNG" else "RGB")
        fitted = ImageOps.fit(
            im, (size, size), method=Image.Resampling.LANCZOS, centering=(0.5, 0.5)
        )
    out = BytesIO()
    if encoder == "PNG":
        fitted.save(out, format=encoder, optimize=True)
    else:
        fitted.save(out, format=encoder, quality=quality)
    return out.getvalue()


def _save_thumbnail(img_bytes: bytes, thumb_path: Path, size: int, fmt: str, quality: int) -> None:
    thumb_path.parent.mkdir(parents=True, exist_ok=True)
    thumb_path.write_bytes(make_thumbnail(img_bytes, size, fmt, quality))


async def generate_thumbnails(
    img_bytes: bytes,
    file_id: str,
    thumbnails_dir: Path,
    sizes: Iterable[int],
    fmt: str = "webp",
    quality: int = 85,
) -> dict[int, str]:
    """Write one thumbnail per size, all sizes in parallel.

    Returns a mapping of size -> written path.
    """
    targets = {size: thumbnail_path(thumbnails_dir, file_id, size, fmt) for size in sizes}

    await asyncio.gather(
        *(
            asyncio.to_thread(_save_thumbnail, img_bytes, path, size, fmt, quality)
            for size, path in targets.items()
        )
    )

    logger.debug(f"Generated {len(targets)} thumbnails for {file_id}")
    return {size: str(path) for size, path in targets.items()}


def cleanup_orphaned_thumbnails(thumbnails_dir: Path, cache: "ResultCache") -> int:
    """Remove thumbnail files whose file id has no cache entry.

    Returns count of deleted orphaned thumbnails.
    """
    if not thumbnails_dir.exists():
        return 0

    valid_keys = set(cache.keys())

    deleted = 0
    for thumb_file in thumbnails_dir.iterdir():
        if not thumb_file.is_file():
            continue
        key, sep, size = thumb_file.stem.rpartition("-")
        if not sep or not size.isdigit() or key in valid_keys:
            continue
        try:
            thumb_file.unlink()
            logger.debug(f"Removed orphaned thumbnail {short_path(thumb_file)}")
            deleted += 1
        except OSError as exc:
            logger.error(f"Failed to delete thumbnail {short_path(thumb_file)}: {exc}")

    return deleted
