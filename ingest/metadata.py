"""Series/chapter metadata inferred from an archive's filename.

Recognised shapes (case-insensitive):
- `[Group] Title - Chapter 12 [extra]`
- `Title - Chapter 5 - Chapter Title (2019)`
- `Title v03 c012.5`
- `Title - Volume 2 Chapter 7` / `Title vol 3 chapter 12.5`
- `Title Ch. 4`
- `Title - 42`

Never fails: anything unrecognised becomes the title as-is.
"""

from __future__ import annotations

import re
from pathlib import PurePath
from typing import Optional

from .logging_config import get_logger
from .models import MangaMetadata

logger = get_logger(__name__)


_GROUP = re.compile(r"^\s*\[(?P<group>[^\]]+)\]\s*")
_CHAPTER = re.compile(
    r"(?<![a-z])(?:chapter|chap\.?|ch\.?|c)\s*(?P<chapter>\d+(?:\.\d+)?)(?![\d])",
    re.IGNORECASE,
)
_VOLUME = re.compile(
    r"(?<![a-z])(?:volume|vol\.?|v)\s*(?P<volume>\d+)(?![\d.])",
    re.IGNORECASE,
)
_TRAILING_NUMBER = re.compile(r"\s-\s*(?P<chapter>\d+(?:\.\d+)?)\s*$")
_YEAR = re.compile(r"\((?P<year>(?:19|20)\d{2})\)")
_BRACKETS = re.compile(r"\[[^\]]*\]|\([^)]*\)")


def _clean(text: str) -> Optional[str]:
    text = text.replace("_", " ")
    text = re.sub(r"\s+", " ", text)
    text = text.strip(" -.")
    return text or None


def infer_metadata_from_filename(filename: str) -> MangaMetadata:
    """Infer title, chapter, volume, scanlator and year from `filename`."""
    name = PurePath(filename.replace("\\", "/")).stem
    metadata = MangaMetadata()

    group = _GROUP.match(name)
    if group:
        metadata.scanlator = _clean(group.group("group"))
        name = name[group.end():]

    year = _YEAR.search(name)
    if year:
        metadata.year = int(year.group("year"))

    # Tags like [HQ] or (Digital) never hold title/chapter info
    body = _BRACKETS.sub(" ", name)

    chapter = _CHAPTER.search(body)
    volume = _VOLUME.search(body)
    trailing = None if chapter else _TRAILING_NUMBER.search(body)

    if chapter:
        metadata.chapter = float(chapter.group("chapter"))
    elif trailing:
        metadata.chapter = float(trailing.group("chapter"))
    if volume:
        metadata.volume = int(volume.group("volume"))

    starts = [m.start() for m in (chapter, volume, trailing) if m is not None]
    title = body[: min(starts)] if starts else body
    metadata.title = _clean(title) or _clean(body) or _clean(name)

    if not starts:
        logger.debug(f"No chapter/volume pattern in filename, using as title: {metadata.title}")
    return metadata
