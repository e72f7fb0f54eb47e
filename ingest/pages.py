"""Page metadata builder.

Turns the sorted image entries into PageMetadata under a bounded
concurrency limit, so one large upload cannot decode dozens of
full-resolution pages at once. Order is fixed by the summary before any
task starts; results come back in that order regardless of completion.
"""

from __future__ import annotations

import asyncio
import hashlib
from dataclasses import dataclass
from typing import List, Optional

from .archive import ArchiveEntry, EntryReader
from .errors import InvalidPageError
from .extraction import ArchiveExtractionSummary, SniffedEntry
from .images import inspect_image
from .logging_config import get_logger
from .models import PageMetadata

logger = get_logger(__name__)


@dataclass(frozen=True)
class ExtractedImageEntry:
    """An archive entry confirmed as an image, with its decoded header."""

    entry: ArchiveEntry
    width: int
    height: int
    format: str
    mime_type: Optional[str]
    size: int
    sha256: str


def _describe(reader: EntryReader, sniffed: SniffedEntry) -> ExtractedImageEntry:
    data = reader.read_entry(sniffed.entry_path)
    info = inspect_image(data)
    if info is None:
        raise InvalidPageError(sniffed.entry_name)
    return ExtractedImageEntry(
        entry=sniffed.entry,
        width=info.width,
        height=info.height,
        format=info.format,
        mime_type=info.mime_type,
        size=len(data),
        sha256=hashlib.sha256(data).hexdigest(),
    )


async def build_page_metadata(
    reader: EntryReader,
    summary: ArchiveExtractionSummary,
    concurrency: int,
) -> List[PageMetadata]:
    """Inspect every image entry, at most `concurrency` at a time.

    Raises InvalidPageError if any entry fails inspection; pages must map
    1:1 onto the summary's image entries.
    """
    limiter = asyncio.Semaphore(max(1, concurrency))
    cover_path = summary.cover_entry.entry_path if summary.cover_entry else None

    async def describe(index: int, sniffed: SniffedEntry) -> PageMetadata:
        async with limiter:
            image = await asyncio.to_thread(_describe, reader, sniffed)
        return PageMetadata(
            index=index,
            filename=image.entry.entry_name,
            path=image.entry.entry_path,
            width=image.width,
            height=image.height,
            format=image.format,
            is_cover=image.entry.entry_path == cover_path,
            size=image.size,
            mime_type=image.mime_type,
            sha256=image.sha256,
        )

    tasks = [
        asyncio.ensure_future(describe(index, sniffed))
        for index, sniffed in enumerate(summary.image_entries)
    ]
    try:
        pages = await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        # Let cancelled tasks settle so none outlives the archive reader
        await asyncio.gather(*tasks, return_exceptions=True)
        raise

    logger.debug(f"Described {len(pages)} pages (concurrency={concurrency})")
    return list(pages)
