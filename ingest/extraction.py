"""Extraction summary: classify archive entries and pick a cover.

Every non-directory entry is read once and sniffed by content. Entries
whose bytes are not an allowed image type (ComicInfo.xml, .nfo, stray
text files) are skipped, not errors. Structural inspection of the image
entries happens later, in the page builder.
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from .archive import ArchiveEntry, EntryReader
from .images import sniff_format
from .logging_config import get_logger
from .utils import natural_sort_key

logger = get_logger(__name__)


COVER_PATTERN = re.compile(r"cover|portada|capa|001|000", re.IGNORECASE)


@dataclass(frozen=True)
class SniffedEntry:
    """An entry whose content matched an allowed image signature."""

    entry: ArchiveEntry
    format: str

    @property
    def entry_name(self) -> str:
        return self.entry.entry_name

    @property
    def entry_path(self) -> str:
        return self.entry.entry_path


@dataclass
class ArchiveExtractionSummary:
    total_entries: int
    image_entries: List[SniffedEntry] = field(default_factory=list)
    skipped_entries: List[ArchiveEntry] = field(default_factory=list)
    cover_entry: Optional[SniffedEntry] = None


def is_likely_cover(entry_name: str) -> bool:
    return COVER_PATTERN.search(entry_name) is not None


def sort_entries(entries: Iterable[SniffedEntry]) -> List[SniffedEntry]:
    """Numeric-aware order by basename; full path breaks ties."""
    return sorted(
        entries,
        key=lambda e: (natural_sort_key(e.entry_name), natural_sort_key(e.entry_path)),
    )


def select_cover(
    document_order: Sequence[SniffedEntry], sorted_entries: Sequence[SniffedEntry]
) -> Optional[SniffedEntry]:
    """First name-matching entry in archive order, else first sorted entry."""
    for entry in document_order:
        if is_likely_cover(entry.entry_name):
            return entry
    return sorted_entries[0] if sorted_entries else None


def _classify(reader: EntryReader, entry: ArchiveEntry, allowed: tuple[str, ...]) -> Optional[str]:
    return sniff_format(reader.read_entry(entry.entry_path), allowed)


async def summarize_entries(
    reader: EntryReader,
    entries: Sequence[ArchiveEntry],
    allowed_formats: Iterable[str],
) -> ArchiveExtractionSummary:
    """Build the extraction summary for one archive.

    Runs sequentially; archive read errors propagate as BadArchiveError.
    """
    allowed = tuple(allowed_formats)
    found: List[SniffedEntry] = []
    skipped: List[ArchiveEntry] = []

    for entry in entries:
        if entry.is_directory:
            continue

        fmt = await asyncio.to_thread(_classify, reader, entry, allowed)
        if fmt is None:
            logger.debug(f"Skipping non-image entry {entry.entry_path}")
            skipped.append(entry)
            continue

        found.append(SniffedEntry(entry=entry, format=fmt))

    image_entries = sort_entries(found)
    return ArchiveExtractionSummary(
        total_entries=len(entries),
        image_entries=image_entries,
        skipped_entries=skipped,
        cover_entry=select_cover(found, image_entries),
    )
