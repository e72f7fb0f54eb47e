"""Pydantic models for pipeline output and the on-disk cache document."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field


class MangaMetadata(BaseModel):
    """Metadata inferred from the archive filename (never from contents)."""

    title: Optional[str] = None
    chapter: Optional[float] = None
    volume: Optional[int] = None
    scanlator: Optional[str] = None
    year: Optional[int] = None


class PageMetadata(BaseModel):
    index: int
    filename: str
    path: str
    width: int
    height: int
    format: str
    is_cover: bool = False
    size: int = 0
    mime_type: Optional[str] = None
    sha256: Optional[str] = None


class ProcessingResult(BaseModel):
    metadata: MangaMetadata
    pages: list[PageMetadata]
    cover: Optional[PageMetadata] = None
    # Requested pixel size -> thumbnail path on disk
    thumbnail_paths: dict[int, str] = Field(default_factory=dict)

    @property
    def page_count(self) -> int:
        return len(self.pages)


class CacheEntry(BaseModel):
    """One cache file: `{key, value, created_at}`."""

    key: str
    value: ProcessingResult
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
