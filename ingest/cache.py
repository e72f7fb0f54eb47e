"""Filesystem-backed result cache.

One JSON document per file id under `cache_dir`, named from a sanitized
form of the id plus a short hash of the raw id. The document also stores
the raw id; a document for any other id is a miss. Writes are plain overwrites without locking; the last
writer for an id wins.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Iterator, Optional

from pydantic import ValidationError

from .logging_config import get_logger
from .models import CacheEntry, ProcessingResult
from .utils import storage_token

logger = get_logger(__name__)


class ResultCache:
    """Caches ProcessingResult values keyed by opaque file id."""

    SUFFIX = ".json"

    def __init__(self, cache_dir: Path):
        self.cache_dir = Path(cache_dir)

    def path_for(self, key: str) -> Path:
        return self.cache_dir / f"{storage_token(key)}{self.SUFFIX}"

    def _read(self, key: str) -> Optional[ProcessingResult]:
        path = self.path_for(key)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        entry = CacheEntry.model_validate_json(raw)
        if entry.key != key:
            logger.debug(f"Cache entry {path.name} belongs to {entry.key!r}, not {key!r}")
            return None
        return entry.value

    def _write(self, key: str, value: ProcessingResult) -> None:
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        entry = CacheEntry(key=key, value=value)
        self.path_for(key).write_text(entry.model_dump_json(indent=2), encoding="utf-8")

    async def get(self, key: str) -> Optional[ProcessingResult]:
        """Return the cached result, or None on a miss.

        A corrupt or unreadable entry is logged and treated as a miss.
        """
        try:
            return await asyncio.to_thread(self._read, key)
        except (OSError, ValueError, ValidationError) as exc:
            logger.warning(f"Failed to read cache entry {key}: {exc}")
            return None

    async def set(self, key: str, value: ProcessingResult) -> None:
        await asyncio.to_thread(self._write, key, value)

    async def delete(self, key: str) -> bool:
        """Remove one entry. Returns False if it was not cached."""
        try:
            await asyncio.to_thread(self.path_for(key).unlink)
        except FileNotFoundError:
            return False
        return True

    def keys(self) -> Iterator[str]:
        """Yield the storage tokens (file stems) currently on disk."""
        if not self.cache_dir.exists():
            return
        for path in self.cache_dir.glob(f"*{self.SUFFIX}"):
            yield path.stem

    def clear(self) -> int:
        """Delete every cache file. Returns count removed."""
        removed = 0
        for key in list(self.keys()):
            try:
                (self.cache_dir / f"{key}{self.SUFFIX}").unlink()
                removed += 1
            except FileNotFoundError:
                continue
            except OSError as exc:
                logger.error(f"Failed to delete cache entry {key}: {exc}")
        return removed
