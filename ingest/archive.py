"""Archive handling for the ingestion pipeline.

Provides one reading contract over CBZ/ZIP (in memory) and CBR/RAR
(temp-file backed) containers. `open_archive` is an async context manager:
the RAR temp file lives exactly as long as the `async with` block and is
removed on every exit path.
"""

from __future__ import annotations

import asyncio
import enum
import io
import os
import tempfile
import threading
import zipfile
import zlib
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import AsyncIterator, List, Optional, Protocol

import rarfile

from .errors import BadArchiveError, UnsupportedFormatError
from .logging_config import get_logger

logger = get_logger(__name__)


class ArchiveKind(enum.Enum):
    ZIP = "zip"
    RAR = "rar"


ARCHIVE_EXTENSIONS = {
    ".zip": ArchiveKind.ZIP,
    ".cbz": ArchiveKind.ZIP,
    ".rar": ArchiveKind.RAR,
    ".cbr": ArchiveKind.RAR,
}


@dataclass(frozen=True)
class ArchiveEntry:
    """One record inside a container. Bytes come from the owning reader."""

    entry_path: str
    entry_name: str
    size: int
    is_directory: bool
    last_modified: Optional[datetime] = None


def detect_archive_type(filename: str) -> ArchiveKind:
    """Map a filename extension to the container family."""
    suffix = Path(filename).suffix.lower()
    try:
        return ARCHIVE_EXTENSIONS[suffix]
    except KeyError:
        raise UnsupportedFormatError(
            f"Unsupported archive format: {suffix or filename}", filename=filename
        ) from None


def normalize_entry_path(entry_path: str) -> str:
    return entry_path.replace("\\", "/").lstrip("/")


def entry_basename(entry_path: str) -> str:
    normalized = normalize_entry_path(entry_path).rstrip("/")
    return PurePosixPath(normalized).name or normalized


def _datetime_or_none(date_time) -> Optional[datetime]:
    if not date_time:
        return None
    try:
        return datetime(*date_time[:6])
    except (TypeError, ValueError):
        return None


class EntryReader(Protocol):
    def list_entries(self) -> List[ArchiveEntry]:
        ...

    def read_entry(self, entry_path: str) -> bytes:
        ...

    def close(self) -> None:
        ...


class ZipEntryReader:
    """ZIP/CBZ reader over an in-memory buffer."""

    def __init__(self, data: bytes):
        try:
            self.zf = zipfile.ZipFile(io.BytesIO(data), mode="r")
        except (zipfile.BadZipFile, OSError) as exc:
            raise BadArchiveError(f"Archive read failed: {exc}") from exc
        # ZipFile seeks a shared buffer; reads from worker threads take turns
        self._lock = threading.Lock()

    def list_entries(self) -> List[ArchiveEntry]:
        return [
            ArchiveEntry(
                entry_path=info.filename,
                entry_name=entry_basename(info.filename),
                size=info.file_size,
                is_directory=info.is_dir(),
                last_modified=_datetime_or_none(info.date_time),
            )
            for info in self.zf.infolist()
        ]

    def read_entry(self, entry_path: str) -> bytes:
        try:
            with self._lock:
                return self.zf.read(entry_path)
        except (KeyError, zipfile.BadZipFile, zlib.error, NotImplementedError,
                RuntimeError, OSError) as exc:
            raise BadArchiveError(
                f"Archive read failed for entry {entry_path}: {exc}"
            ) from exc

    def close(self) -> None:
        self.zf.close()


class RarEntryReader:
    """RAR/CBR reader. rarfile needs a real file, so `path` is a temp copy."""

    def __init__(self, path: Path):
        self.path = path
        try:
            self.rf = rarfile.RarFile(str(path), mode="r")
        except (rarfile.Error, OSError) as exc:
            raise BadArchiveError(f"Archive read failed: {exc}") from exc
        self._lock = threading.Lock()

    def list_entries(self) -> List[ArchiveEntry]:
        try:
            infos = self.rf.infolist()
        except (rarfile.Error, OSError) as exc:
            raise BadArchiveError(f"Archive read failed: {exc}") from exc
        return [
            ArchiveEntry(
                entry_path=info.filename,
                entry_name=entry_basename(info.filename),
                size=info.file_size,
                is_directory=info.is_dir(),
                last_modified=_datetime_or_none(info.date_time),
            )
            for info in infos
        ]

    def read_entry(self, entry_path: str) -> bytes:
        try:
            with self._lock:
                return self.rf.read(entry_path)
        except (rarfile.Error, KeyError, OSError) as exc:
            raise BadArchiveError(
                f"Archive read failed for entry {entry_path}: {exc}"
            ) from exc

    def close(self) -> None:
        self.rf.close()


def _write_temp_archive(data: bytes, temp_dir: Path) -> Path:
    """Write `data` to a uniquely named file in temp_dir."""
    fd, name = tempfile.mkstemp(prefix="rar-", suffix=".rar", dir=temp_dir)
    path = Path(name)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
    except OSError:
        _remove_temp_archive(path)
        raise
    return path


def _remove_temp_archive(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.error(f"Failed to delete temp archive {path}: {exc}")


def _ensure_not_empty(reader: EntryReader) -> None:
    if not reader.list_entries():
        raise BadArchiveError("Archive contains no entries")


@asynccontextmanager
async def open_archive(
    kind: ArchiveKind, data: bytes, temp_dir: Path
) -> AsyncIterator[EntryReader]:
    """Open a reader for `data` and yield it; cleans up on every exit path.

    Codec and filesystem work runs in worker threads. Raises
    BadArchiveError when the container cannot be parsed or holds no
    entries at all.
    """
    if kind is ArchiveKind.ZIP:
        reader: EntryReader = await asyncio.to_thread(ZipEntryReader, data)
        try:
            await asyncio.to_thread(_ensure_not_empty, reader)
            yield reader
        finally:
            reader.close()
        return

    path = await asyncio.to_thread(_write_temp_archive, data, temp_dir)
    try:
        reader = await asyncio.to_thread(RarEntryReader, path)
        try:
            await asyncio.to_thread(_ensure_not_empty, reader)
            yield reader
        finally:
            reader.close()
    finally:
        await asyncio.to_thread(_remove_temp_archive, path)
