"""Archive processor: the end-to-end ingestion pipeline.

cache lookup -> directories -> read upload -> list entries -> summarize
(sniff + cover) -> page metadata (bounded) -> filename metadata ->
thumbnails -> cache write.

The processor knows nothing about users, HTTP or database records; it takes
an UploadedFile and returns a ProcessingResult or raises an IngestError.
"""

from __future__ import annotations

import asyncio
import dataclasses
from pathlib import Path
from typing import Optional

from .archive import detect_archive_type, open_archive
from .cache import ResultCache
from .config import ProcessingConfig, get_config
from .errors import IngestError, InternalProcessingError, NoImagesError, UserInputError
from .extraction import summarize_entries
from .logging_config import get_logger
from .metadata import infer_metadata_from_filename
from .models import ProcessingResult
from .pages import build_page_metadata
from .thumbnails import generate_thumbnails

logger = get_logger(__name__)


@dataclasses.dataclass(frozen=True)
class UploadedFile:
    """An upload handed over by the storage collaborator.

    Either `path` or `data` must be set; `filename` selects the container
    type, `original_filename` feeds metadata inference.
    """

    id: str
    filename: str
    original_filename: str
    path: Optional[Path] = None
    data: Optional[bytes] = None

    async def read(self) -> bytes:
        if self.data is not None:
            return self.data
        if self.path is None:
            raise ValueError(f"Upload {self.id} has neither path nor data")
        return await asyncio.to_thread(Path(self.path).read_bytes)


@dataclasses.dataclass(frozen=True)
class ProcessingContext:
    """Immutable settings snapshot for one process() call."""

    file_id: str
    filename: str
    original_filename: str
    temp_dir: Path
    cache_dir: Path
    thumbnails_dir: Path
    allowed_formats: tuple[str, ...]
    thumbnail_sizes: tuple[int, ...]
    concurrency: int
    thumbnail_format: str = "webp"
    thumbnail_quality: int = 85

    @classmethod
    def build(cls, file: UploadedFile, config: ProcessingConfig) -> "ProcessingContext":
        return cls(
            file_id=file.id,
            filename=file.filename,
            original_filename=file.original_filename,
            temp_dir=config.temp_dir,
            cache_dir=config.cache_dir,
            thumbnails_dir=config.thumbnails_dir,
            allowed_formats=tuple(config.allowed_image_formats),
            thumbnail_sizes=tuple(config.thumbnails.sizes),
            concurrency=config.concurrency,
            thumbnail_format=config.thumbnails.format,
            thumbnail_quality=config.thumbnails.quality,
        )


class ArchiveProcessor:
    def __init__(self, config: Optional[ProcessingConfig] = None):
        self.config = (config or get_config()).validate()
        self.cache = ResultCache(self.config.cache_dir)
        # file id -> running pipeline, so concurrent calls share one run
        self._inflight: dict[str, asyncio.Task] = {}

    async def process(self, file: UploadedFile) -> ProcessingResult:
        """Process an uploaded archive, or return the cached result."""
        running = self._inflight.get(file.id)
        if running is not None:
            logger.debug(f"Joining in-flight processing for {file.id}")
            return await asyncio.shield(running)

        task = asyncio.ensure_future(self._process(file))
        self._inflight[file.id] = task

        def _forget(done: asyncio.Task) -> None:
            if self._inflight.get(file.id) is done:
                del self._inflight[file.id]
            if not done.cancelled():
                done.exception()  # callers re-raise it; this marks it retrieved

        task.add_done_callback(_forget)
        # Cancelling one caller must not cancel the run other callers share
        return await asyncio.shield(task)

    async def _process(self, file: UploadedFile) -> ProcessingResult:
        cached = await self.cache.get(file.id)
        if cached is not None:
            logger.debug(f"Cache hit for {file.id}")
            return cached

        context = ProcessingContext.build(file, self.config)
        try:
            result = await self._run(file, context)
        except UserInputError as exc:
            logger.warning(f"✗ {file.original_filename} - {exc}")
            raise
        except IngestError:
            raise
        except Exception as exc:
            logger.exception(f"✗ {file.original_filename} - processing failed ({file.id}): {exc}")
            raise InternalProcessingError() from exc

        logger.info(f"✓ {file.original_filename} ({result.page_count} pages)")
        return result

    async def _ensure_directories(self, context: ProcessingContext) -> None:
        for directory in (context.temp_dir, context.thumbnails_dir, context.cache_dir):
            await asyncio.to_thread(directory.mkdir, parents=True, exist_ok=True)

    async def _run(self, file: UploadedFile, context: ProcessingContext) -> ProcessingResult:
        kind = detect_archive_type(context.filename)

        await self._ensure_directories(context)
        data = await file.read()

        async with open_archive(kind, data, context.temp_dir) as reader:
            entries = await asyncio.to_thread(reader.list_entries)
            summary = await summarize_entries(reader, entries, context.allowed_formats)
            logger.debug(
                f"{context.original_filename}: {summary.total_entries} entries, "
                f"{len(summary.image_entries)} images, {len(summary.skipped_entries)} skipped"
            )

            if not summary.image_entries:
                raise NoImagesError(filename=context.original_filename)

            pages = await build_page_metadata(reader, summary, context.concurrency)
            metadata = infer_metadata_from_filename(context.original_filename)

            cover = next((page for page in pages if page.is_cover), None)
            if cover is None:
                logger.error(f"No cover page among {len(pages)} pages of {file.id}")
                raise InternalProcessingError()
            cover_bytes = await asyncio.to_thread(reader.read_entry, cover.path)

            thumbnail_paths = await generate_thumbnails(
                cover_bytes,
                context.file_id,
                context.thumbnails_dir,
                context.thumbnail_sizes,
                fmt=context.thumbnail_format,
                quality=context.thumbnail_quality,
            )

        result = ProcessingResult(
            metadata=metadata,
            pages=pages,
            cover=cover,
            thumbnail_paths=thumbnail_paths,
        )
        await self.cache.set(file.id, result)
        return result
