"""Ingest CLI entry point."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer

from ingest.cache import ResultCache
from ingest.config import DEFAULT_CONFIG_PATH, ProcessingConfig, load_config, write_default_config
from ingest.errors import ConfigurationError, IngestError, UserInputError
from ingest.logging_config import setup_logging
from ingest.processor import ArchiveProcessor, UploadedFile
from ingest.thumbnails import cleanup_orphaned_thumbnails


__version__ = "0.1.0"

app = typer.Typer(add_completion=False, help="Manga archive ingestion CLI")
logger = logging.getLogger("ingest")


def _ensure_config(config_path: Optional[Path]) -> ProcessingConfig:
    try:
        config = load_config(config_path)
    except ConfigurationError as exc:
        typer.echo(f"[ERROR] {exc}. Run: ingest init")
        raise typer.Exit(code=1)
    setup_logging(config.logging.level, config.logging.file)
    return config


@app.command()
def init(
    data_dir: Optional[Path] = typer.Option(
        None, "--data-dir", help="Where temp, cache and thumbnail folders live"
    ),
    config_path: Path = typer.Option(DEFAULT_CONFIG_PATH, "--config", help="Config file to write"),
) -> None:
    """Write config.ini with default settings."""
    path = write_default_config(config_path, data_dir)
    typer.echo(f"[OK] Config created at {path}")


@app.command()
def process(
    archive: Path = typer.Argument(..., exists=True, dir_okay=False, help="CBZ/CBR/ZIP/RAR file"),
    file_id: Optional[str] = typer.Option(None, "--id", help="File id (defaults to the file stem)"),
    name: Optional[str] = typer.Option(None, "--name", help="Original filename for metadata"),
    config_path: Optional[Path] = typer.Option(None, "--config", help="Config file"),
) -> None:
    """Process one archive and print the result as JSON."""
    config = _ensure_config(config_path)
    processor = ArchiveProcessor(config)

    upload = UploadedFile(
        id=file_id or archive.stem,
        filename=archive.name,
        original_filename=name or archive.name,
        path=archive,
    )

    try:
        result = asyncio.run(processor.process(upload))
    except UserInputError as exc:
        typer.echo(f"[ERROR] {exc.user_message}")
        raise typer.Exit(code=2)
    except IngestError as exc:
        typer.echo(f"[ERROR] {exc.user_message}")
        raise typer.Exit(code=1)

    typer.echo(result.model_dump_json(indent=2))


@app.command()
def cleanup(
    config_path: Optional[Path] = typer.Option(None, "--config", help="Config file"),
) -> None:
    """Remove thumbnails that have no cached result."""
    config = _ensure_config(config_path)
    deleted = cleanup_orphaned_thumbnails(config.thumbnails_dir, ResultCache(config.cache_dir))
    typer.echo(f"[INFO] Removed {deleted} orphaned thumbnails")


@app.command("clear-cache")
def clear_cache(
    confirm: bool = typer.Option(False, "--confirm", help="Confirm destructive reset"),
    config_path: Optional[Path] = typer.Option(None, "--config", help="Config file"),
) -> None:
    """Delete every cached processing result."""
    if not confirm:
        typer.echo("[ERROR] This will delete all cached results. Use --confirm.")
        raise typer.Exit(code=1)

    config = _ensure_config(config_path)
    removed = ResultCache(config.cache_dir).clear()
    logger.info(f"Cleared {removed} cache entries")
    typer.echo(f"[INFO] Removed {removed} cache entries")


if __name__ == "__main__":
    app()
