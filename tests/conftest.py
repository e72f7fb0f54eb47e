from pathlib import Path

import pytest

from helpers import make_image
from ingest.config import ProcessingConfig, ThumbnailConfig


@pytest.fixture
def png_bytes():
    return make_image("PNG")


@pytest.fixture
def processing_config(tmp_path: Path) -> ProcessingConfig:
    return ProcessingConfig(
        temp_dir=tmp_path / "tmp",
        cache_dir=tmp_path / "cache",
        thumbnails_dir=tmp_path / "thumbnails",
        allowed_image_formats=("jpg", "jpeg", "png", "webp"),
        thumbnails=ThumbnailConfig(sizes=(150, 300), format="webp", quality=85),
        concurrency=2,
    )
