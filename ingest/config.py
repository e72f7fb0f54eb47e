"""Config management for the ingestion pipeline.

Reads `config.ini` from DATA_DIR (beside main.py unless the DATA_DIR
environment variable says otherwise). Every [processing] path is required;
a missing one is a configuration error, never a per-file error.
"""

from __future__ import annotations

import configparser
import dataclasses
import os
import pathlib
from typing import Optional

from .errors import ConfigurationError
from .logging_config import get_logger
from .thumbnails import THUMBNAIL_FORMATS

logger = get_logger(__name__)


PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]

# DATA_DIR holds config.ini and, by default, the working directories.
DATA_DIR = pathlib.Path(os.environ.get("DATA_DIR", str(PROJECT_ROOT)))
DEFAULT_CONFIG_PATH = DATA_DIR / "config.ini"

DEFAULT_IMAGE_FORMATS = ("jpg", "jpeg", "png", "webp", "gif")
DEFAULT_THUMBNAIL_SIZES = (150, 300)
DEFAULT_CONCURRENCY = 2


@dataclasses.dataclass(frozen=True)
class ThumbnailConfig:
    sizes: tuple[int, ...] = DEFAULT_THUMBNAIL_SIZES
    format: str = "webp"
    quality: int = 85


@dataclasses.dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    file: Optional[pathlib.Path] = None


@dataclasses.dataclass(frozen=True)
class ProcessingConfig:
    temp_dir: pathlib.Path
    cache_dir: pathlib.Path
    thumbnails_dir: pathlib.Path
    allowed_image_formats: tuple[str, ...] = DEFAULT_IMAGE_FORMATS
    thumbnails: ThumbnailConfig = dataclasses.field(default_factory=ThumbnailConfig)
    concurrency: int = DEFAULT_CONCURRENCY
    logging: LoggingConfig = dataclasses.field(default_factory=LoggingConfig)

    def validate(self) -> "ProcessingConfig":
        """Raise ConfigurationError if any required setting is unusable."""
        for name in ("temp_dir", "cache_dir", "thumbnails_dir"):
            value = getattr(self, name)
            if value is None or not str(value).strip():
                raise ConfigurationError(f"processing.{name} is not configured")
        if not self.allowed_image_formats:
            raise ConfigurationError("processing.allowed_image_formats is empty")
        if not self.thumbnails.sizes:
            raise ConfigurationError("thumbnails.sizes is empty")
        if any(size <= 0 for size in self.thumbnails.sizes):
            raise ConfigurationError("thumbnails.sizes must be positive integers")
        if self.thumbnails.format not in THUMBNAIL_FORMATS:
            raise ConfigurationError(f"Unsupported thumbnail format: {self.thumbnails.format}")
        if not 1 <= self.thumbnails.quality <= 100:
            raise ConfigurationError("thumbnails.quality must be between 1 and 100")
        if self.concurrency < 1:
            raise ConfigurationError("processing.concurrency must be at least 1")
        return self


def _split_list(value: str) -> tuple[str, ...]:
    return tuple(v.strip().lower() for v in value.split(",") if v.strip())


def _parse_sizes(value: str) -> tuple[int, ...]:
    try:
        return tuple(int(v) for v in _split_list(value))
    except ValueError as exc:
        raise ConfigurationError(f"thumbnails.sizes must be integers: {value!r}") from exc


def _required_path(parser: configparser.ConfigParser, option: str) -> pathlib.Path:
    value = parser.get("processing", option, fallback="").strip()
    if not value:
        raise ConfigurationError(f"processing.{option} is not configured")
    path = pathlib.Path(value).expanduser()
    if not path.is_absolute():
        path = DATA_DIR / path
    return path


def load_config(config_path: Optional[pathlib.Path] = None) -> ProcessingConfig:
    """Load configuration from config.ini.

    Defaults to `config.ini` in DATA_DIR.
    """
    path = config_path or DEFAULT_CONFIG_PATH
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {path}")

    parser = configparser.ConfigParser()
    parser.read(path)

    if not parser.has_section("processing"):
        raise ConfigurationError(f"[processing] section missing in {path}")

    try:
        concurrency = parser.getint(
            "processing", "concurrency", fallback=DEFAULT_CONCURRENCY
        )
        quality = parser.getint("thumbnails", "quality", fallback=85)
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc

    thumbs = ThumbnailConfig(
        sizes=_parse_sizes(
            parser.get(
                "thumbnails",
                "sizes",
                fallback=",".join(str(s) for s in DEFAULT_THUMBNAIL_SIZES),
            )
        ),
        format=parser.get("thumbnails", "format", fallback="webp").strip().lower(),
        quality=quality,
    )

    log_file = parser.get("logging", "file", fallback="").strip()
    logging_cfg = LoggingConfig(
        level=parser.get("logging", "level", fallback="INFO"),
        file=pathlib.Path(log_file).expanduser() if log_file else None,
    )

    config = ProcessingConfig(
        temp_dir=_required_path(parser, "temp_dir"),
        cache_dir=_required_path(parser, "cache_dir"),
        thumbnails_dir=_required_path(parser, "thumbnails_dir"),
        allowed_image_formats=_split_list(
            parser.get(
                "processing",
                "allowed_image_formats",
                fallback=",".join(DEFAULT_IMAGE_FORMATS),
            )
        ),
        thumbnails=thumbs,
        concurrency=concurrency,
        logging=logging_cfg,
    )
    return config.validate()


_cached_config: Optional[ProcessingConfig] = None


def get_config() -> ProcessingConfig:
    """Return the cached config singleton. Loads from disk on first call."""
    global _cached_config
    if _cached_config is None:
        _cached_config = load_config()
    return _cached_config


def reset_config_cache() -> None:
    """Clear the cached config (useful for tests)."""
    global _cached_config
    _cached_config = None


def write_default_config(
    config_path: pathlib.Path, data_dir: Optional[pathlib.Path] = None
) -> pathlib.Path:
    """Write a starter config.ini with working directories under data_dir."""
    base = data_dir or config_path.parent

    parser = configparser.ConfigParser()
    parser["processing"] = {
        "temp_dir": str(base / "tmp"),
        "cache_dir": str(base / "cache"),
        "thumbnails_dir": str(base / "thumbnails"),
        "allowed_image_formats": ",".join(DEFAULT_IMAGE_FORMATS),
        "concurrency": str(DEFAULT_CONCURRENCY),
    }
    parser["thumbnails"] = {
        "sizes": ",".join(str(s) for s in DEFAULT_THUMBNAIL_SIZES),
        "format": "webp",
        "quality": "85",
    }
    parser["logging"] = {
        "level": "INFO",
        "file": "",
    }

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with config_path.open("w") as handle:
        parser.write(handle)

    logger.debug(f"Wrote default config to {config_path}")
    return config_path
