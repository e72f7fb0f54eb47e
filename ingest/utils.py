"""Utility functions for the ingestion pipeline."""

from __future__ import annotations

import hashlib
import re
from pathlib import Path


def natural_sort_key(name: str):
    """Sort key for names so 1, 2, 10 order correctly (not 1, 10, 2)."""
    parts = re.split(r"(\d+)", name)
    return [
        int(part) if part.isdecimal() else part.lower()
        for part in parts
    ]


def sanitize_key(key: str) -> str:
    """Turn an opaque identifier into a filesystem-safe token."""
    return re.sub(r"[^a-zA-Z0-9_-]", "_", key)


def storage_token(key: str) -> str:
    """Filesystem-safe name for `key` that stays unique per raw key.

    "user.1" and "user_1" both sanitize to "user_1"; the short sha256 suffix
    keeps their files apart.
    """
    digest = hashlib.sha256(key.encode("utf-8")).hexdigest()[:8]
    return f"{sanitize_key(key)}_{digest}"


def short_path(path: Path) -> str:
    """Return abbreviated path showing only parent folder + filename.

    Example: /very/long/path/to/folder/file.cbz -> folder/file.cbz
    """
    return f"{path.parent.name}/{path.name}"
