"""Error taxonomy for the ingestion pipeline.

User-input errors carry a message that is safe to show to an uploader.
Infrastructure failures surface as InternalProcessingError with an opaque
message; the detail lives in the logs and the exception chain.
"""

from __future__ import annotations

from typing import Optional


class IngestError(Exception):
    """Base class for every error raised by the pipeline."""

    user_message = "Processing failed, try again"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.user_message)


class ConfigurationError(IngestError):
    """A required setting is missing or invalid. Fatal at startup."""


class UserInputError(IngestError):
    """The uploaded file itself is the problem."""

    def __init__(self, message: Optional[str] = None, filename: Optional[str] = None):
        super().__init__(message)
        self.filename = filename
        if message:
            self.user_message = message


class UnsupportedFormatError(UserInputError):
    user_message = "Unsupported archive format"


class BadArchiveError(UserInputError):
    user_message = "Archive could not be read"


class NoImagesError(UserInputError):
    user_message = "Archive contains no images"


class InvalidPageError(UserInputError):
    """An entry that looked like an image failed structural inspection."""

    def __init__(self, entry_name: str, filename: Optional[str] = None):
        super().__init__(f"Invalid image in archive: {entry_name}", filename=filename)
        self.entry_name = entry_name


class InternalProcessingError(IngestError):
    """Opaque wrapper for infrastructure failures (disk, cache, consistency).

    Always raised with the default message so internal paths never reach
    the uploader.
    """
