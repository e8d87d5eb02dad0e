"""Ferry exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Batch-level errors abort a whole call; item-level errors are recorded
into one item's result while the batch keeps going.
"""

from __future__ import annotations


class FerryError(Exception):
    """Base exception for all Ferry failures."""


class FerryConfigError(FerryError):
    """Raised for invalid runtime configuration values."""


class FerryBatchFileError(FerryError):
    """Raised for unreadable or invalid batch files."""


class BatchValidationError(FerryError):
    """Raised when a submitted batch is empty or malformed."""


class SetupError(FerryError):
    """Raised when required configuration is missing for a batch run."""


class AuthorizationError(FerryError):
    """Raised when the caller secret is missing or does not match."""


class ItemError(FerryError):
    """Base class for failures scoped to one batch item."""


class ToolNotFoundError(ItemError):
    """Raised when no retrieval tool resolution strategy succeeds."""


class ProcessSpawnError(ItemError):
    """Raised when the retrieval tool process cannot be started."""


class DownloadFailedError(ItemError):
    """Raised when the retrieval tool exits abnormally or leaves no output."""

    def __init__(self, message: str, exit_code: int | None = None) -> None:
        super().__init__(message)
        self.exit_code = exit_code


class UploadError(ItemError):
    """Raised when object storage rejects or fails an upload."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PersistenceError(ItemError):
    """Raised when the document store write fails."""


class FeedError(FerryError):
    """Raised when a channel listing cannot be fetched or parsed."""
