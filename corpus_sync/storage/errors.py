"""
Error types raised by the storage layer.

Every storage failure is surfaced to the caller; none is retried or
swallowed here. StorageError carries the phase that failed so operators
can tell a broken delete from a broken batch insert.
"""
from typing import Optional


class ConfigurationError(ValueError):
    """Raised when required configuration is missing or invalid."""


class StorageError(RuntimeError):
    """
    Failure reported by the underlying DuckDB engine.

    Attributes:
        phase: Step that failed (begin, delete-release, delete-package,
            delete-record, insert-batch-N, commit, read)
    """

    def __init__(self, phase: str, message: Optional[str] = None):
        self.phase = phase
        super().__init__(f"{phase} failed: {message}" if message else f"{phase} failed")


class CorpusIntegrityError(StorageError):
    """Raised when rows expected to be related are missing."""

    def __init__(self, message: str):
        super().__init__(
            "read",
            f"{message}. The corpus relationships may be broken, re-run the sync to rebuild it",
        )
