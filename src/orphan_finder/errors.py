"""Error kinds raised by orphan-finder.

Every error carries the offending path (when one exists) so the CLI can
report it without inspecting the message.
"""

from __future__ import annotations

from pathlib import Path


class OrphanFinderError(RuntimeError):
    """Base class for all orphan-finder failures."""

    def __init__(self, message: str, *, path: str | Path | None = None) -> None:
        super().__init__(message)
        self.path = str(path) if path is not None else None


class IngestError(OrphanFinderError):
    """Raised when a corpus document cannot be read as text."""


class ConfigurationError(OrphanFinderError):
    """Raised for invalid roots or candidates that normalize to an empty phrase."""


class PersistenceError(OrphanFinderError):
    """Raised when the index location cannot be read or written."""


class DeletionError(OrphanFinderError):
    """Raised when an orphaned file cannot be removed."""
