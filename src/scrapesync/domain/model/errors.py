"""Closed error taxonomy shared by the ingestion components.

Every failure raised inside the pipeline carries an :class:`ErrorKind`; callers
switch on the kind instead of inspecting messages.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorKind(StrEnum):
    PARSE = "parse"
    DUPLICATE_KEY = "duplicate_key"
    IO = "io"
    TIMEOUT = "timeout"
    CONFLICT = "conflict"


class IngestError(RuntimeError):
    """Base class for ingestion failures."""

    kind: ErrorKind = ErrorKind.IO


class RowParseError(IngestError):
    """Raised when a delimited row cannot be turned into a record."""

    kind = ErrorKind.PARSE

    def __init__(self, message: str, *, line_number: int | None = None) -> None:
        super().__init__(message)
        self.line_number = line_number


class DuplicateKeyError(IngestError):
    """Raised by stores when a write violates the identity uniqueness constraint."""

    kind = ErrorKind.DUPLICATE_KEY


class SourceReadError(IngestError):
    """Raised when a source file cannot be opened or decoded."""

    kind = ErrorKind.IO


class NoInputFilesError(IngestError):
    """Raised when a run is requested but its input directory holds no files."""

    kind = ErrorKind.IO


class RunTimeoutError(IngestError):
    """Raised when a file exceeds its processing ceiling."""

    kind = ErrorKind.TIMEOUT


class RunConflictError(IngestError):
    """Raised when a run is started while an equivalent run is still active."""

    kind = ErrorKind.CONFLICT


class StoreWriteError(IngestError):
    """Raised by stores when a write fails for any reason other than a duplicate key."""

    kind = ErrorKind.IO
