"""Domain model for crawl-result ingestion (pure, dependency-light)."""

from __future__ import annotations

from .errors import (
    DuplicateKeyError,
    ErrorKind,
    IngestError,
    NoInputFilesError,
    RowParseError,
    RunConflictError,
    RunTimeoutError,
    SourceReadError,
    StoreWriteError,
)
from .progress import (
    IMPORT_RUN_ID,
    STOPPED_BY_USER,
    ProgressSnapshot,
    RunKind,
    RunProgress,
    RunStatus,
)
from .record import MAX_PHONES, SCALAR_FIELDS, Identity, SiteRecord, identity_key

__all__ = [
    "IMPORT_RUN_ID",
    "MAX_PHONES",
    "SCALAR_FIELDS",
    "STOPPED_BY_USER",
    "DuplicateKeyError",
    "ErrorKind",
    "Identity",
    "IngestError",
    "NoInputFilesError",
    "ProgressSnapshot",
    "RowParseError",
    "RunConflictError",
    "RunKind",
    "RunProgress",
    "RunStatus",
    "RunTimeoutError",
    "SiteRecord",
    "SourceReadError",
    "StoreWriteError",
    "identity_key",
]
