"""Streaming ingestion: row reading, parsing, reconciliation and batched upserts."""

from __future__ import annotations

from .batching import BatchOutcome, BatchUpsertEngine, UnitOfWorkFactory
from .maintenance import FieldNormalizationResult, normalize_stored_fields
from .parser import (
    ParseContext,
    RowParser,
    TypeCode,
    blacklist_row_parser,
    parse_date,
    parse_feed_row,
    parse_scrape_row,
)
from .pipeline import FeedSpec, RunControl, StreamIngestionPipeline
from .reconcile import PendingBatch, absorb, apply_update, merge_phones, reconcile
from .rows import SourceRow, iter_rows

__all__ = [
    "BatchOutcome",
    "BatchUpsertEngine",
    "FeedSpec",
    "FieldNormalizationResult",
    "ParseContext",
    "PendingBatch",
    "RowParser",
    "RunControl",
    "SourceRow",
    "StreamIngestionPipeline",
    "TypeCode",
    "UnitOfWorkFactory",
    "absorb",
    "apply_update",
    "blacklist_row_parser",
    "iter_rows",
    "merge_phones",
    "normalize_stored_fields",
    "parse_date",
    "parse_feed_row",
    "parse_scrape_row",
    "reconcile",
]
