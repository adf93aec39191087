"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import SiteRecordRepository, UpsertCounts, WriteOutcome
from .unit_of_work import RecordRepositories, RecordUnitOfWork, RepositoryCollection, UnitOfWork

__all__ = [
    "RecordRepositories",
    "RecordUnitOfWork",
    "RepositoryCollection",
    "SiteRecordRepository",
    "UnitOfWork",
    "UpsertCounts",
    "WriteOutcome",
]
