"""SQLAlchemy adapter package for scrapesync."""

from __future__ import annotations

from .mappings import create_all_tables, mapper_registry, site_record_table
from .repositories import SqlAlchemySiteRecordRepository
from .unit_of_work import (
    SqlAlchemyUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemySiteRecordRepository",
    "SqlAlchemyUnitOfWork",
    "StartupError",
    "configured_engine",
    "create_all_tables",
    "is_started",
    "mapper_registry",
    "shutdown",
    "site_record_table",
    "startup",
]
