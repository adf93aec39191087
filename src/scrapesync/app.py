"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from logging import getLogger
from typing import TYPE_CHECKING

from scrapesync.adapters.filesystem import completed_mover, feed_archiver, list_csv_files
from scrapesync.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork, is_started, startup
from scrapesync.config import IngestConfig, get_ingest_config
from scrapesync.domain.ingest_pipeline import (
    BatchUpsertEngine,
    FeedSpec,
    blacklist_row_parser,
    normalize_stored_fields,
    parse_feed_row,
    parse_scrape_row,
)
from scrapesync.domain.model import IMPORT_RUN_ID, RunKind
from scrapesync.domain.ports.unit_of_work import RecordUnitOfWork
from scrapesync.domain.runs import PipelineSettings, RunCoordinator, RunRegistry

if TYPE_CHECKING:
    from scrapesync.domain.ingest_pipeline import FieldNormalizationResult
    from scrapesync.domain.model import ProgressSnapshot

UnitOfWorkFactory = Callable[[], RecordUnitOfWork]


log = getLogger(__name__)


def build_feeds(config: IngestConfig) -> dict[RunKind, FeedSpec]:
    """Describe where each run kind reads from and where its files go afterwards."""

    return {
        RunKind.IMPORT: FeedSpec(
            kind=RunKind.IMPORT,
            directory=config.import_dir,
            parse_row=parse_scrape_row,
            relocate=completed_mover(config.import_dir),
        ),
        RunKind.BLACKLIST: FeedSpec(
            kind=RunKind.BLACKLIST,
            directory=config.blacklist_dir,
            parse_row=blacklist_row_parser(),
            relocate=feed_archiver(config.archive_dir, "blacklist"),
            has_header=False,
            fatal_file_error_ends_run=False,
        ),
        RunKind.PHONE: FeedSpec(
            kind=RunKind.PHONE,
            directory=config.phone_dir,
            parse_row=parse_feed_row,
            relocate=feed_archiver(config.archive_dir, "phones"),
            has_header=False,
            fatal_file_error_ends_run=False,
        ),
    }


def build_coordinator(
    *,
    config: IngestConfig | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    registry: RunRegistry | None = None,
) -> RunCoordinator:
    effective_config = config or get_ingest_config()
    return RunCoordinator(
        engine=BatchUpsertEngine(unit_of_work_factory or SqlAlchemyUnitOfWork),
        feeds=build_feeds(effective_config),
        list_files=list_csv_files,
        settings=PipelineSettings(
            batch_size=effective_config.batch_size,
            inter_batch_delay=effective_config.inter_batch_delay,
            file_timeout=effective_config.file_timeout,
        ),
        registry=registry
        or RunRegistry(
            completed_retention=effective_config.completed_run_retention,
            stale_retention=effective_config.stale_run_retention,
        ),
    )


async def _ensure_started(unit_of_work_factory: UnitOfWorkFactory | None) -> UnitOfWorkFactory:
    if unit_of_work_factory is not None:
        return unit_of_work_factory
    if not is_started():
        await startup()
    return SqlAlchemyUnitOfWork


async def run_import(
    *,
    config: IngestConfig | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> ProgressSnapshot:
    """Import every CSV waiting in the import directory and return the final progress."""

    effective_uow = await _ensure_started(unit_of_work_factory)
    coordinator = build_coordinator(config=config, unit_of_work_factory=effective_uow)
    coordinator.start_import()
    return await _finish(coordinator, IMPORT_RUN_ID)


async def run_blacklist_update(
    *,
    url_column: int = 1,
    config: IngestConfig | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> ProgressSnapshot:
    effective_uow = await _ensure_started(unit_of_work_factory)
    coordinator = build_coordinator(config=config, unit_of_work_factory=effective_uow)
    run_id = coordinator.start_blacklist_update(url_column)
    return await _finish(coordinator, run_id)


async def run_phone_update(
    *,
    config: IngestConfig | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> ProgressSnapshot:
    effective_uow = await _ensure_started(unit_of_work_factory)
    coordinator = build_coordinator(config=config, unit_of_work_factory=effective_uow)
    run_id = coordinator.start_phone_update()
    return await _finish(coordinator, run_id)


async def _finish(coordinator: RunCoordinator, run_id: str) -> ProgressSnapshot:
    snapshot = await coordinator.wait(run_id)
    if snapshot is None:
        raise RuntimeError(f"Run {run_id} disappeared before it finished")
    log.info(
        "Run %s %s: files=%d/%d processed=%d skipped=%d created=%d updated=%d "
        "unchanged=%d errors=%d",
        run_id,
        snapshot.status,
        snapshot.completed_files,
        snapshot.total_files,
        snapshot.processed_records,
        snapshot.skipped_records,
        snapshot.created_count,
        snapshot.updated_count,
        snapshot.unchanged_count,
        len(snapshot.errors),
    )
    return snapshot


async def normalize_fields(
    *,
    batch_size: int | None = None,
    config: IngestConfig | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> FieldNormalizationResult:
    """Re-apply text and phone normalization to every stored record."""

    effective_uow = await _ensure_started(unit_of_work_factory)
    effective_batch = batch_size or (config or get_ingest_config()).batch_size
    log.info("Starting field normalization: batch_size=%s", effective_batch)
    return await normalize_stored_fields(effective_uow, batch_size=effective_batch)


async def collection_stats(*, unit_of_work_factory: UnitOfWorkFactory | None = None) -> int:
    """Return the number of stored site records."""

    effective_uow = await _ensure_started(unit_of_work_factory)
    async with effective_uow() as uow:
        total = await uow.repositories.records.count()
    log.info("Stored site records: %d", total)
    return total
