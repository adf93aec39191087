"""Acknowledged batch upserts with a per-item fallback."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from scrapesync.domain.model import DuplicateKeyError, IngestError
from scrapesync.domain.ports import RecordUnitOfWork, UpsertCounts

if TYPE_CHECKING:
    from collections.abc import Sequence

    from scrapesync.domain.model import SiteRecord

log = logging.getLogger(__name__)

type UnitOfWorkFactory = Callable[[], RecordUnitOfWork]


@dataclass(slots=True)
class BatchOutcome:
    """What one flush did: per-outcome counts plus one error entry per rejected item."""

    counts: UpsertCounts = field(default_factory=UpsertCounts)
    errors: list[str] = field(default_factory=list[str])

    @property
    def failed(self) -> int:
        return len(self.errors)


class BatchUpsertEngine:
    """Write reconciled batches through short-lived units of work.

    A batch is written as one bulk upsert and counted only after the commit
    returns. A duplicate-key failure rolls the batch back and replays every item
    in its own unit of work so one bad record cannot sink its siblings.
    """

    def __init__(self, unit_of_work_factory: UnitOfWorkFactory) -> None:
        self._unit_of_work_factory = unit_of_work_factory

    async def flush(self, records: Sequence[SiteRecord]) -> BatchOutcome:
        if not records:
            return BatchOutcome()
        try:
            counts = await self._write_batch(records)
        except DuplicateKeyError as exc:
            log.warning(
                "Bulk upsert of %d records hit a duplicate key (%s); retrying one by one",
                len(records),
                exc,
            )
            return await self._write_items(records)
        except IngestError as exc:
            log.exception("Bulk upsert of %d records failed", len(records))
            return BatchOutcome(errors=[_describe(record, exc) for record in records])
        log.info(
            "Flushed %d records: created=%d updated=%d unchanged=%d",
            len(records),
            counts.created,
            counts.updated,
            counts.unchanged,
        )
        return BatchOutcome(counts=counts)

    async def _write_batch(self, records: Sequence[SiteRecord]) -> UpsertCounts:
        async with self._unit_of_work_factory() as uow:
            counts = await uow.repositories.records.upsert_many(records)
            await uow.commit()
        return counts

    async def _write_items(self, records: Sequence[SiteRecord]) -> BatchOutcome:
        outcome = BatchOutcome()
        for record in records:
            try:
                async with self._unit_of_work_factory() as uow:
                    result = await uow.repositories.records.upsert(record)
                    await uow.commit()
            except IngestError as exc:
                log.warning("Upsert of %s rejected: %s", record.url, exc)
                outcome.errors.append(_describe(record, exc))
                continue
            outcome.counts.add(result)
        return outcome


def _describe(record: SiteRecord, exc: IngestError) -> str:
    return f"{record.url}: {exc.kind} error: {exc}"
