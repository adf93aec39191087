"""Repository implementations backed by SQLAlchemy async sessions."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Final

from sqlalchemy import bindparam, func, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from scrapesync.adapters.sqlalchemy.mappings import site_record_table
from scrapesync.domain.ingest_pipeline import apply_update, merge_phones
from scrapesync.domain.model import (
    SCALAR_FIELDS,
    DuplicateKeyError,
    SiteRecord,
    StoreWriteError,
    identity_key,
)
from scrapesync.domain.ports import UpsertCounts, WriteOutcome

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy import Executable, Row
    from sqlalchemy.ext.asyncio import AsyncSession

log = logging.getLogger(__name__)

# Keeps IN (...) lists under SQLite's bound-parameter limit.
LOOKUP_CHUNK_SIZE: Final[int] = 500


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _record_from_row(row: Row[Any]) -> SiteRecord:
    mapping = row._mapping  # noqa: SLF001
    return SiteRecord(
        url=mapping["url"],
        date=mapping["date"],
        phones=list(mapping["phones"]),
        is_blacklisted=bool(mapping["is_blacklisted"]),
        **{name: mapping[name] for name in SCALAR_FIELDS},
    )


def _values_from_record(record: SiteRecord) -> dict[str, Any]:
    return {
        "url": identity_key(record),
        "date": record.date,
        "phones": list(record.phones),
        "is_blacklisted": record.is_blacklisted,
        **record.scalars(),
    }


class SqlAlchemySiteRecordRepository:
    def __init__(self, session: AsyncSession, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self.session = session
        self._clock = clock

    async def find_by_urls(self, urls: Sequence[str]) -> dict[str, SiteRecord]:
        keys = list(dict.fromkeys(url.lower() for url in urls))
        found: dict[str, SiteRecord] = {}
        for start in range(0, len(keys), LOOKUP_CHUNK_SIZE):
            chunk = keys[start : start + LOOKUP_CHUNK_SIZE]
            stmt = select(site_record_table).where(site_record_table.c.url.in_(chunk))
            result = await self._execute(stmt)
            for row in result:
                record = _record_from_row(row)
                found[record.identity] = record
        return found

    async def upsert_many(self, records: Sequence[SiteRecord]) -> UpsertCounts:
        counts = UpsertCounts()
        if not records:
            return counts

        stored = await self.find_by_urls([record.url for record in records])
        now = self._clock()
        inserts: list[dict[str, Any]] = []
        updates: list[dict[str, Any]] = []
        for record in records:
            existing = stored.get(identity_key(record))
            if existing is None:
                values = _values_from_record(record)
                values["date"] = record.date or now
                values["phones"] = merge_phones(record.phones, url=record.url)
                values["created_at"] = now
                values["updated_at"] = now
                inserts.append(values)
                counts.add(WriteOutcome.CREATED)
            elif apply_update(existing, record):
                values = _values_from_record(existing)
                values["updated_at"] = now
                values["match_url"] = values["url"]
                updates.append(values)
                counts.add(WriteOutcome.UPDATED)
            else:
                counts.add(WriteOutcome.UNCHANGED)

        if inserts:
            await self._execute(insert(site_record_table), inserts)
        if updates:
            await self._execute(self._update_by_url(), updates)
        log.debug(
            "Upserted %d records: %d new, %d changed",
            len(records),
            len(inserts),
            len(updates),
        )
        return counts

    async def upsert(self, record: SiteRecord) -> WriteOutcome:
        counts = await self.upsert_many([record])
        if counts.created:
            return WriteOutcome.CREATED
        if counts.updated:
            return WriteOutcome.UPDATED
        return WriteOutcome.UNCHANGED

    async def replace(self, record: SiteRecord) -> None:
        values = _values_from_record(record)
        values["updated_at"] = self._clock()
        values["match_url"] = values["url"]
        await self._execute(self._update_by_url(), [values])

    async def scan(self, *, after: str | None, limit: int) -> list[SiteRecord]:
        stmt = select(site_record_table).order_by(site_record_table.c.url).limit(limit)
        if after is not None:
            stmt = stmt.where(site_record_table.c.url > after)
        result = await self._execute(stmt)
        return [_record_from_row(row) for row in result]

    async def count(self) -> int:
        stmt = select(func.count()).select_from(site_record_table)
        result = await self._execute(stmt)
        return int(result.scalar_one())

    @staticmethod
    def _update_by_url() -> Executable:
        return update(site_record_table).where(
            site_record_table.c.url == bindparam("match_url")
        )

    async def _execute(
        self,
        stmt: Executable,
        params: list[dict[str, Any]] | None = None,
    ) -> Any:
        try:
            return await self.session.execute(stmt, params)
        except IntegrityError as exc:
            raise DuplicateKeyError(str(exc.orig)) from exc
        except SQLAlchemyError as exc:
            raise StoreWriteError(str(exc)) from exc
