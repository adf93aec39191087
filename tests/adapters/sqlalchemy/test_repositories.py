from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker

from scrapesync.adapters.sqlalchemy import SqlAlchemySiteRecordRepository
from scrapesync.domain.model import DuplicateKeyError
from scrapesync.domain.ports import SiteRecordRepository, WriteOutcome
from tests.helpers.records import FIXED_NOW, make_record

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

LATER = datetime(2024, 9, 1, tzinfo=UTC)


def make_repository(session: AsyncSession) -> SqlAlchemySiteRecordRepository:
    return SqlAlchemySiteRecordRepository(session, clock=lambda: FIXED_NOW)


@pytest.mark.asyncio
async def test_repository_satisfies_port(sqlite_engine: AsyncEngine) -> None:
    async with async_sessionmaker(sqlite_engine)() as session:
        assert isinstance(make_repository(session), SiteRecordRepository)


@pytest.mark.asyncio
async def test_upsert_many_inserts_then_merges(sqlite_engine: AsyncEngine) -> None:
    session_factory = async_sessionmaker(sqlite_engine, expire_on_commit=False)
    async with session_factory() as session:
        repository = make_repository(session)
        counts = await repository.upsert_many(
            [
                make_record("a.com", title="A", phones=["p1"]),
                make_record("b.com", email="b@b.com"),
            ]
        )
        await session.commit()
    assert (counts.created, counts.updated, counts.unchanged) == (2, 0, 0)

    async with session_factory() as session:
        repository = make_repository(session)
        counts = await repository.upsert_many(
            [
                make_record("a.com", title=None, phones=["p2"], date=LATER, is_blacklisted=True),
                make_record("b.com", email="b@b.com"),
            ]
        )
        await session.commit()
    assert (counts.created, counts.updated, counts.unchanged) == (0, 1, 1)

    async with session_factory() as session:
        found = await make_repository(session).find_by_urls(["A.com", "b.com", "c.com"])

    assert set(found) == {"a.com", "b.com"}
    a_record = found["a.com"]
    assert a_record.title == "A"
    assert a_record.phones == ["p1", "p2"]
    assert a_record.date == LATER
    assert a_record.is_blacklisted
    assert found["b.com"].date == FIXED_NOW


@pytest.mark.asyncio
async def test_single_upsert_reports_outcome(sqlite_engine: AsyncEngine) -> None:
    async with async_sessionmaker(sqlite_engine)() as session:
        repository = make_repository(session)

        assert await repository.upsert(make_record("a.com")) is WriteOutcome.CREATED
        assert await repository.upsert(make_record("a.com")) is WriteOutcome.UNCHANGED
        assert await repository.upsert(make_record("a.com", title="T")) is WriteOutcome.UPDATED


@pytest.mark.asyncio
async def test_duplicate_insert_is_translated(sqlite_engine: AsyncEngine) -> None:
    async with async_sessionmaker(sqlite_engine)() as session:
        repository = make_repository(session)

        with pytest.raises(DuplicateKeyError):
            await repository.upsert_many([make_record("a.com"), make_record("A.com")])


@pytest.mark.asyncio
async def test_scan_pages_in_url_order_and_count(sqlite_engine: AsyncEngine) -> None:
    async with async_sessionmaker(sqlite_engine)() as session:
        repository = make_repository(session)
        await repository.upsert_many([make_record(f"site{index}.com") for index in range(5)])

        first = await repository.scan(after=None, limit=2)
        rest = await repository.scan(after=first[-1].url, limit=10)

        assert [record.url for record in first] == ["site0.com", "site1.com"]
        assert [record.url for record in rest] == ["site2.com", "site3.com", "site4.com"]
        assert await repository.count() == 5


@pytest.mark.asyncio
async def test_replace_overwrites_fields(sqlite_engine: AsyncEngine) -> None:
    async with async_sessionmaker(sqlite_engine)() as session:
        repository = make_repository(session)
        await repository.upsert(make_record("a.com", title="Old", phones=["p1", "p2"]))

        await repository.replace(make_record("a.com", title=None, phones=["p1"], date=FIXED_NOW))
        stored = (await repository.find_by_urls(["a.com"]))["a.com"]

        assert stored.title is None
        assert stored.phones == ["p1"]
