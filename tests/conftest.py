from __future__ import annotations

import os
from dataclasses import replace
from typing import TYPE_CHECKING

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine

from scrapesync.adapters.sqlalchemy import create_all_tables
from scrapesync.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork, shutdown, startup
from scrapesync.config import IngestConfig
from tests.helpers.records import FakeStore, FakeUnitOfWork, fake_unit_of_work_factory

os.environ.setdefault("DATABASE_URI", "sqlite+aiosqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncEngine


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def fake_uow_factory(fake_store: FakeStore) -> Callable[[], FakeUnitOfWork]:
    return fake_unit_of_work_factory(fake_store)


@pytest.fixture
def ingest_config(tmp_path: Path) -> IngestConfig:
    return replace(
        IngestConfig.under(tmp_path / "imports"),
        batch_size=50,
        inter_batch_delay=0.0,
        file_timeout=None,
    )


@pytest_asyncio.fixture
async def sqlite_engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'scrapesync-test.db'}")
    await create_all_tables(engine)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def sqlite_unit_of_work(
    sqlite_engine: AsyncEngine,
) -> AsyncIterator[Callable[[], SqlAlchemyUnitOfWork]]:
    await startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyUnitOfWork:
        return SqlAlchemyUnitOfWork()

    try:
        yield factory
    finally:
        await shutdown()
