from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine

from scrapesync.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)
from tests.helpers.records import make_record

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable
    from pathlib import Path


@pytest_asyncio.fixture(autouse=True)
async def reset_unit_of_work_state() -> AsyncIterator[None]:
    await shutdown()
    yield
    await shutdown()


@pytest.mark.asyncio
async def test_sqlalchemy_unit_of_work_requires_startup() -> None:
    with pytest.raises(StartupError):
        SqlAlchemyUnitOfWork()


@pytest.mark.asyncio
async def test_startup_requires_force_for_reconfiguration(tmp_path: Path) -> None:
    engine_a = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'a.db'}")
    engine_b = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'b.db'}")

    await startup(engine=engine_a, force=True)

    with pytest.raises(StartupError):
        await startup(engine=engine_b)

    await startup(engine=engine_b, force=True)
    assert configured_engine() is engine_b
    assert is_started()
    await engine_a.dispose()


@pytest.mark.asyncio
async def test_commit_persists_and_exit_without_commit_discards(
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
) -> None:
    async with sqlite_unit_of_work() as uow:
        await uow.repositories.records.upsert(make_record("kept.com"))
        await uow.commit()

    async with sqlite_unit_of_work() as uow:
        await uow.repositories.records.upsert(make_record("dropped.com"))

    async with sqlite_unit_of_work() as uow:
        found = await uow.repositories.records.find_by_urls(["kept.com", "dropped.com"])

    assert set(found) == {"kept.com"}


@pytest.mark.asyncio
async def test_repositories_unavailable_outside_context(
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
) -> None:
    uow = sqlite_unit_of_work()

    with pytest.raises(StartupError):
        _ = uow.repositories
