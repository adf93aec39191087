from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import pytest

from scrapesync.app import build_coordinator
from scrapesync.domain.model import (
    IMPORT_RUN_ID,
    STOPPED_BY_USER,
    NoInputFilesError,
    ProgressSnapshot,
    RunConflictError,
    RunStatus,
)
from tests.helpers.records import SCRAPE_HEADER, FakeUnitOfWork, write_csv

if TYPE_CHECKING:
    from collections.abc import Callable

    from scrapesync.config import IngestConfig
    from tests.helpers.records import FakeStore


class GatedUnitOfWork(FakeUnitOfWork):
    """Blocks every commit until the test opens the gate."""

    gate: asyncio.Event

    async def commit(self) -> None:
        await self.gate.wait()
        await super().commit()


@pytest.mark.asyncio
async def test_import_runs_to_completion(
    ingest_config: IngestConfig,
    fake_store: FakeStore,
    fake_uow_factory: Callable[[], FakeUnitOfWork],
) -> None:
    write_csv(
        ingest_config.import_dir / "scrape.csv",
        [("a.com", "[TI]", "A", ""), ("b.com", "[EM]", "x@b.com", "")],
        header=SCRAPE_HEADER,
    )
    coordinator = build_coordinator(config=ingest_config, unit_of_work_factory=fake_uow_factory)

    started = coordinator.start_import()
    final = await coordinator.wait(IMPORT_RUN_ID)

    assert started.is_running
    assert final is not None
    assert final.status is RunStatus.COMPLETE
    assert final.created_count == 2
    assert coordinator.get_import_progress() == final
    assert set(fake_store.records) == {"a.com", "b.com"}


def test_import_without_files_is_rejected(
    ingest_config: IngestConfig,
    fake_uow_factory: Callable[[], FakeUnitOfWork],
) -> None:
    coordinator = build_coordinator(config=ingest_config, unit_of_work_factory=fake_uow_factory)

    with pytest.raises(NoInputFilesError):
        coordinator.start_import()

    assert ingest_config.import_dir.is_dir()
    assert coordinator.get_import_progress() is None


@pytest.mark.asyncio
async def test_second_import_conflicts_while_first_runs(
    ingest_config: IngestConfig,
    fake_store: FakeStore,
) -> None:
    write_csv(ingest_config.import_dir / "a.csv", [("a.com", "[TI]", "A", "")], header=SCRAPE_HEADER)
    gate = asyncio.Event()

    def factory() -> FakeUnitOfWork:
        uow = GatedUnitOfWork(fake_store)
        uow.gate = gate
        return uow

    coordinator = build_coordinator(config=ingest_config, unit_of_work_factory=factory)
    coordinator.start_import()
    await asyncio.sleep(0.01)

    with pytest.raises(RunConflictError):
        coordinator.start_import()

    gate.set()
    final = await coordinator.wait(IMPORT_RUN_ID)
    assert final is not None
    assert final.status is RunStatus.COMPLETE


@pytest.mark.asyncio
async def test_stop_import_marks_run_stopped_and_lets_write_finish(
    ingest_config: IngestConfig,
    fake_store: FakeStore,
) -> None:
    write_csv(ingest_config.import_dir / "a.csv", [("a.com", "[TI]", "A", "")], header=SCRAPE_HEADER)
    write_csv(ingest_config.import_dir / "b.csv", [("b.com", "[TI]", "B", "")], header=SCRAPE_HEADER)
    gate = asyncio.Event()

    def factory() -> FakeUnitOfWork:
        uow = GatedUnitOfWork(fake_store)
        uow.gate = gate
        return uow

    coordinator = build_coordinator(config=ingest_config, unit_of_work_factory=factory)
    received: list[ProgressSnapshot] = []
    coordinator.start_import()
    coordinator.subscribe(IMPORT_RUN_ID, received.append)
    await asyncio.sleep(0.01)

    assert coordinator.stop_import()
    stopped = coordinator.get_import_progress()
    assert stopped is not None
    assert stopped.is_complete
    assert stopped.status is RunStatus.STOPPED
    assert STOPPED_BY_USER in stopped.errors

    gate.set()
    final = await coordinator.wait(IMPORT_RUN_ID)
    assert final is not None
    assert final.completed_files == 1
    assert final.created_count == 1
    assert fake_store.get("a.com") is not None
    assert fake_store.get("b.com") is None
    assert (ingest_config.import_dir / "b.csv").exists()
    assert any(snapshot.status is RunStatus.STOPPED for snapshot in received)
    assert not coordinator.stop_import()


@pytest.mark.asyncio
async def test_maintenance_runs_are_keyed_and_concurrent(
    ingest_config: IngestConfig,
    fake_store: FakeStore,
    fake_uow_factory: Callable[[], FakeUnitOfWork],
) -> None:
    write_csv(ingest_config.blacklist_dir / "list.csv", [("Acme", "acme.com")])
    write_csv(ingest_config.phone_dir / "phones.csv", [("acme.com", "[PN]", "07508770171")])
    coordinator = build_coordinator(config=ingest_config, unit_of_work_factory=fake_uow_factory)

    blacklist_id = coordinator.start_blacklist_update(url_column=2)
    phone_id = coordinator.start_phone_update()
    blacklist = await coordinator.wait(blacklist_id)
    phones = await coordinator.wait(phone_id)

    assert blacklist_id != phone_id
    assert blacklist is not None
    assert phones is not None
    assert blacklist.status is RunStatus.COMPLETE
    assert phones.status is RunStatus.COMPLETE
    stored = fake_store.get("acme.com")
    assert stored is not None
    assert stored.is_blacklisted
    assert stored.phones == ["[+44] 7508770171"]
    assert list(ingest_config.archive_dir.rglob("blacklist_list_*.csv"))
    assert list(ingest_config.archive_dir.rglob("phones_phones_*.csv"))


@pytest.mark.asyncio
async def test_stop_run_for_unknown_or_finished_runs(
    ingest_config: IngestConfig,
    fake_uow_factory: Callable[[], FakeUnitOfWork],
) -> None:
    write_csv(ingest_config.phone_dir / "phones.csv", [("acme.com", "[PN]", "07508770171")])
    coordinator = build_coordinator(config=ingest_config, unit_of_work_factory=fake_uow_factory)

    run_id = coordinator.start_phone_update()
    await coordinator.wait(run_id)

    assert not coordinator.stop_run(run_id)
    assert not coordinator.stop_run("no-such-run")
    assert coordinator.get_progress("no-such-run") is None


@pytest.mark.asyncio
async def test_restart_after_stop_waits_for_the_last_write(
    ingest_config: IngestConfig,
    fake_store: FakeStore,
) -> None:
    write_csv(ingest_config.import_dir / "a.csv", [("a.com", "[TI]", "A", "")], header=SCRAPE_HEADER)
    gate = asyncio.Event()

    def factory() -> FakeUnitOfWork:
        uow = GatedUnitOfWork(fake_store)
        uow.gate = gate
        return uow

    coordinator = build_coordinator(config=ingest_config, unit_of_work_factory=factory)
    coordinator.start_import()
    await asyncio.sleep(0.01)
    assert coordinator.stop_import()

    with pytest.raises(RunConflictError):
        coordinator.start_import()

    gate.set()
    await coordinator.wait(IMPORT_RUN_ID)
    assert not (ingest_config.import_dir / "a.csv").exists()

    write_csv(ingest_config.import_dir / "b.csv", [("b.com", "[TI]", "B", "")], header=SCRAPE_HEADER)
    restarted = coordinator.start_import()
    final = await coordinator.wait(IMPORT_RUN_ID)

    assert restarted.is_running
    assert final is not None
    assert final.status is RunStatus.COMPLETE
    assert final.errors == ()
    assert fake_store.get("b.com") is not None
