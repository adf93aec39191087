"""Reusable fakes and builders for site-record tests."""

from __future__ import annotations

import csv
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Literal, Self

from scrapesync.domain.ingest_pipeline import apply_update, merge_phones
from scrapesync.domain.model import DuplicateKeyError, IngestError, SiteRecord, identity_key
from scrapesync.domain.ports import RecordRepositories, UpsertCounts, WriteOutcome

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence
    from pathlib import Path
    from types import TracebackType

FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)

SCRAPE_HEADER = ("URL", "CODE", "RESULT", "DATE")


def make_record(url: str = "example.com", **overrides: Any) -> SiteRecord:
    return SiteRecord(url=url, **overrides)


def write_csv(path: Path, rows: Iterable[Sequence[str]], *, header: Sequence[str] | None = None) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as handle:
        writer = csv.writer(handle)
        if header is not None:
            writer.writerow(header)
        writer.writerows(rows)
    return path


@dataclass
class FakeStore:
    """Committed state shared by every fake unit of work."""

    records: dict[str, SiteRecord] = field(default_factory=dict[str, SiteRecord])
    bulk_error: IngestError | None = None
    rejected_urls: set[str] = field(default_factory=set[str])
    bulk_calls: int = 0
    single_calls: int = 0
    commits: int = 0

    def get(self, url: str) -> SiteRecord | None:
        return self.records.get(url.lower())


class FakeSiteRecordRepository:
    """In-memory repository with the same merge policy as the SQL adapter."""

    def __init__(self, store: FakeStore, staged: dict[str, SiteRecord]) -> None:
        self.store = store
        self.staged = staged

    async def find_by_urls(self, urls: Sequence[str]) -> dict[str, SiteRecord]:
        found: dict[str, SiteRecord] = {}
        for url in urls:
            record = self.staged.get(url.lower())
            if record is not None:
                found[record.identity] = record.copy()
        return found

    async def upsert_many(self, records: Sequence[SiteRecord]) -> UpsertCounts:
        self.store.bulk_calls += 1
        if self.store.bulk_error is not None:
            raise self.store.bulk_error
        counts = UpsertCounts()
        for record in records:
            counts.add(self._write(record))
        return counts

    async def upsert(self, record: SiteRecord) -> WriteOutcome:
        self.store.single_calls += 1
        return self._write(record)

    async def replace(self, record: SiteRecord) -> None:
        self.staged[identity_key(record)] = record.copy()

    async def scan(self, *, after: str | None, limit: int) -> list[SiteRecord]:
        keys = sorted(key for key in self.staged if after is None or key > after)
        return [self.staged[key].copy() for key in keys[:limit]]

    async def count(self) -> int:
        return len(self.staged)

    def _write(self, record: SiteRecord) -> WriteOutcome:
        key = identity_key(record)
        if key in self.store.rejected_urls:
            raise DuplicateKeyError(f"duplicate key value: {key}")
        stored = self.staged.get(key)
        if stored is None:
            created = record.copy()
            created.url = key
            created.date = created.date or FIXED_NOW
            created.phones = merge_phones(record.phones, url=key)
            self.staged[key] = created
            return WriteOutcome.CREATED
        if apply_update(stored, record):
            return WriteOutcome.UPDATED
        return WriteOutcome.UNCHANGED


class FakeUnitOfWork:
    """Stages writes on a copy of the store and publishes them on commit."""

    def __init__(self, store: FakeStore) -> None:
        self.store = store
        self._staged: dict[str, SiteRecord] = {}
        self._repositories: RecordRepositories | None = None

    @property
    def repositories(self) -> RecordRepositories:
        if self._repositories is None:
            raise RuntimeError("Unit of work not entered")
        return self._repositories

    async def __aenter__(self) -> Self:
        self._staged = {key: record.copy() for key, record in self.store.records.items()}
        self._repositories = RecordRepositories(
            records=FakeSiteRecordRepository(self.store, self._staged)
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        self._repositories = None
        return False

    async def commit(self) -> None:
        self.store.records = {key: record.copy() for key, record in self._staged.items()}
        self.store.commits += 1

    async def rollback(self) -> None:
        self._staged.clear()
        self._staged.update({key: record.copy() for key, record in self.store.records.items()})


def fake_unit_of_work_factory(store: FakeStore) -> Callable[[], FakeUnitOfWork]:
    def factory() -> FakeUnitOfWork:
        return FakeUnitOfWork(store)

    return factory
