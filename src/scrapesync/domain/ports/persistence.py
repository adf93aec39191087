"""Ports for persisting site records."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from scrapesync.domain.model import SiteRecord


class WriteOutcome(StrEnum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


@dataclass(slots=True)
class UpsertCounts:
    """Per-outcome tally of an acknowledged upsert call."""

    created: int = 0
    updated: int = 0
    unchanged: int = 0

    def add(self, outcome: WriteOutcome) -> None:
        if outcome is WriteOutcome.CREATED:
            self.created += 1
        elif outcome is WriteOutcome.UPDATED:
            self.updated += 1
        else:
            self.unchanged += 1

    def extend(self, other: UpsertCounts) -> None:
        self.created += other.created
        self.updated += other.updated
        self.unchanged += other.unchanged

    @property
    def accepted(self) -> int:
        return self.created + self.updated + self.unchanged


@runtime_checkable
class SiteRecordRepository(Protocol):
    """Persistence contract for the site record collection.

    Writes are upserts keyed by the record identity: stored scalars are only
    replaced by non-empty incoming values, phone lists are unioned and capped,
    and the blacklist flag is never cleared.
    """

    async def find_by_urls(self, urls: Sequence[str]) -> dict[str, SiteRecord]: ...

    async def upsert_many(self, records: Sequence[SiteRecord]) -> UpsertCounts:
        """Upsert a batch whose identities are already unique within the batch."""
        ...

    async def upsert(self, record: SiteRecord) -> WriteOutcome: ...

    async def replace(self, record: SiteRecord) -> None:
        """Overwrite the stored document for ``record.url`` as-is."""
        ...

    async def scan(self, *, after: str | None, limit: int) -> list[SiteRecord]:
        """Return up to ``limit`` records ordered by url, starting after ``after``."""
        ...

    async def count(self) -> int: ...
