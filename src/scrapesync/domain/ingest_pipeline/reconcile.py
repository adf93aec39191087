"""Deterministic merge policy for records sharing an identity."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from scrapesync.domain.model import MAX_PHONES, SCALAR_FIELDS, identity_key

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator
    from datetime import datetime

    from scrapesync.domain.model import Identity, SiteRecord

log = logging.getLogger(__name__)


def merge_phones(*phone_lists: Iterable[str], url: str = "", cap: int = MAX_PHONES) -> list[str]:
    """Union the phone lists in order, dropping duplicates and anything past ``cap``."""

    merged: list[str] = []
    dropped: list[str] = []
    for phones in phone_lists:
        for phone in phones:
            if phone in merged or phone in dropped:
                continue
            if len(merged) < cap:
                merged.append(phone)
            else:
                dropped.append(phone)
    if dropped:
        log.warning("Dropping %d phone(s) over the limit of %d for %s: %s", len(dropped), cap, url, dropped)
    return merged


def _latest(current: datetime | None, other: datetime | None) -> datetime | None:
    if current is None:
        return other
    if other is None:
        return current
    return max(current, other)


def absorb(primary: SiteRecord, incoming: SiteRecord) -> None:
    """Fold ``incoming`` into ``primary`` (same identity, ``primary`` arrived first)."""

    for name in SCALAR_FIELDS:
        if not getattr(primary, name):
            value = getattr(incoming, name)
            if value:
                setattr(primary, name, value)
    primary.date = _latest(primary.date, incoming.date)
    primary.phones = merge_phones(primary.phones, incoming.phones, url=primary.url)
    primary.is_blacklisted = primary.is_blacklisted or incoming.is_blacklisted


def reconcile(records: Iterable[SiteRecord]) -> list[SiteRecord]:
    """Group ``records`` by identity and merge each group, keeping first-seen order."""

    batch = PendingBatch()
    for record in records:
        batch.add(record)
    return batch.drain()


def apply_update(stored: SiteRecord, incoming: SiteRecord) -> bool:
    """Apply ``incoming`` on top of a stored record in place.

    Scalars are fill-only: a populated stored value is kept, so the earliest
    non-empty value wins regardless of how rows were split into batches.
    Returns whether the stored record changed.
    """

    changed = False
    for name in SCALAR_FIELDS:
        value = getattr(incoming, name)
        if value and not getattr(stored, name):
            setattr(stored, name, value)
            changed = True

    date = _latest(stored.date, incoming.date)
    if date != stored.date:
        stored.date = date
        changed = True

    phones = merge_phones(stored.phones, incoming.phones, url=stored.url)
    if phones != stored.phones:
        stored.phones = phones
        changed = True

    if incoming.is_blacklisted and not stored.is_blacklisted:
        stored.is_blacklisted = True
        changed = True
    return changed


class PendingBatch:
    """Records waiting for the next flush, merged by identity on arrival."""

    __slots__ = ("_records",)

    def __init__(self) -> None:
        self._records: dict[Identity, SiteRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __bool__(self) -> bool:
        return bool(self._records)

    def __iter__(self) -> Iterator[SiteRecord]:
        return iter(self._records.values())

    def add(self, record: SiteRecord) -> None:
        key = identity_key(record)
        existing = self._records.get(key)
        if existing is None:
            first = record.copy()
            first.phones = merge_phones(record.phones, url=record.url)
            self._records[key] = first
        else:
            absorb(existing, record)

    def drain(self) -> list[SiteRecord]:
        records = list(self._records.values())
        self._records.clear()
        return records
