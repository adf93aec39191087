"""Maintenance jobs that re-normalize records already in the store."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from scrapesync.domain.model import MAX_PHONES
from scrapesync.domain.normalization import clean_phone_number, clean_text, is_valid_phone_number

if TYPE_CHECKING:
    from scrapesync.domain.model import SiteRecord

    from .batching import UnitOfWorkFactory

log = logging.getLogger(__name__)

TEXT_FIELDS: Final[tuple[str, ...]] = ("title", "keywords", "meta_description")
DEFAULT_SCAN_BATCH_SIZE: Final[int] = 5000


@dataclass(slots=True)
class FieldNormalizationResult:
    scanned: int = 0
    updated: int = 0
    phones_dropped: int = 0
    phones_nonstandard: int = 0


async def normalize_stored_fields(
    unit_of_work_factory: UnitOfWorkFactory,
    *,
    batch_size: int = DEFAULT_SCAN_BATCH_SIZE,
) -> FieldNormalizationResult:
    """Re-clean long text fields and re-format phones of every stored record.

    Records are paged by url, one unit of work per page, and only changed records
    are written back.
    """

    if batch_size < 1:
        raise ValueError("batch_size must be positive")

    result = FieldNormalizationResult()
    after: str | None = None
    while True:
        async with unit_of_work_factory() as uow:
            records = uow.repositories.records
            page = await records.scan(after=after, limit=batch_size)
            if not page:
                break
            for record in page:
                result.scanned += 1
                if _normalize_record(record, result):
                    await records.replace(record)
                    result.updated += 1
            await uow.commit()
        after = page[-1].url
        log.info("Normalized fields: scanned=%d updated=%d", result.scanned, result.updated)

    log.info(
        "Field normalization done: scanned=%d updated=%d phones_dropped=%d phones_nonstandard=%d",
        result.scanned,
        result.updated,
        result.phones_dropped,
        result.phones_nonstandard,
    )
    return result


def _normalize_record(record: SiteRecord, result: FieldNormalizationResult) -> bool:
    changed = False
    for name in TEXT_FIELDS:
        value = getattr(record, name)
        if value is None:
            continue
        cleaned = clean_text(value) or None
        if cleaned != value:
            setattr(record, name, cleaned)
            changed = True

    phones: list[str] = []
    for phone in record.phones:
        formatted = clean_phone_number(phone, record.url)
        if formatted is None:
            log.warning("Dropping stored phone %r for %s", phone, record.url)
            result.phones_dropped += 1
            continue
        if formatted in phones:
            continue
        if len(phones) >= MAX_PHONES:
            result.phones_dropped += 1
            continue
        if not is_valid_phone_number(formatted, record.url):
            log.info("Phone %s for %s has a non-standard length", formatted, record.url)
            result.phones_nonstandard += 1
        phones.append(formatted)

    if phones != record.phones:
        record.phones = phones
        changed = True
    return changed
