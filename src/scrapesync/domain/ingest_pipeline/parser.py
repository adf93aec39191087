"""Turn raw delimited rows into partial site records."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Final

from scrapesync.domain.model import RowParseError, SiteRecord
from scrapesync.domain.normalization import (
    clean_phone_number,
    clean_social_url,
    clean_text,
    is_valid_domain,
    normalize_url,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .rows import SourceRow

log = logging.getLogger(__name__)


class TypeCode(StrEnum):
    TITLE = "[TI]"
    KEYWORDS = "[KW]"
    STATUS = "[SC]"
    ERROR_STATUS = "[ER]"
    POSTCODE = "[PC]"
    EMAIL = "[EM]"
    TWITTER = "[TW]"
    FACEBOOK = "[FB]"
    LINKEDIN = "[LK]"
    PINTEREST = "[PT]"
    YOUTUBE = "[YT]"
    INSTAGRAM = "[IS]"
    REDIRECT = "[RD]"
    META_DESCRIPTION = "[MD]"
    PHONE = "[PN]"


FIELD_BY_CODE: Final[dict[TypeCode, tuple[str, Callable[[str | None], str]]]] = {
    TypeCode.TITLE: ("title", clean_text),
    TypeCode.KEYWORDS: ("keywords", clean_text),
    TypeCode.STATUS: ("status_code", clean_text),
    TypeCode.ERROR_STATUS: ("status_code", clean_text),
    TypeCode.POSTCODE: ("postcode", clean_text),
    TypeCode.EMAIL: ("email", clean_text),
    TypeCode.TWITTER: ("twitter", clean_social_url),
    TypeCode.FACEBOOK: ("facebook", clean_social_url),
    TypeCode.LINKEDIN: ("linkedin", clean_social_url),
    TypeCode.PINTEREST: ("pinterest", clean_social_url),
    TypeCode.YOUTUBE: ("youtube", clean_social_url),
    TypeCode.INSTAGRAM: ("instagram", clean_social_url),
    TypeCode.REDIRECT: ("redirect_url", clean_social_url),
    TypeCode.META_DESCRIPTION: ("meta_description", clean_text),
}

SENTINEL_RESULTS: Final[frozenset[str]] = frozenset(
    {"fetch error or no data found", "fetch error", "not required"}
)

CODE_COLUMN: Final[str] = "code"
RESULT_COLUMN: Final[str] = "result"
DATE_COLUMN: Final[str] = "date"

_PHONE_SPLIT = re.compile(r"[,;|]")


@dataclass(frozen=True, slots=True)
class ParseContext:
    source: str
    ingested_at: datetime = field(default_factory=lambda: datetime.now(UTC))


type RowParser = Callable[[SourceRow, ParseContext], SiteRecord | None]


def parse_date(raw: str | None, *, default: datetime | None) -> datetime | None:
    """Parse a ``DD/MM/YYYY`` date, falling back to ``default``."""

    if not raw or not raw.strip():
        return default
    parts = raw.strip().split("/")
    if len(parts) != 3:
        log.debug("Unrecognised date %r, using ingestion time", raw)
        return default
    try:
        day, month, year = (int(part) for part in parts)
        return datetime(year, month, day, tzinfo=UTC)
    except ValueError:
        log.debug("Invalid date %r, using ingestion time", raw)
        return default


def is_sentinel(value: str | None) -> bool:
    return value is not None and value.strip().lower() in SENTINEL_RESULTS


def parse_scrape_row(row: SourceRow, context: ParseContext) -> SiteRecord | None:
    """Parse a row of a headed crawl-result file.

    The first column carries the site URL; ``CODE``, ``RESULT`` and ``DATE``
    columns are looked up case-insensitively. Returns ``None`` for rows that are
    skipped on purpose (invalid domain, sentinel-only payload).
    """

    if row.columns is None:
        raise RowParseError("Crawl-result rows need a header", line_number=row.line_number)
    if not row.values:
        raise RowParseError("Empty row", line_number=row.line_number)

    by_name = {name.strip().lower(): value for name, value in zip(row.columns, row.values, strict=True)}
    url_column = row.columns[0].strip().lower()
    core_columns = {url_column, CODE_COLUMN, RESULT_COLUMN, DATE_COLUMN}
    has_other_data = any(
        value.strip() for name, value in by_name.items() if name not in core_columns
    )
    return _build_record(
        raw_url=row.values[0],
        code=by_name.get(CODE_COLUMN),
        payload=by_name.get(RESULT_COLUMN),
        raw_date=by_name.get(DATE_COLUMN),
        default_date=context.ingested_at,
        has_other_data=has_other_data,
        context=context,
        line_number=row.line_number,
    )


def parse_feed_row(row: SourceRow, context: ParseContext) -> SiteRecord | None:
    """Parse a headerless maintenance-feed row: ``url, typeCode, payload[, date]``."""

    values = row.values
    if len(values) < 3:
        raise RowParseError(
            f"Feed rows need at least 3 columns, got {len(values)}",
            line_number=row.line_number,
        )
    return _build_record(
        raw_url=values[0],
        code=values[1],
        payload=values[2],
        raw_date=values[3] if len(values) > 3 else None,
        default_date=context.ingested_at if len(values) > 3 else None,
        has_other_data=any(value.strip() for value in values[4:]),
        context=context,
        line_number=row.line_number,
    )


def blacklist_row_parser(url_column: int = 1) -> RowParser:
    """Return a parser reading the (1-based) ``url_column`` of headerless rows."""

    if url_column < 1:
        raise ValueError("url_column is 1-based and must be positive")

    def parse(row: SourceRow, context: ParseContext) -> SiteRecord | None:
        _ = context
        if len(row.values) < url_column:
            raise RowParseError(
                f"Row has {len(row.values)} columns, url column is {url_column}",
                line_number=row.line_number,
            )
        url = normalize_url(row.values[url_column - 1])
        if not is_valid_domain(url):
            log.debug("Skipping invalid blacklist domain %r", row.values[url_column - 1])
            return None
        return SiteRecord(url=url, is_blacklisted=True)

    return parse


def _build_record(
    *,
    raw_url: str,
    code: str | None,
    payload: str | None,
    raw_date: str | None,
    default_date: datetime | None,
    has_other_data: bool,
    context: ParseContext,
    line_number: int,
) -> SiteRecord | None:
    url = normalize_url(raw_url)
    if not is_valid_domain(url):
        log.debug("%s:%d skipping invalid domain %r", context.source, line_number, raw_url)
        return None

    sentinel = is_sentinel(payload)
    if sentinel and not has_other_data:
        log.debug("%s:%d skipping sentinel-only row for %s", context.source, line_number, url)
        return None

    record = SiteRecord(url=url, date=parse_date(raw_date, default=default_date))
    if sentinel:
        return record

    _apply_payload(record, (code or "").strip().upper(), payload, context, line_number)
    return record


def _apply_payload(
    record: SiteRecord,
    code: str,
    payload: str | None,
    context: ParseContext,
    line_number: int,
) -> None:
    try:
        type_code = TypeCode(code)
    except ValueError:
        return

    if type_code is TypeCode.PHONE:
        record.phones = _parse_phones(payload, record.url, context, line_number)
        return

    field_name, clean = FIELD_BY_CODE[type_code]
    value = clean(payload)
    if value:
        setattr(record, field_name, value)


def _parse_phones(
    payload: str | None,
    url: str,
    context: ParseContext,
    line_number: int,
) -> list[str]:
    phones: list[str] = []
    for candidate in _split_phones(payload):
        formatted = clean_phone_number(candidate, url)
        if formatted is None:
            log.info(
                "%s:%d dropping unformattable phone %r for %s",
                context.source,
                line_number,
                candidate,
                url,
            )
            continue
        if formatted not in phones:
            phones.append(formatted)
    return phones


def _split_phones(payload: str | None) -> Sequence[str]:
    if not payload:
        return ()
    return [part.strip() for part in _PHONE_SPLIT.split(payload) if part.strip()]

