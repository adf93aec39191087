"""SQLAlchemy table metadata for stored site records."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Final, cast

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Dialect,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    false,
    orm,
)

from scrapesync.domain.normalization import MAX_TEXT_LENGTH

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

log = logging.getLogger(__name__)

URL_LENGTH: Final[int] = 255


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class PhoneListType(TypeDecorator[list[str]]):
    """Ordered phone list stored as a JSON array."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: list[str] | None, dialect: Dialect) -> str:
        _ = dialect
        return json.dumps(list(value or []))

    def process_result_value(self, value: str | None, dialect: Dialect) -> list[str]:
        _ = dialect
        if not value:
            return []
        loaded = json.loads(value)
        if not isinstance(loaded, list):
            return []
        items = cast(list[Any], loaded)
        return [item for item in items if isinstance(item, str)]


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "pk": "pk_%(table_name)s",
}

site_record_table = Table(
    "site_record",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("url", String(URL_LENGTH), nullable=False, unique=True),
    Column("date", UTCDateTime, nullable=True),
    Column("title", String(MAX_TEXT_LENGTH), nullable=True),
    Column("keywords", String(MAX_TEXT_LENGTH), nullable=True),
    Column("twitter", String(MAX_TEXT_LENGTH), nullable=True),
    Column("facebook", String(MAX_TEXT_LENGTH), nullable=True),
    Column("instagram", String(MAX_TEXT_LENGTH), nullable=True),
    Column("linkedin", String(MAX_TEXT_LENGTH), nullable=True),
    Column("youtube", String(MAX_TEXT_LENGTH), nullable=True),
    Column("pinterest", String(MAX_TEXT_LENGTH), nullable=True),
    Column("email", String(MAX_TEXT_LENGTH), nullable=True),
    Column("postcode", String(MAX_TEXT_LENGTH), nullable=True),
    Column("status_code", String(MAX_TEXT_LENGTH), nullable=True),
    Column("redirect_url", String(MAX_TEXT_LENGTH), nullable=True),
    Column("meta_description", String(MAX_TEXT_LENGTH), nullable=True),
    Column("phones", PhoneListType, nullable=False, default=list),
    Column("is_blacklisted", Boolean, nullable=False, default=False, server_default=false()),
    Column("created_at", UTCDateTime, nullable=False),
    Column("updated_at", UTCDateTime, nullable=False),
)


async def create_all_tables(engine: AsyncEngine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    async with engine.begin() as connection:
        await connection.run_sync(mapper_registry.metadata.create_all)
