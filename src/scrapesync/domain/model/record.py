"""Canonical crawl-result record and its identity."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from datetime import datetime

MAX_PHONES: Final[int] = 3

# Order matters: it is the column order of exported documents.
SCALAR_FIELDS: Final[tuple[str, ...]] = (
    "title",
    "keywords",
    "twitter",
    "facebook",
    "instagram",
    "linkedin",
    "youtube",
    "pinterest",
    "email",
    "postcode",
    "status_code",
    "redirect_url",
    "meta_description",
)

type Identity = str


@dataclass(slots=True, kw_only=True)
class SiteRecord:
    """Reconciled, store-ready data for one crawled site."""

    url: str
    date: datetime | None = None
    title: str | None = None
    keywords: str | None = None
    twitter: str | None = None
    facebook: str | None = None
    instagram: str | None = None
    linkedin: str | None = None
    youtube: str | None = None
    pinterest: str | None = None
    email: str | None = None
    postcode: str | None = None
    status_code: str | None = None
    redirect_url: str | None = None
    meta_description: str | None = None
    phones: list[str] = field(default_factory=list[str])
    is_blacklisted: bool = False

    def __post_init__(self) -> None:
        if not self.url:
            raise ValueError("SiteRecord requires a non-empty url")

    @property
    def identity(self) -> Identity:
        return identity_key(self)

    def scalars(self) -> dict[str, str | None]:
        return {name: getattr(self, name) for name in SCALAR_FIELDS}

    def copy(self) -> SiteRecord:
        return replace(self, phones=list(self.phones))


def identity_key(record: SiteRecord) -> Identity:
    """Return the uniqueness key shared by grouping, merging and the store."""

    return record.url.lower()
