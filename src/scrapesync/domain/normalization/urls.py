"""URL and domain canonicalization."""

from __future__ import annotations

import re

from .text import clean_text

_SCHEME = re.compile(r"^https?://", re.IGNORECASE)
_WWW = re.compile(r"^www\.", re.IGNORECASE)
_DOMAIN = re.compile(r"^[a-zA-Z0-9-]+(\.[a-zA-Z0-9-]+)+$")


def _strip_prefixes(raw: str) -> str:
    text = _SCHEME.sub("", raw.strip())
    return _WWW.sub("", text)


def normalize_url(raw: str | None) -> str:
    """Reduce a URL to its lower-cased host: no scheme, no ``www.``, no path."""

    if not raw:
        return ""
    host = _strip_prefixes(raw).split("/", 1)[0]
    return host.strip().lower()


def is_valid_domain(value: str | None) -> bool:
    if not value:
        return False
    return _DOMAIN.fullmatch(value) is not None


def clean_social_url(raw: str | None) -> str:
    """Strip scheme and ``www.`` from a profile URL and drop its query string."""

    if not raw:
        return ""
    return clean_text(_strip_prefixes(raw).split("?", 1)[0])


def top_level_domain(url: str | None) -> str | None:
    host = normalize_url(url)
    if not is_valid_domain(host):
        return None
    return host.rsplit(".", 1)[-1]
