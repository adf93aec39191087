"""Free-text cleaning."""

from __future__ import annotations

import re
from typing import Final

MAX_TEXT_LENGTH: Final[int] = 400

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f-\x9f]")
_WHITESPACE_RUN = re.compile(r"\s+")


def truncate(value: str, max_length: int = MAX_TEXT_LENGTH) -> str:
    return value if len(value) <= max_length else value[:max_length]


def clean_text(raw: str | None, *, max_length: int = MAX_TEXT_LENGTH) -> str:
    """Drop control characters, collapse whitespace and cap the length."""

    if not raw:
        return ""
    text = _CONTROL_CHARS.sub("", raw)
    text = _WHITESPACE_RUN.sub(" ", text).strip()
    return truncate(text, max_length)
