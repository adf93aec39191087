"""Field normalizers: URLs, free text and phone numbers."""

from __future__ import annotations

from .country_codes import COUNTRY_PHONE_RULES, CountryPhoneRule
from .phones import (
    clean_phone_number,
    format_phone_with_country_code,
    is_valid_phone_number,
    national_digits,
)
from .text import MAX_TEXT_LENGTH, clean_text, truncate
from .urls import clean_social_url, is_valid_domain, normalize_url, top_level_domain

__all__ = [
    "COUNTRY_PHONE_RULES",
    "MAX_TEXT_LENGTH",
    "CountryPhoneRule",
    "clean_phone_number",
    "clean_social_url",
    "clean_text",
    "format_phone_with_country_code",
    "is_valid_domain",
    "is_valid_phone_number",
    "national_digits",
    "normalize_url",
    "top_level_domain",
    "truncate",
]
