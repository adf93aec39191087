"""Phone number cleaning and country-code formatting."""

from __future__ import annotations

import logging
import re

from .country_codes import (
    COUNTRY_PHONE_RULES,
    DEFAULT_TRUNK_COUNTRY_CODE,
    CountryPhoneRule,
    rule_for_code,
    rule_for_tld,
)
from .urls import top_level_domain

log = logging.getLogger(__name__)

_SEPARATORS = re.compile(r"[\s\-.()\[\]{}<>]")
_DIGITS = re.compile(r"\+?[0-9]+")
_BARE_LENGTHS = (10, 11)


def clean_phone_number(raw: str | None, url_hint: str | None = None) -> str | None:
    """Strip separators from ``raw`` and format it, or return ``None``."""

    if not raw:
        return None
    compact = _SEPARATORS.sub("", raw)
    if not _DIGITS.fullmatch(compact):
        return None
    return format_phone_with_country_code(compact, url_hint)


def format_phone_with_country_code(digits: str, url_hint: str | None = None) -> str | None:
    """Format a compact number as ``[+<code>] <national digits>``.

    Numbers with a ``+`` (or ``00``) prefix are matched against the calling-code
    table. Without one, a single leading ``0`` is read as the trunk prefix of the
    country suggested by ``url_hint`` (United Kingdom when there is no hint), and
    numbers longer than 11 digits are matched against the table directly. A
    number that matches no country is kept as bare digits when it has 10 or 11.
    """

    if not digits:
        return None

    if digits.startswith("+"):
        number = digits[1:]
        formatted = _match_calling_code(number)
        if formatted is not None:
            return formatted
        return _bare(number)

    if digits.startswith("00"):
        formatted = _match_calling_code(digits[2:])
        if formatted is not None:
            return formatted
    elif digits.startswith("0"):
        rule = _trunk_rule(url_hint)
        formatted = _fit(rule, digits[1:])
        if formatted is not None:
            return formatted
    elif len(digits) > max(_BARE_LENGTHS):
        formatted = _match_calling_code(digits)
        if formatted is not None:
            return formatted

    return _bare(digits)


def is_valid_phone_number(raw: str | None, url_hint: str | None = None) -> bool:
    formatted = clean_phone_number(raw, url_hint)
    if formatted is None:
        return False
    return len(national_digits(formatted)) in _BARE_LENGTHS


def national_digits(formatted: str) -> str:
    """Return the digits after the ``[+code]`` marker of a formatted number."""

    return formatted.rsplit(" ", 1)[-1] if formatted.startswith("[+") else formatted


def _match_calling_code(number: str) -> str | None:
    for rule in COUNTRY_PHONE_RULES:
        if not number.startswith(rule.code):
            continue
        return _fit(rule, number[len(rule.code) :])
    return None


def _fit(rule: CountryPhoneRule, national: str) -> str | None:
    if not national.isdigit():
        return None
    if len(national) in rule.lengths:
        return f"[+{rule.code}] {national}"
    if len(national) + 1 in rule.lengths:
        return f"[+{rule.code}] 0{national}"
    log.debug("Number %s does not fit +%s lengths %s", national, rule.code, rule.lengths)
    return None


def _trunk_rule(url_hint: str | None) -> CountryPhoneRule:
    rule = rule_for_tld(top_level_domain(url_hint))
    if rule is not None:
        return rule
    default = rule_for_code(DEFAULT_TRUNK_COUNTRY_CODE)
    if default is None:
        raise LookupError(f"Calling code {DEFAULT_TRUNK_COUNTRY_CODE} missing from table")
    return default


def _bare(digits: str) -> str | None:
    if digits.isdigit() and len(digits) in _BARE_LENGTHS:
        return digits
    return None
