"""Calling-code reference table used by the phone formatter.

Entries are ordered longest code first so that a short code never shadows a
longer one it prefixes (``1`` vs ``1876``). Lengths are national significant
number lengths, without the trunk ``0``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final


@dataclass(frozen=True, slots=True)
class CountryPhoneRule:
    code: str
    lengths: tuple[int, ...]
    tlds: tuple[str, ...] = ()


_RULES: Final[tuple[CountryPhoneRule, ...]] = (
    CountryPhoneRule("1876", (7,), ("jm",)),
    CountryPhoneRule("1868", (7,), ("tt",)),
    CountryPhoneRule("1242", (7,), ("bs",)),
    CountryPhoneRule("351", (9,), ("pt",)),
    CountryPhoneRule("352", (8, 9), ("lu",)),
    CountryPhoneRule("353", (9,), ("ie",)),
    CountryPhoneRule("354", (7,), ("is",)),
    CountryPhoneRule("358", (9, 10), ("fi",)),
    CountryPhoneRule("359", (8, 9), ("bg",)),
    CountryPhoneRule("370", (8,), ("lt",)),
    CountryPhoneRule("371", (8,), ("lv",)),
    CountryPhoneRule("372", (7, 8), ("ee",)),
    CountryPhoneRule("380", (9,), ("ua",)),
    CountryPhoneRule("385", (8, 9), ("hr",)),
    CountryPhoneRule("386", (8,), ("si",)),
    CountryPhoneRule("420", (9,), ("cz",)),
    CountryPhoneRule("421", (9,), ("sk",)),
    CountryPhoneRule("852", (8,), ("hk",)),
    CountryPhoneRule("880", (10,), ("bd",)),
    CountryPhoneRule("966", (9,), ("sa",)),
    CountryPhoneRule("971", (9,), ("ae",)),
    CountryPhoneRule("972", (9,), ("il",)),
    CountryPhoneRule("234", (10,), ("ng",)),
    CountryPhoneRule("254", (9,), ("ke",)),
    CountryPhoneRule("27", (9,), ("za",)),
    CountryPhoneRule("30", (10,), ("gr",)),
    CountryPhoneRule("31", (9,), ("nl",)),
    CountryPhoneRule("32", (8, 9), ("be",)),
    CountryPhoneRule("33", (9,), ("fr",)),
    CountryPhoneRule("34", (9,), ("es",)),
    CountryPhoneRule("36", (8, 9), ("hu",)),
    CountryPhoneRule("39", (9, 10), ("it",)),
    CountryPhoneRule("40", (9,), ("ro",)),
    CountryPhoneRule("41", (9,), ("ch",)),
    CountryPhoneRule("43", (10, 11), ("at",)),
    CountryPhoneRule("44", (10,), ("uk", "gb")),
    CountryPhoneRule("45", (8,), ("dk",)),
    CountryPhoneRule("46", (9,), ("se",)),
    CountryPhoneRule("47", (8,), ("no",)),
    CountryPhoneRule("48", (9,), ("pl",)),
    CountryPhoneRule("49", (10, 11), ("de",)),
    CountryPhoneRule("52", (10,), ("mx",)),
    CountryPhoneRule("55", (10, 11), ("br",)),
    CountryPhoneRule("61", (9,), ("au",)),
    CountryPhoneRule("64", (8, 9), ("nz",)),
    CountryPhoneRule("65", (8,), ("sg",)),
    CountryPhoneRule("81", (10,), ("jp",)),
    CountryPhoneRule("82", (9, 10), ("kr",)),
    CountryPhoneRule("86", (11,), ("cn",)),
    CountryPhoneRule("91", (10,), ("in",)),
    CountryPhoneRule("92", (10,), ("pk",)),
    CountryPhoneRule("7", (10,), ("ru",)),
    CountryPhoneRule("1", (10,), ("us", "ca")),
)

COUNTRY_PHONE_RULES: Final[tuple[CountryPhoneRule, ...]] = tuple(
    sorted(_RULES, key=lambda rule: len(rule.code), reverse=True)
)

DEFAULT_TRUNK_COUNTRY_CODE: Final[str] = "44"

_BY_CODE: Final[dict[str, CountryPhoneRule]] = {rule.code: rule for rule in COUNTRY_PHONE_RULES}
_BY_TLD: Final[dict[str, CountryPhoneRule]] = {
    tld: rule for rule in COUNTRY_PHONE_RULES for tld in rule.tlds
}


def rule_for_code(code: str) -> CountryPhoneRule | None:
    return _BY_CODE.get(code)


def rule_for_tld(tld: str | None) -> CountryPhoneRule | None:
    if not tld:
        return None
    return _BY_TLD.get(tld.lower())
