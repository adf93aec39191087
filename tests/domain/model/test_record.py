from __future__ import annotations

import pytest

from scrapesync.domain.model import SiteRecord, identity_key


def test_site_record_requires_url() -> None:
    with pytest.raises(ValueError):
        SiteRecord(url="")


def test_identity_is_case_insensitive_url() -> None:
    assert identity_key(SiteRecord(url="Example.COM")) == "example.com"
    assert SiteRecord(url="example.com").identity == SiteRecord(url="EXAMPLE.com").identity


def test_copy_does_not_share_phone_list() -> None:
    original = SiteRecord(url="example.com", phones=["[+44] 7508770171"])

    clone = original.copy()
    clone.phones.append("12345678901")

    assert original.phones == ["[+44] 7508770171"]


def test_scalars_lists_every_text_field() -> None:
    record = SiteRecord(url="example.com", title="Hello", email="a@example.com")

    scalars = record.scalars()

    assert scalars["title"] == "Hello"
    assert scalars["email"] == "a@example.com"
    assert scalars["twitter"] is None
    assert "url" not in scalars
