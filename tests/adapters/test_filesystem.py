from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from scrapesync.adapters.filesystem import (
    TimestampFormat,
    archive_file,
    list_csv_files,
    move_to_completed,
)

if TYPE_CHECKING:
    from pathlib import Path

MOMENT = datetime(2024, 5, 1, 13, 45, 10, tzinfo=UTC)


def test_list_csv_files_creates_directory(tmp_path: Path) -> None:
    directory = tmp_path / "missing"

    assert list_csv_files(directory) == []
    assert directory.is_dir()


def test_list_csv_files_filters_and_sorts(tmp_path: Path) -> None:
    for name in ("b.csv", "a.CSV", "notes.txt"):
        (tmp_path / name).write_text("x", encoding="utf-8")
    (tmp_path / "completed_2024-01-01").mkdir()

    assert [path.name for path in list_csv_files(tmp_path)] == ["a.CSV", "b.csv"]


def test_move_to_completed_uses_dated_folder(tmp_path: Path) -> None:
    source = tmp_path / "scrape.csv"
    source.write_text("x", encoding="utf-8")

    destination = move_to_completed(source, now=MOMENT)

    assert destination == tmp_path / "completed_2024-05-01" / "scrape.csv"
    assert destination.read_text(encoding="utf-8") == "x"
    assert not source.exists()


def test_archive_file_builds_name_from_parts(tmp_path: Path) -> None:
    source = tmp_path / "feed.csv"
    source.write_text("x", encoding="utf-8")

    destination = archive_file(
        source,
        archive_dir=tmp_path / "archive",
        prefix="phones",
        suffix="done",
        now=MOMENT,
    )

    assert destination == tmp_path / "archive" / "phones_feed_2024-05-01_done.csv"


def test_archive_file_iso_timestamp_without_prefix(tmp_path: Path) -> None:
    source = tmp_path / "feed.csv"
    source.write_text("x", encoding="utf-8")

    destination = archive_file(
        source,
        archive_dir=tmp_path / "archive",
        timestamp_format=TimestampFormat.ISO,
        now=MOMENT,
    )

    assert destination.name == "feed_2024-05-01T13-45-10+00-00.csv"
