"""Input discovery and relocation of processed CSV files."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from pathlib import Path

log = logging.getLogger(__name__)

CSV_SUFFIX: Final[str] = ".csv"
COMPLETED_PREFIX: Final[str] = "completed_"


class TimestampFormat(StrEnum):
    ISO = "iso"
    DATE = "date"


def _utcnow() -> datetime:
    return datetime.now(UTC)


def list_csv_files(directory: Path) -> list[Path]:
    """Return the ``*.csv`` files directly inside ``directory``, sorted by name.

    The directory is created when missing so a fresh install reports "no files"
    rather than failing.
    """

    directory.mkdir(parents=True, exist_ok=True)
    return sorted(
        path for path in directory.iterdir() if path.is_file() and path.suffix.lower() == CSV_SUFFIX
    )


def completed_dir(root: Path, day: datetime) -> Path:
    return root / f"{COMPLETED_PREFIX}{day:%Y-%m-%d}"


def move_to_completed(path: Path, *, root: Path | None = None, now: datetime | None = None) -> Path:
    """Rename ``path`` into ``<root>/completed_<YYYY-MM-DD>/`` (root defaults to its folder)."""

    target_dir = completed_dir(root or path.parent, now or _utcnow())
    target_dir.mkdir(parents=True, exist_ok=True)
    return path.replace(target_dir / path.name)


def _stamp(moment: datetime, timestamp_format: TimestampFormat) -> str:
    if timestamp_format is TimestampFormat.ISO:
        return moment.isoformat(timespec="seconds").replace(":", "-")
    return f"{moment:%Y-%m-%d}"


def archive_file(
    path: Path,
    *,
    archive_dir: Path,
    prefix: str = "",
    timestamp_format: TimestampFormat = TimestampFormat.DATE,
    suffix: str = "",
    now: datetime | None = None,
) -> Path:
    """Rename ``path`` into ``archive_dir`` as ``<prefix>_<stem>_<timestamp>_<suffix><ext>``.

    Empty parts are left out of the name.
    """

    parts = [prefix, path.stem, _stamp(now or _utcnow(), timestamp_format), suffix]
    name = "_".join(part for part in parts if part) + path.suffix
    archive_dir.mkdir(parents=True, exist_ok=True)
    destination = path.replace(archive_dir / name)
    log.debug("Archived %s as %s", path, destination)
    return destination


def completed_mover(root: Path) -> Callable[[Path], Path]:
    def relocate(path: Path) -> Path:
        return move_to_completed(path, root=root)

    return relocate


def feed_archiver(archive_dir: Path, prefix: str) -> Callable[[Path], Path]:
    """Relocation for maintenance feeds: dated archive folder, prefixed file name."""

    def relocate(path: Path) -> Path:
        now = _utcnow()
        return archive_file(path, archive_dir=completed_dir(archive_dir, now), prefix=prefix, now=now)

    return relocate
