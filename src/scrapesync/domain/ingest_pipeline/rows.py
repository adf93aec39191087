"""Pull-based reader for large delimited files.

Files are read through a bounded buffer and yielded row by row; nothing is
materialized beyond the current row. Malformed rows are yielded as
:class:`RowParseError` values so the caller decides how to account for them
while the stream keeps going.
"""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from scrapesync.domain.model import RowParseError, SourceReadError

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

log = logging.getLogger(__name__)

READ_BUFFER_BYTES: Final[int] = 256 * 1024


@dataclass(frozen=True, slots=True)
class SourceRow:
    """One delimited row with its position in the source file."""

    line_number: int
    values: tuple[str, ...]
    columns: tuple[str, ...] | None = None

    def as_mapping(self) -> dict[str, str]:
        if self.columns is None:
            return {str(index): value for index, value in enumerate(self.values)}
        return dict(zip(self.columns, self.values, strict=True))


type RowItem = SourceRow | RowParseError


def iter_rows(
    path: Path,
    *,
    has_header: bool = True,
    delimiter: str = ",",
    encoding: str = "utf-8-sig",
) -> Iterator[RowItem]:
    """Yield rows of ``path`` in file order.

    Raises :class:`SourceReadError` when the file cannot be opened or read at all.
    Empty lines are skipped. With ``has_header`` the first non-empty row names the
    columns and every later row must have the same width.
    """

    try:
        handle = path.open(
            encoding=encoding,
            errors="replace",
            newline="",
            buffering=READ_BUFFER_BYTES,
        )
    except OSError as exc:
        raise SourceReadError(f"Cannot open {path.name}: {exc}") from exc

    with handle:
        reader = csv.reader(handle, delimiter=delimiter)
        columns: tuple[str, ...] | None = None
        while True:
            try:
                values = next(reader)
            except StopIteration:
                return
            except csv.Error as exc:
                yield RowParseError(str(exc), line_number=reader.line_num)
                continue
            except OSError as exc:
                raise SourceReadError(f"Failed reading {path.name}: {exc}") from exc

            if not values or all(not value.strip() for value in values):
                continue

            if has_header and columns is None:
                columns = tuple(value.strip() for value in values)
                log.debug("Columns for %s: %s", path.name, columns)
                continue

            if columns is not None and len(values) != len(columns):
                yield RowParseError(
                    f"expected {len(columns)} columns, got {len(values)}",
                    line_number=reader.line_num,
                )
                continue

            yield SourceRow(line_number=reader.line_num, values=tuple(values), columns=columns)
