"""Run progress state and its immutable snapshots."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Final

IMPORT_RUN_ID: Final[str] = "import"
STOPPED_BY_USER: Final[str] = "stopped by user"


class RunKind(StrEnum):
    IMPORT = "import"
    BLACKLIST = "blacklist"
    PHONE = "phone"


class RunStatus(StrEnum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETE = "complete"
    FAILED = "failed"
    STOPPED = "stopped"


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class ProgressSnapshot:
    """Read-only copy of a run's progress handed to observers."""

    run_id: str
    kind: RunKind
    status: RunStatus
    total_files: int
    completed_files: int
    processed_records: int
    skipped_records: int
    created_count: int
    updated_count: int
    unchanged_count: int
    errors: tuple[str, ...]
    current_file: str | None
    is_running: bool
    is_complete: bool
    started_at: datetime | None
    completed_at: datetime | None

    @property
    def upserted_count(self) -> int:
        return self.created_count + self.updated_count


@dataclass(slots=True)
class RunProgress:
    """Mutable progress record owned by the task driving one run."""

    run_id: str
    kind: RunKind
    status: RunStatus = RunStatus.IDLE
    total_files: int = 0
    completed_files: int = 0
    processed_records: int = 0
    skipped_records: int = 0
    created_count: int = 0
    updated_count: int = 0
    unchanged_count: int = 0
    errors: list[str] = field(default_factory=list[str])
    current_file: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def is_running(self) -> bool:
        return self.status is RunStatus.RUNNING

    @property
    def is_complete(self) -> bool:
        return self.status in (RunStatus.COMPLETE, RunStatus.FAILED, RunStatus.STOPPED)

    def start(self, total_files: int, *, now: datetime | None = None) -> None:
        self.status = RunStatus.RUNNING
        self.total_files = total_files
        self.started_at = now or _utcnow()

    def add_error(self, message: str) -> None:
        self.errors.append(message)

    def finish(self, status: RunStatus, *, now: datetime | None = None) -> None:
        """Move the run into a terminal state. Later calls are ignored."""

        if self.is_complete:
            return
        self.status = status
        self.current_file = None
        self.completed_at = now or _utcnow()

    def snapshot(self) -> ProgressSnapshot:
        return ProgressSnapshot(
            run_id=self.run_id,
            kind=self.kind,
            status=self.status,
            total_files=self.total_files,
            completed_files=self.completed_files,
            processed_records=self.processed_records,
            skipped_records=self.skipped_records,
            created_count=self.created_count,
            updated_count=self.updated_count,
            unchanged_count=self.unchanged_count,
            errors=tuple(self.errors),
            current_file=self.current_file,
            is_running=self.is_running,
            is_complete=self.is_complete,
            started_at=self.started_at,
            completed_at=self.completed_at,
        )
