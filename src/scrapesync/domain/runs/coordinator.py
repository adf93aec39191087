"""Start, stop and observe ingestion runs."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from scrapesync.domain.ingest_pipeline import (
    RunControl,
    StreamIngestionPipeline,
    blacklist_row_parser,
)
from scrapesync.domain.model import (
    IMPORT_RUN_ID,
    STOPPED_BY_USER,
    NoInputFilesError,
    RunConflictError,
    RunKind,
    RunStatus,
)

from .registry import RunRegistry

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from pathlib import Path

    from scrapesync.domain.ingest_pipeline import BatchUpsertEngine, FeedSpec
    from scrapesync.domain.model import ProgressSnapshot, RunProgress

    from .registry import ProgressCallback, Subscription

log = logging.getLogger(__name__)

DEFAULT_SWEEP_INTERVAL_SECONDS = 3600.0


@dataclass(frozen=True, slots=True)
class PipelineSettings:
    batch_size: int
    inter_batch_delay: float = 0.0
    file_timeout: float | None = None


@dataclass(slots=True)
class _ActiveRun:
    task: asyncio.Task[RunProgress]
    control: RunControl


class RunCoordinator:
    """Entry point for every run: single-flight imports plus keyed maintenance runs.

    ``start_*`` calls must happen on the event loop that will drive the runs;
    they return as soon as the run task is scheduled. Once started, a run
    reports only through its progress record.
    """

    def __init__(
        self,
        *,
        engine: BatchUpsertEngine,
        feeds: Mapping[RunKind, FeedSpec],
        list_files: Callable[[Path], list[Path]],
        settings: PipelineSettings,
        registry: RunRegistry | None = None,
    ) -> None:
        missing = {RunKind.IMPORT, RunKind.BLACKLIST, RunKind.PHONE} - set(feeds)
        if missing:
            raise ValueError(f"Missing feed definitions for {sorted(missing)}")
        self.engine = engine
        self.feeds = dict(feeds)
        self.list_files = list_files
        self.settings = settings
        self.registry = registry or RunRegistry()
        self._active: dict[str, _ActiveRun] = {}

    def start_import(self) -> ProgressSnapshot:
        current = self.registry.import_progress()
        if current is not None and current.is_running and not current.is_complete:
            raise RunConflictError("An import is already running")
        previous = self._active.get(IMPORT_RUN_ID)
        if previous is not None and not previous.task.done():
            raise RunConflictError("The stopped import is still finishing its last write")
        feed = self.feeds[RunKind.IMPORT]
        files = self._input_files(feed)
        progress = self.registry.register_import()
        self._launch(feed, files, progress)
        return progress.snapshot()

    def stop_import(self) -> bool:
        return self.stop_run(IMPORT_RUN_ID)

    def start_blacklist_update(self, url_column: int = 1) -> str:
        feed = self.feeds[RunKind.BLACKLIST]
        feed = replace(feed, parse_row=blacklist_row_parser(url_column))
        return self._start_keyed(feed)

    def start_phone_update(self) -> str:
        return self._start_keyed(self.feeds[RunKind.PHONE])

    def stop_run(self, run_id: str) -> bool:
        """Ask a run to stop. Returns ``False`` when it is unknown or already over."""

        progress = self.registry.get(run_id)
        if progress is None or progress.is_complete:
            return False
        active = self._active.get(run_id)
        if active is not None:
            active.control.request_stop()
        progress.add_error(STOPPED_BY_USER)
        progress.finish(RunStatus.STOPPED)
        log.info("Stop requested for %s run %s", progress.kind, run_id)
        self.registry.publish(progress)
        return True

    def get_import_progress(self) -> ProgressSnapshot | None:
        return self.registry.snapshot(IMPORT_RUN_ID)

    def get_progress(self, run_id: str) -> ProgressSnapshot | None:
        return self.registry.snapshot(run_id)

    def subscribe(self, run_id: str, callback: ProgressCallback) -> Subscription:
        return self.registry.subscribe(run_id, callback)

    async def wait(self, run_id: str) -> ProgressSnapshot | None:
        """Wait for ``run_id``'s task (including detached writes) and return its final state."""

        active = self._active.get(run_id)
        if active is not None:
            await asyncio.shield(active.task)
        return self.registry.snapshot(run_id)

    async def stop_all(self) -> None:
        for run_id in list(self._active):
            self.stop_run(run_id)
        if self._active:
            await asyncio.gather(
                *(active.task for active in self._active.values()),
                return_exceptions=True,
            )

    async def run_sweeper(self, interval: float = DEFAULT_SWEEP_INTERVAL_SECONDS) -> None:
        while True:
            self.registry.sweep()
            await asyncio.sleep(interval)

    def _start_keyed(self, feed: FeedSpec) -> str:
        files = self._input_files(feed)
        progress = self.registry.register(feed.kind)
        self._launch(feed, files, progress)
        return progress.run_id

    def _input_files(self, feed: FeedSpec) -> list[Path]:
        files = self.list_files(feed.directory)
        if not files:
            raise NoInputFilesError(f"No CSV files found in {feed.directory}")
        return files

    def _launch(self, feed: FeedSpec, files: list[Path], progress: RunProgress) -> None:
        progress.start(len(files))
        pipeline = StreamIngestionPipeline(
            self.engine,
            batch_size=self.settings.batch_size,
            inter_batch_delay=self.settings.inter_batch_delay,
            file_timeout=self.settings.file_timeout,
            publish=self.registry.publish,
        )
        control = RunControl()
        task = asyncio.create_task(
            self._drive(pipeline, feed, files, progress, control),
            name=f"scrapesync-{feed.kind}-{progress.run_id}",
        )
        self._active[progress.run_id] = _ActiveRun(task=task, control=control)

    async def _drive(
        self,
        pipeline: StreamIngestionPipeline,
        feed: FeedSpec,
        files: list[Path],
        progress: RunProgress,
        control: RunControl,
    ) -> RunProgress:
        try:
            await pipeline.run(feed, files, progress, control)
        finally:
            active = self._active.get(progress.run_id)
            if active is not None and active.control is control:
                del self._active[progress.run_id]
        if progress.status is RunStatus.COMPLETE and feed.kind is not RunKind.IMPORT:
            self.registry.schedule_cleanup(progress.run_id)
        return progress
