"""Stream ingestion: files -> rows -> records -> reconciled batches -> store."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from contextlib import closing
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Final

from scrapesync.domain.model import RowParseError, RunStatus, RunTimeoutError, SourceReadError

from .parser import ParseContext
from .reconcile import PendingBatch
from .rows import iter_rows

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from scrapesync.domain.model import RunKind, RunProgress, SiteRecord

    from .batching import BatchUpsertEngine
    from .parser import RowParser
    from .rows import RowItem

log = logging.getLogger(__name__)

# Rows handled between forced yields to the event loop.
YIELD_EVERY_ROWS: Final[int] = 100

type ProgressPublisher = Callable[[RunProgress], None]


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class FeedSpec:
    """How the files of one run kind are read, parsed and put away."""

    kind: RunKind
    directory: Path
    parse_row: RowParser
    relocate: Callable[[Path], Path]
    has_header: bool = True
    fatal_file_error_ends_run: bool = True


class RunControl:
    """Cooperative stop flag shared between a run and whoever controls it."""

    __slots__ = ("_stop_requested",)

    def __init__(self) -> None:
        self._stop_requested = False

    @property
    def stop_requested(self) -> bool:
        return self._stop_requested

    def request_stop(self) -> None:
        self._stop_requested = True


class StreamIngestionPipeline:
    """Drive one run over an ordered list of files.

    The pipeline owns the run's :class:`RunProgress` while it runs: counters are
    updated in place and ``publish`` is called after every change observers may
    care about. Failures after start surface only through the progress record.
    """

    def __init__(
        self,
        engine: BatchUpsertEngine,
        *,
        batch_size: int,
        inter_batch_delay: float = 0.0,
        file_timeout: float | None = None,
        publish: ProgressPublisher | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be positive")
        self.engine = engine
        self.batch_size = batch_size
        self.inter_batch_delay = inter_batch_delay
        self.file_timeout = file_timeout
        self._publish = publish or (lambda _progress: None)
        self._clock = clock
        self._inflight: set[asyncio.Task[None]] = set()

    async def run(
        self,
        feed: FeedSpec,
        files: Sequence[Path],
        progress: RunProgress,
        control: RunControl | None = None,
    ) -> RunProgress:
        control = control or RunControl()
        progress.start(len(files), now=self._clock())
        log.info("Starting %s run %s over %d file(s)", feed.kind, progress.run_id, len(files))
        self._publish(progress)
        try:
            await self._run_files(feed, files, progress, control)
        except Exception as exc:
            log.exception("%s run %s crashed", feed.kind, progress.run_id)
            progress.add_error(f"Unexpected failure: {exc}")
            progress.finish(RunStatus.FAILED, now=self._clock())
        finally:
            await self._drain_inflight()

        status = RunStatus.STOPPED if control.stop_requested else RunStatus.COMPLETE
        progress.finish(status, now=self._clock())
        log.info(
            "%s run %s finished as %s: files=%d/%d processed=%d skipped=%d "
            "created=%d updated=%d unchanged=%d errors=%d",
            feed.kind,
            progress.run_id,
            progress.status,
            progress.completed_files,
            progress.total_files,
            progress.processed_records,
            progress.skipped_records,
            progress.created_count,
            progress.updated_count,
            progress.unchanged_count,
            len(progress.errors),
        )
        self._publish(progress)
        return progress

    async def _run_files(
        self,
        feed: FeedSpec,
        files: Sequence[Path],
        progress: RunProgress,
        control: RunControl,
    ) -> None:
        for path in files:
            if control.stop_requested or progress.is_complete:
                return
            progress.current_file = path.name
            self._publish(progress)
            try:
                finished = await self._process_within_timeout(feed, path, progress, control)
            except RunTimeoutError as exc:
                log.error("Gave up on %s: %s", path.name, exc)
                control.request_stop()
                progress.add_error(f"{path.name}: {exc}")
                progress.finish(RunStatus.FAILED, now=self._clock())
                return
            except SourceReadError as exc:
                log.exception("Cannot read %s", path.name)
                progress.add_error(f"{path.name}: {exc}")
                if feed.fatal_file_error_ends_run:
                    progress.finish(RunStatus.FAILED, now=self._clock())
                    return
                self._publish(progress)
                continue
            if not finished:
                return

            self._relocate(feed, path, progress)
            progress.completed_files += 1
            self._publish(progress)

    async def _process_within_timeout(
        self,
        feed: FeedSpec,
        path: Path,
        progress: RunProgress,
        control: RunControl,
    ) -> bool:
        try:
            async with asyncio.timeout(self.file_timeout):
                return await self._process_file(feed, path, progress, control)
        except TimeoutError as exc:
            raise RunTimeoutError(f"timed out after {self.file_timeout}s") from exc

    async def _process_file(
        self,
        feed: FeedSpec,
        path: Path,
        progress: RunProgress,
        control: RunControl,
    ) -> bool:
        """Stream one file into the store. Returns ``False`` when a stop cut it short."""

        log.info("Processing %s", path.name)
        context = ParseContext(source=path.name, ingested_at=self._clock())
        pending = PendingBatch()
        seen = 0
        with closing(iter_rows(path, has_header=feed.has_header)) as rows:
            for item in rows:
                if control.stop_requested:
                    log.info("Stop requested, leaving %s unfinished", path.name)
                    return False
                seen += 1
                if seen % YIELD_EVERY_ROWS == 0:
                    await asyncio.sleep(0)

                record = self._parse(feed, item, context, progress)
                if record is None:
                    continue
                pending.add(record)
                progress.processed_records += 1

                if len(pending) >= self.batch_size:
                    await self._flush(pending.drain(), progress)
                    if control.stop_requested:
                        return False
                    await asyncio.sleep(self.inter_batch_delay)

        if control.stop_requested:
            return False
        if pending:
            await self._flush(pending.drain(), progress)
        log.info("Finished %s after %d row(s)", path.name, seen)
        return True

    def _parse(
        self,
        feed: FeedSpec,
        item: RowItem,
        context: ParseContext,
        progress: RunProgress,
    ) -> SiteRecord | None:
        if isinstance(item, RowParseError):
            self._skip_malformed(item, context, progress)
            return None
        try:
            record = feed.parse_row(item, context)
        except RowParseError as exc:
            self._skip_malformed(exc, context, progress)
            return None
        if record is None:
            progress.skipped_records += 1
        return record

    def _skip_malformed(
        self,
        error: RowParseError,
        context: ParseContext,
        progress: RunProgress,
    ) -> None:
        location = context.source
        if error.line_number is not None:
            location = f"{location} line {error.line_number}"
        log.warning("%s: skipping malformed row: %s", location, error)
        progress.skipped_records += 1
        progress.add_error(f"{location}: {error}")
        self._publish(progress)

    async def _flush(self, records: list[SiteRecord], progress: RunProgress) -> None:
        # A write already sent completes even when the file times out.
        task = asyncio.ensure_future(self._write(records, progress))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        await asyncio.shield(task)

    async def _write(self, records: list[SiteRecord], progress: RunProgress) -> None:
        outcome = await self.engine.flush(records)
        progress.created_count += outcome.counts.created
        progress.updated_count += outcome.counts.updated
        progress.unchanged_count += outcome.counts.unchanged
        progress.errors.extend(outcome.errors)
        self._publish(progress)

    async def _drain_inflight(self) -> None:
        if not self._inflight:
            return
        results = await asyncio.gather(*self._inflight, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                log.error("Detached batch write failed", exc_info=result)

    def _relocate(self, feed: FeedSpec, path: Path, progress: RunProgress) -> None:
        try:
            destination = feed.relocate(path)
        except OSError as exc:
            log.exception("Could not move %s out of %s", path.name, feed.directory)
            progress.add_error(f"{path.name}: could not relocate: {exc}")
            return
        log.info("Moved %s to %s", path.name, destination)
