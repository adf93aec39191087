"""In-process registry of run progress with a publish/subscribe channel."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from scrapesync.domain.model import IMPORT_RUN_ID, RunKind, RunProgress

if TYPE_CHECKING:
    from scrapesync.domain.model import ProgressSnapshot

log = logging.getLogger(__name__)

type ProgressCallback = Callable[[ProgressSnapshot], None]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Subscription:
    """Handle returned by :meth:`RunRegistry.subscribe`."""

    __slots__ = ("_registry", "active", "callback", "run_id")

    def __init__(self, registry: RunRegistry, run_id: str, callback: ProgressCallback) -> None:
        self._registry = registry
        self.run_id = run_id
        self.callback = callback
        self.active = True

    def cancel(self) -> None:
        if self.active:
            self.active = False
            self._registry._unsubscribe(self)  # noqa: SLF001

    def _deliver(self, snapshot: ProgressSnapshot) -> None:
        if not self.active:
            return
        try:
            self.callback(snapshot)
        except Exception:
            log.exception("Progress observer for %s failed; unsubscribing", self.run_id)
            self.cancel()


class RunRegistry:
    """Keeps the import slot and keyed maintenance runs.

    The import run is a process-wide singleton under ``IMPORT_RUN_ID``; every
    other run gets a fresh uuid. Observers only ever see frozen snapshots.
    """

    def __init__(
        self,
        *,
        completed_retention: float = 3600.0,
        stale_retention: float = 86400.0,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.completed_retention = completed_retention
        self.stale_retention = stale_retention
        self._clock = clock
        self._import: RunProgress | None = None
        self._runs: dict[str, RunProgress] = {}
        self._subscriptions: dict[str, list[Subscription]] = {}
        self._cleanups: dict[str, asyncio.TimerHandle] = {}

    def __contains__(self, run_id: str) -> bool:
        return self.get(run_id) is not None

    def import_progress(self) -> RunProgress | None:
        return self._import

    def register_import(self) -> RunProgress:
        self._import = RunProgress(run_id=IMPORT_RUN_ID, kind=RunKind.IMPORT)
        return self._import

    def register(self, kind: RunKind) -> RunProgress:
        if kind is RunKind.IMPORT:
            return self.register_import()
        run_id = str(uuid.uuid4())
        progress = RunProgress(run_id=run_id, kind=kind)
        self._runs[run_id] = progress
        return progress

    def get(self, run_id: str) -> RunProgress | None:
        if run_id == IMPORT_RUN_ID:
            return self._import
        return self._runs.get(run_id)

    def snapshot(self, run_id: str) -> ProgressSnapshot | None:
        progress = self.get(run_id)
        return None if progress is None else progress.snapshot()

    def run_ids(self) -> list[str]:
        return list(self._runs)

    def subscribe(self, run_id: str, callback: ProgressCallback) -> Subscription:
        subscription = Subscription(self, run_id, callback)
        self._subscriptions.setdefault(run_id, []).append(subscription)
        return subscription

    def _unsubscribe(self, subscription: Subscription) -> None:
        subscriptions = self._subscriptions.get(subscription.run_id)
        if not subscriptions:
            return
        if subscription in subscriptions:
            subscriptions.remove(subscription)
        if not subscriptions:
            del self._subscriptions[subscription.run_id]

    def publish(self, progress: RunProgress) -> None:
        """Hand a snapshot of ``progress`` to every observer of its run.

        Callbacks run on the next event-loop iteration, never inside the caller.
        """

        subscriptions = self._subscriptions.get(progress.run_id)
        if not subscriptions:
            return
        snapshot = progress.snapshot()
        loop = asyncio.get_running_loop()
        for subscription in list(subscriptions):
            loop.call_soon(subscription._deliver, snapshot)  # noqa: SLF001

    def discard(self, run_id: str) -> bool:
        handle = self._cleanups.pop(run_id, None)
        if handle is not None:
            handle.cancel()
        for subscription in self._subscriptions.pop(run_id, []):
            subscription.active = False
        removed = self._runs.pop(run_id, None) is not None
        if removed:
            log.debug("Discarded run %s", run_id)
        return removed

    def schedule_cleanup(self, run_id: str, *, delay: float | None = None) -> None:
        """Drop ``run_id`` once the completed-run retention has passed."""

        if run_id == IMPORT_RUN_ID or run_id not in self._runs:
            return
        previous = self._cleanups.pop(run_id, None)
        if previous is not None:
            previous.cancel()
        loop = asyncio.get_running_loop()
        wait = self.completed_retention if delay is None else delay
        self._cleanups[run_id] = loop.call_later(wait, self.discard, run_id)

    def sweep(self, now: datetime | None = None) -> list[str]:
        """Drop completed runs older than the stale retention. Returns their ids."""

        cutoff = (now or self._clock()) - timedelta(seconds=self.stale_retention)
        stale = [
            run_id
            for run_id, progress in self._runs.items()
            if progress.is_complete
            and progress.completed_at is not None
            and progress.completed_at <= cutoff
        ]
        for run_id in stale:
            self.discard(run_id)
        if stale:
            log.info("Swept %d stale run(s)", len(stale))
        return stale
