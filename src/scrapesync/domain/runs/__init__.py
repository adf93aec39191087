"""Run lifecycle: progress registry and the coordinator that starts and stops runs."""

from __future__ import annotations

from .coordinator import PipelineSettings, RunCoordinator
from .registry import ProgressCallback, RunRegistry, Subscription

__all__ = [
    "PipelineSettings",
    "ProgressCallback",
    "RunCoordinator",
    "RunRegistry",
    "Subscription",
]
