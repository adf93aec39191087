"""Shared logging helpers for scrapesync."""

from __future__ import annotations

import logging

# Per-statement chatter that drowns out row-level debug output.
NOISY_LOGGERS = ("aiosqlite", "sqlalchemy.engine")


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Set up root logging for CLI runs; ``force=True`` replaces existing handlers."""

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=force,
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
