"""Ingestion defaults and directory layout."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .env import env_float, env_int
from .storage import StorageConfig, get_storage_config

DEFAULT_BATCH_SIZE = 5000
DEFAULT_INTER_BATCH_DELAY_SECONDS = 0.1
DEFAULT_FILE_TIMEOUT_SECONDS = 300.0
DEFAULT_COMPLETED_RUN_RETENTION_SECONDS = 3600.0
DEFAULT_STALE_RUN_RETENTION_SECONDS = 86400.0


@dataclass(frozen=True, slots=True)
class IngestConfig:
    import_dir: Path
    blacklist_dir: Path
    phone_dir: Path
    archive_dir: Path
    batch_size: int = DEFAULT_BATCH_SIZE
    inter_batch_delay: float = DEFAULT_INTER_BATCH_DELAY_SECONDS
    file_timeout: float | None = DEFAULT_FILE_TIMEOUT_SECONDS
    completed_run_retention: float = DEFAULT_COMPLETED_RUN_RETENTION_SECONDS
    stale_run_retention: float = DEFAULT_STALE_RUN_RETENTION_SECONDS

    @classmethod
    def under(cls, root: Path) -> IngestConfig:
        """Lay out the standard import directories below ``root``."""

        return cls(
            import_dir=root / "social_scrape",
            blacklist_dir=root / "blacklist",
            phone_dir=root / "phones",
            archive_dir=root / "archive",
        )


def _dir_from_env(name: str, default: Path) -> Path:
    value = os.getenv(name)
    return Path(value).expanduser() if value else default


def get_ingest_config(*, storage: StorageConfig | None = None) -> IngestConfig:
    storage_config = storage or get_storage_config()
    imports_root = storage_config.imports_root()
    timeout = env_float("SCRAPESYNC_FILE_TIMEOUT", DEFAULT_FILE_TIMEOUT_SECONDS)
    return IngestConfig(
        import_dir=_dir_from_env("SCRAPESYNC_IMPORT_DIR", imports_root / "social_scrape"),
        blacklist_dir=_dir_from_env("SCRAPESYNC_BLACKLIST_DIR", imports_root / "blacklist"),
        phone_dir=_dir_from_env("SCRAPESYNC_PHONE_DIR", imports_root / "phones"),
        archive_dir=_dir_from_env("SCRAPESYNC_ARCHIVE_DIR", imports_root / "archive"),
        batch_size=env_int("SCRAPESYNC_BATCH_SIZE", DEFAULT_BATCH_SIZE, minimum=1),
        inter_batch_delay=env_float(
            "SCRAPESYNC_INTER_BATCH_DELAY", DEFAULT_INTER_BATCH_DELAY_SECONDS
        ),
        # 0 disables the per-file ceiling
        file_timeout=timeout or None,
    )
