"""Where scrapesync keeps its database and incoming files."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

APP_DIR_NAME: Final[str] = "scrapesync"
DEFAULT_DB_FILENAME: Final[str] = "scrapesync.db"
IMPORTS_DIR_NAME: Final[str] = "imports"
SQLITE_ASYNC_DRIVER: Final[str] = "sqlite+aiosqlite"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path
    database_filename: str = DEFAULT_DB_FILENAME

    def resolve_data_dir(self) -> Path:
        return self.data_dir.expanduser().resolve()

    def imports_root(self) -> Path:
        """Parent of the per-feed input directories."""

        return self.resolve_data_dir() / IMPORTS_DIR_NAME

    def database_path(self) -> Path:
        data_dir = self.resolve_data_dir()
        data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir / self.database_filename

    def database_uri(self) -> str:
        return f"{SQLITE_ASYNC_DRIVER}:///{self.database_path()}"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str


def _default_data_dir() -> Path:
    xdg_home = os.getenv("XDG_DATA_HOME")
    base = Path(xdg_home) if xdg_home else Path.home() / ".local" / "share"
    return base / APP_DIR_NAME


def get_storage_config() -> StorageConfig:
    """Read ``SCRAPESYNC_DATA_DIR`` (default: ``$XDG_DATA_HOME/scrapesync``)."""

    configured = os.getenv("SCRAPESYNC_DATA_DIR")
    return StorageConfig(data_dir=Path(configured) if configured else _default_data_dir())


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    """``DATABASE_URI`` wins; otherwise a SQLite file inside the data directory."""

    override = os.getenv("DATABASE_URI")
    if override:
        return DatabaseConfig(uri=override)
    return DatabaseConfig(uri=(storage or get_storage_config()).database_uri())
