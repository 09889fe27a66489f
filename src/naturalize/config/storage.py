"""Where records and the name cache live."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .env import env_flag

DATA_DIR_ENV: Final[str] = "NATURALIZE_DATA_DIR"
DATABASE_URI_ENV: Final[str] = "DATABASE_URI"
DATABASE_FILENAME: Final[str] = "naturalize.db"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    """Local data directory used when no ``DATABASE_URI`` is configured."""

    data_dir: Path

    @property
    def database_file(self) -> Path:
        return self.data_dir / DATABASE_FILENAME

    def sqlite_uri(self) -> str:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        return f"sqlite+pysqlite:///{self.database_file}"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str
    echo: bool = False


def get_storage_config() -> StorageConfig:
    configured = os.getenv(DATA_DIR_ENV)
    if configured:
        data_dir = Path(configured)
    else:
        xdg = os.getenv("XDG_DATA_HOME")
        data_dir = (Path(xdg) if xdg else Path.home() / ".local" / "share") / "naturalize"
    return StorageConfig(data_dir=data_dir.expanduser().resolve())


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    """Prefer ``DATABASE_URI`` (the shared Postgres in production), else a local SQLite file."""

    echo = env_flag("DATABASE_ECHO")
    uri = (os.getenv(DATABASE_URI_ENV) or "").strip()
    if uri:
        return DatabaseConfig(uri=uri, echo=echo)
    return DatabaseConfig(uri=(storage or get_storage_config()).sqlite_uri(), echo=echo)
