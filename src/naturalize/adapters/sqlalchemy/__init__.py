"""SQLAlchemy adapter package for naturalize."""

from __future__ import annotations

from .engine import (
    StartupError,
    build_engine,
    configured_engine,
    is_started,
    shutdown,
    startup,
)
from .mappings import (
    create_all_tables,
    metadata,
    name_naturalization_table,
    source_record_table,
)
from .repositories import ProcessingStats, SqlAlchemyNameCache, SqlAlchemyRecordStore

__all__ = [
    "ProcessingStats",
    "SqlAlchemyNameCache",
    "SqlAlchemyRecordStore",
    "StartupError",
    "build_engine",
    "configured_engine",
    "create_all_tables",
    "is_started",
    "metadata",
    "name_naturalization_table",
    "shutdown",
    "source_record_table",
    "startup",
]
