from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest

from naturalize.adapters.sqlalchemy import (
    SqlAlchemyNameCache,
    SqlAlchemyRecordStore,
    build_engine,
    create_all_tables,
    shutdown,
    startup,
)

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    from sqlalchemy.engine import Engine


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = build_engine("sqlite+pysqlite:///:memory:")
    create_all_tables(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def file_engine(tmp_path: Path) -> Iterator[Engine]:
    """SQLite file database, for tests that write from several worker threads."""

    engine = build_engine(f"sqlite+pysqlite:///{tmp_path / 'naturalize.db'}")
    create_all_tables(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def record_store(sqlite_engine: Engine) -> SqlAlchemyRecordStore:
    return SqlAlchemyRecordStore(sqlite_engine)


@pytest.fixture
def name_cache(sqlite_engine: Engine) -> SqlAlchemyNameCache:
    return SqlAlchemyNameCache(sqlite_engine)


@pytest.fixture
def started_engine(file_engine: Engine) -> Iterator[Engine]:
    startup(engine=file_engine, force=True)
    try:
        yield file_engine
    finally:
        shutdown()
