"""Record store and name cache backed by SQLAlchemy Core.

Each call opens its own short transaction on the engine, so instances are safe to
share between the worker threads the pipeline dispatches to.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from sqlalchemy import and_, delete, func, insert, select, update
from sqlalchemy.dialects import postgresql, sqlite

from naturalize.adapters.sqlalchemy.mappings import (
    name_naturalization_table,
    source_record_table,
    utcnow,
)
from naturalize.domain.errors import CacheBackendError
from naturalize.domain.model import CacheEntry, SourceRecord

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from sqlalchemy.engine import Engine, RowMapping
    from sqlalchemy.sql.elements import ColumnElement


@dataclass(frozen=True, slots=True)
class ProcessingStats:
    total: int
    resolved: int
    pending: int

    @property
    def percent_done(self) -> int:
        if not self.total:
            return 100
        return round(self.resolved * 100 / self.total)


def _is_pending() -> ColumnElement[bool]:
    table = source_record_table
    return and_(
        table.c.resolved_name.is_(None),
        table.c.display_name.is_not(None),
        func.trim(table.c.display_name) != "",
    )


def _to_record(row: RowMapping) -> SourceRecord:
    return SourceRecord(
        id=row["id"],
        display_name=row["display_name"],
        resolved_name=row["resolved_name"],
        category=row["category"],
    )


class SqlAlchemyRecordStore:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def fetch_pending(self, limit: int, category: str | None = None) -> list[SourceRecord]:
        table = source_record_table
        stmt = (
            select(table)
            .where(_is_pending())
            .order_by(table.c.added_at.desc(), table.c.id)
            .limit(limit)
        )
        if category is not None:
            stmt = stmt.where(table.c.category == category)
        with self.engine.connect() as conn:
            return [_to_record(row) for row in conn.execute(stmt).mappings()]

    def update_resolved_name(self, record_id: str, name: str) -> bool:
        stmt = (
            update(source_record_table)
            .where(source_record_table.c.id == record_id)
            .values(resolved_name=name, updated_at=utcnow())
        )
        with self.engine.begin() as conn:
            result = conn.execute(stmt)
        return result.rowcount > 0

    def add_many(self, records: Iterable[SourceRecord]) -> int:
        rows = [
            {
                "id": record.id,
                "display_name": record.display_name,
                "resolved_name": record.resolved_name,
                "category": record.category,
            }
            for record in records
        ]
        if not rows:
            return 0
        with self.engine.begin() as conn:
            conn.execute(insert(source_record_table), rows)
        return len(rows)

    def get(self, record_id: str) -> SourceRecord | None:
        stmt = select(source_record_table).where(source_record_table.c.id == record_id)
        with self.engine.connect() as conn:
            row = conn.execute(stmt).mappings().one_or_none()
        return _to_record(row) if row is not None else None

    def processing_stats(self, category: str | None = None) -> ProcessingStats:
        table = source_record_table
        stmt = select(
            func.count(),
            func.count(table.c.resolved_name),
            func.count().filter(_is_pending()),
        )
        if category is not None:
            stmt = stmt.where(table.c.category == category)
        with self.engine.connect() as conn:
            total, resolved, pending = conn.execute(stmt).one()
        return ProcessingStats(total=total, resolved=resolved, pending=pending)

    def reset_resolved_names(self, category: str | None = None) -> int:
        """Clear resolved names so the next run recomputes them."""

        stmt = (
            update(source_record_table)
            .where(source_record_table.c.resolved_name.is_not(None))
            .values(resolved_name=None, updated_at=utcnow())
        )
        if category is not None:
            stmt = stmt.where(source_record_table.c.category == category)
        with self.engine.begin() as conn:
            return conn.execute(stmt).rowcount


class SqlAlchemyNameCache:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def get_many(self, names: Iterable[str]) -> dict[str, str]:
        keys = list(names)
        if not keys:
            return {}
        table = name_naturalization_table
        stmt = select(table.c.original_name, table.c.natural_name).where(
            table.c.original_name.in_(keys)
        )
        with self.engine.connect() as conn:
            return {original: natural for original, natural in conn.execute(stmt)}

    def upsert_many(self, entries: Mapping[str, str]) -> int:
        if not entries:
            return 0
        now = utcnow()
        rows = [
            {
                "original_name": original,
                "natural_name": natural,
                "usage_count": 1,
                "created_at": now,
                "last_used_at": now,
            }
            for original, natural in entries.items()
        ]
        table = name_naturalization_table
        stmt = self._insert()
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.original_name],
            set_={
                "natural_name": stmt.excluded.natural_name,
                "usage_count": table.c.usage_count + 1,
                "last_used_at": stmt.excluded.last_used_at,
            },
        )
        with self.engine.begin() as conn:
            conn.execute(stmt, rows)
        return len(rows)

    def touch_many(self, names: Iterable[str]) -> int:
        keys = list(names)
        if not keys:
            return 0
        table = name_naturalization_table
        stmt = (
            update(table)
            .where(table.c.original_name.in_(keys))
            .values(usage_count=table.c.usage_count + 1, last_used_at=utcnow())
        )
        with self.engine.begin() as conn:
            return conn.execute(stmt).rowcount

    def get_entry(self, name: str) -> CacheEntry | None:
        table = name_naturalization_table
        stmt = select(table).where(table.c.original_name == name)
        with self.engine.connect() as conn:
            row = conn.execute(stmt).mappings().one_or_none()
        if row is None:
            return None
        return CacheEntry(
            original_name=row["original_name"],
            natural_name=row["natural_name"],
            usage_count=row["usage_count"],
            created_at=row["created_at"],
            last_used_at=row["last_used_at"],
        )

    def count(self) -> int:
        stmt = select(func.count()).select_from(name_naturalization_table)
        with self.engine.connect() as conn:
            return conn.execute(stmt).scalar_one()

    def purge_identity_entries(self) -> int:
        """Delete entries whose natural name equals the original (failed resolutions)."""

        table = name_naturalization_table
        stmt = delete(table).where(table.c.original_name == table.c.natural_name)
        with self.engine.begin() as conn:
            return conn.execute(stmt).rowcount

    def _insert(self) -> Any:
        dialect = self.engine.dialect.name
        if dialect == "postgresql":
            return postgresql.insert(name_naturalization_table)
        if dialect == "sqlite":
            return sqlite.insert(name_naturalization_table)
        raise CacheBackendError(f"Upsert is not supported for the {dialect!r} dialect")


if TYPE_CHECKING:
    from typing import cast

    from naturalize.domain.ports import NameCache, RecordStore

    _engine_stub = cast("Engine", object())
    _store_check: RecordStore = SqlAlchemyRecordStore(_engine_stub)
    _cache_check: NameCache = SqlAlchemyNameCache(_engine_stub)
