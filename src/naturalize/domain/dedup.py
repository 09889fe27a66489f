"""Reduce a batch of source records to the unique names that need resolving."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from collections.abc import Iterable

    from naturalize.domain.model import SourceRecord

T = TypeVar("T")


@dataclass(slots=True)
class DedupResult:
    names: list[str] = field(default_factory=list[str])
    index: dict[str, list[str]] = field(default_factory=dict[str, list[str]])
    skipped_blank: int = 0
    skipped_resolved: int = 0

    def __len__(self) -> int:
        return len(self.names)

    def record_count(self) -> int:
        return sum(len(ids) for ids in self.index.values())


def is_blank(name: str | None) -> bool:
    return name is None or not name.strip()


def deduplicate(records: Iterable[SourceRecord]) -> DedupResult:
    """Group pending records by display name.

    Names keep first-seen order. Display names are used verbatim as keys so they
    match the cache key exactly; blank names and already-resolved records are
    skipped.
    """

    result = DedupResult()
    for record in records:
        if not record.is_pending:
            result.skipped_resolved += 1
            continue
        name = record.display_name
        if name is None or is_blank(name):
            result.skipped_blank += 1
            continue
        ids = result.index.get(name)
        if ids is None:
            ids = []
            result.index[name] = ids
            result.names.append(name)
        ids.append(record.id)
    return result


def chunked(items: list[T], size: int) -> list[list[T]]:
    if size < 1:
        raise ValueError(f"Chunk size must be positive, got {size}")
    return [items[start : start + size] for start in range(0, len(items), size)]
