"""Ports the pipeline depends on; adapters implement them."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from naturalize.domain.model import RunStats, SourceRecord


@runtime_checkable
class RecordStore(Protocol):
    """Source records keyed by a stable id.

    Implementations are synchronous; the pipeline calls them from worker threads,
    so they must be safe to use concurrently.
    """

    def fetch_pending(self, limit: int, category: str | None = None) -> list[SourceRecord]: ...

    def update_resolved_name(self, record_id: str, name: str) -> bool: ...


@runtime_checkable
class NameCache(Protocol):
    """Persistent original-name to natural-name mapping with a unique key."""

    def get_many(self, names: Iterable[str]) -> dict[str, str]: ...

    def upsert_many(self, entries: Mapping[str, str]) -> int: ...

    def touch_many(self, names: Iterable[str]) -> int: ...


@runtime_checkable
class NameGenerator(Protocol):
    """Text-generation backend that answers one prompt."""

    async def complete(self, prompt: str) -> str: ...


@runtime_checkable
class RunReporter(Protocol):
    """Publishes the outcome of a run somewhere humans will see it."""

    async def report(self, stats: RunStats) -> None: ...
