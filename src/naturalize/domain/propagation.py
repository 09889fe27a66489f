"""Write resolved names back onto every record that shares a display name."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from naturalize.config.pipeline import DEFAULT_UPDATE_CHUNK_SIZE
from naturalize.domain.dedup import chunked
from naturalize.domain.errors import RecordUpdateError

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from naturalize.domain.ports import RecordStore

log = getLogger(__name__)


@dataclass(slots=True)
class PropagationReport:
    updated: int = 0
    failed: int = 0
    unresolved: int = 0
    failures: list[RecordUpdateError] = field(default_factory=list[RecordUpdateError])


class ResultPropagator:
    """Apply resolved names to records in parallel chunks with per-record isolation."""

    def __init__(
        self,
        store: RecordStore,
        *,
        chunk_size: int = DEFAULT_UPDATE_CHUNK_SIZE,
    ) -> None:
        if chunk_size < 1:
            raise ValueError(f"Chunk size must be positive, got {chunk_size}")
        self._store = store
        self._chunk_size = chunk_size

    async def propagate(
        self,
        resolutions: Mapping[str, str],
        index: Mapping[str, Sequence[str]],
    ) -> PropagationReport:
        report = PropagationReport()
        updates: list[tuple[str, str]] = []
        for name, record_ids in index.items():
            natural = resolutions.get(name)
            if natural is None:
                report.unresolved += len(record_ids)
                continue
            updates.extend((record_id, natural) for record_id in record_ids)

        chunks = chunked(updates, self._chunk_size)
        for number, chunk in enumerate(chunks, start=1):
            outcomes = await asyncio.gather(
                *(self._apply(record_id, natural) for record_id, natural in chunk)
            )
            for outcome in outcomes:
                if outcome is None:
                    report.updated += 1
                else:
                    report.failed += 1
                    report.failures.append(outcome)
            log.debug(f"Update chunk {number}/{len(chunks)} done ({len(chunk)} records)")

        if report.unresolved:
            log.info(f"{report.unresolved} records left pending without a resolution")
        log.info(f"Propagated names: {report.updated} updated, {report.failed} failed")
        return report

    async def _apply(self, record_id: str, natural: str) -> RecordUpdateError | None:
        try:
            ok = await asyncio.to_thread(self._store.update_resolved_name, record_id, natural)
        except Exception as exc:  # noqa: BLE001
            error = RecordUpdateError(record_id, str(exc))
            log.warning(f"Failed to update {record_id}: {exc}")
            return error
        if not ok:
            log.warning(f"Record store rejected update for {record_id}")
            return RecordUpdateError(record_id, "update not applied")
        return None
