"""Orchestrate one naturalization run over pending records."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from naturalize.config.pipeline import PipelineConfig
from naturalize.domain.cache import CacheGateway
from naturalize.domain.concurrency import ConcurrencyController
from naturalize.domain.dedup import chunked, deduplicate
from naturalize.domain.model import PipelineState, ResolutionOutcome, RunStats
from naturalize.domain.naturalizer import Naturalizer
from naturalize.domain.propagation import ResultPropagator

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from naturalize.domain.errors import FatalUpstreamError
    from naturalize.domain.ports import NameCache, NameGenerator, RecordStore

log = getLogger(__name__)


@dataclass(slots=True)
class NaturalizationPipeline:
    """Run the fetch, dedup, cache, resolve, write-back sequence once per call.

    Components are built from ``config`` unless injected. The naturalizer and
    controller are exposed so callers (and tests) can swap timing behaviour.
    """

    store: RecordStore
    cache: NameCache
    generator: NameGenerator
    config: PipelineConfig = field(default_factory=PipelineConfig)
    naturalizer: Naturalizer | None = None
    controller: ConcurrencyController | None = None
    clock: Callable[[], float] = time.monotonic

    def __post_init__(self) -> None:
        if self.naturalizer is None:
            self.naturalizer = Naturalizer(
                self.generator,
                max_retries=self.config.max_retries,
                retry_delay=self.config.retry_delay_seconds,
                rate_limit_delay=self.config.rate_limit_delay_seconds,
            )
        if self.controller is None:
            self.controller = ConcurrencyController(
                limit=self.config.concurrency,
                dispatch_delay=self.config.dispatch_delay_seconds,
            )

    async def run(self, limit: int | None = None, category: str | None = None) -> RunStats:
        if limit is None:
            limit = self.config.max_records_per_run
        elif limit < 1:
            raise ValueError(f"limit must be positive, got {limit}")
        stats = RunStats()
        started = self.clock()
        try:
            await self._run(stats, limit, category)
        finally:
            stats.duration_seconds = self.clock() - started
        log.info(f"Run finished: {stats.summary()}")
        return stats

    async def _run(self, stats: RunStats, limit: int, category: str | None) -> None:
        log.info(f"Starting run: limit={limit}, category={category}")
        records = await asyncio.to_thread(self.store.fetch_pending, limit, category)
        stats.fetched = len(records)
        if not records:
            _advance(stats, PipelineState.EMPTY)
            return
        _advance(stats, PipelineState.FETCHED)

        dedup = deduplicate(records)
        stats.unique_names = len(dedup)
        stats.skipped_blank = dedup.skipped_blank
        _advance(stats, PipelineState.DEDUPED)
        log.info(f"{len(dedup)} unique names across {dedup.record_count()} records")

        gateway = CacheGateway(
            self.cache,
            chunk_size=self.config.cache_chunk_size,
            on_error=stats.record_error,
        )
        resolutions = await gateway.lookup(dedup.names)
        stats.cache_hits = len(resolutions)
        _advance(stats, PipelineState.CACHE_CHECKED)

        misses = [name for name in dedup.names if name not in resolutions]
        fatal = None
        if misses:
            _advance(stats, PipelineState.RESOLVING)
            fatal = await self._resolve(misses, resolutions, gateway, stats)
            if fatal is None:
                _advance(stats, PipelineState.CACHE_WRITTEN)

        propagator = ResultPropagator(self.store, chunk_size=self.config.update_chunk_size)
        report = await propagator.propagate(resolutions, dedup.index)
        stats.processed = report.updated
        stats.unresolved = report.unresolved
        for failure in report.failures:
            stats.record_error(str(failure))

        if fatal is not None:
            stats.error = fatal
            stats.record_error(f"Run stopped: {fatal}")
            _advance(stats, PipelineState.FAILED)
            return
        _advance(stats, PipelineState.PROPAGATED)
        _advance(stats, PipelineState.COMPLETED)

    async def _resolve(
        self,
        misses: list[str],
        resolutions: dict[str, str],
        gateway: CacheGateway,
        stats: RunStats,
    ) -> FatalUpstreamError | None:
        naturalizer = self.naturalizer
        controller = self.controller
        if naturalizer is None or controller is None:
            raise RuntimeError("Pipeline components not initialised")

        batches = chunked(misses, self.config.batch_size)
        log.info(f"Resolving {len(misses)} names in {len(batches)} batches")

        async def work(batch: list[str]) -> None:
            stats.api_calls += 1
            resolution = await naturalizer.resolve(batch)
            fresh = dict(zip(batch, resolution.names, strict=True))
            stats.resolved += resolution.resolved_count
            stats.fallbacks += resolution.fallback_count
            if resolution.outcome is ResolutionOutcome.IDENTITY_FALLBACK:
                stats.record_error(f"Identity fallback for batch of {len(batch)} names")
            stats.cache_writes += await gateway.upsert(fresh)
            resolutions.update(fresh)

        report = await controller.run(batches, work)
        return report.fatal


def _advance(stats: RunStats, state: PipelineState) -> None:
    stats.transition(state)
    log.info(f"Pipeline state -> {state}")


async def run_until_drained(
    run: Callable[[], Awaitable[RunStats]],
    *,
    max_iterations: int = 1000,
    idle_delay: float = 1.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> list[RunStats]:
    """Repeat ``run`` until nothing is left to do or a run fails."""

    history: list[RunStats] = []
    for iteration in range(1, max_iterations + 1):
        log.info(f"Continuous processing iteration {iteration}/{max_iterations}")
        stats = await run()
        history.append(stats)
        if stats.state in {PipelineState.EMPTY, PipelineState.FAILED}:
            break
        if stats.processed == 0:
            break
        if iteration < max_iterations and idle_delay:
            await sleep(idle_delay)
    total = sum(stats.processed for stats in history)
    log.info(f"Continuous processing done: {len(history)} runs, {total} records updated")
    return history
