"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
from contextlib import AsyncExitStack
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from naturalize.adapters.openrouter import OpenRouterClient
from naturalize.adapters.slack import LoggingReporter, SlackWebhookReporter
from naturalize.adapters.sqlalchemy import (
    ProcessingStats,
    SqlAlchemyNameCache,
    SqlAlchemyRecordStore,
    configured_engine,
    is_started,
    startup,
)
from naturalize.config import get_openrouter_config, get_pipeline_config, get_slack_config
from naturalize.domain.pipeline import NaturalizationPipeline, run_until_drained

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from naturalize.config import PipelineConfig
    from naturalize.domain.model import RunStats
    from naturalize.domain.ports import NameGenerator, RunReporter

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StatusReport:
    records: ProcessingStats
    cached_names: int


def _engine() -> Engine:
    if not is_started():
        startup()
    return configured_engine()


def build_reporter() -> RunReporter:
    slack = get_slack_config()
    if slack.active:
        return SlackWebhookReporter(config=slack)
    return LoggingReporter()


def naturalize_pending_names(
    *,
    limit: int | None = None,
    category: str | None = None,
    config: PipelineConfig | None = None,
    generator: NameGenerator | None = None,
    reporter: RunReporter | None = None,
) -> RunStats:
    """Run the pipeline once over up to ``limit`` pending records."""

    history = asyncio.run(
        _naturalize_async(
            limit=limit,
            category=category,
            config=config,
            generator=generator,
            reporter=reporter,
            max_iterations=None,
        )
    )
    return history[0]


def naturalize_until_drained(
    *,
    limit: int | None = None,
    category: str | None = None,
    max_iterations: int = 1000,
    config: PipelineConfig | None = None,
    generator: NameGenerator | None = None,
    reporter: RunReporter | None = None,
) -> list[RunStats]:
    """Keep running until no pending records remain or a run fails."""

    return asyncio.run(
        _naturalize_async(
            limit=limit,
            category=category,
            config=config,
            generator=generator,
            reporter=reporter,
            max_iterations=max_iterations,
        )
    )


async def _naturalize_async(
    *,
    limit: int | None,
    category: str | None,
    config: PipelineConfig | None,
    generator: NameGenerator | None,
    reporter: RunReporter | None,
    max_iterations: int | None,
) -> list[RunStats]:
    engine = _engine()
    store = SqlAlchemyRecordStore(engine)
    effective_config = config or get_pipeline_config()
    effective_reporter = reporter or build_reporter()
    log.info(
        f"Starting naturalization: limit={limit or effective_config.max_records_per_run}, "
        f"category={category}, batch_size={effective_config.batch_size}, "
        f"concurrency={effective_config.concurrency}"
    )

    async with AsyncExitStack() as stack:
        if generator is None:
            client = OpenRouterClient(config=get_openrouter_config())
            generator = await stack.enter_async_context(client)
        pipeline = NaturalizationPipeline(
            store=store,
            cache=SqlAlchemyNameCache(engine),
            generator=generator,
            config=effective_config,
        )

        async def run_once() -> RunStats:
            stats = await pipeline.run(limit, category)
            stats.pending_remaining = (
                await asyncio.to_thread(store.processing_stats, category)
            ).pending
            await effective_reporter.report(stats)
            return stats

        if max_iterations is None:
            return [await run_once()]
        return await run_until_drained(
            run_once,
            max_iterations=max_iterations,
            idle_delay=effective_config.dispatch_delay_seconds,
        )


def processing_status(*, category: str | None = None) -> StatusReport:
    engine = _engine()
    return StatusReport(
        records=SqlAlchemyRecordStore(engine).processing_stats(category),
        cached_names=SqlAlchemyNameCache(engine).count(),
    )


def purge_identity_cache_entries() -> int:
    """Operator tool: forget cache entries that merely echo their key."""

    removed = SqlAlchemyNameCache(_engine()).purge_identity_entries()
    log.info(f"Removed {removed} identity cache entries")
    return removed


def reset_resolved_names(*, category: str | None = None) -> int:
    """Operator tool: mark records pending again."""

    reset = SqlAlchemyRecordStore(_engine()).reset_resolved_names(category)
    log.info(f"Reset {reset} records (category={category})")
    return reset
