"""Tuning defaults for the naturalization pipeline."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_int

DEFAULT_BATCH_SIZE = 8
DEFAULT_CONCURRENCY = 8
DEFAULT_DISPATCH_DELAY_MS = 1500
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY_MS = 3000
DEFAULT_RATE_LIMIT_DELAY_MS = 2000
DEFAULT_MAX_RECORDS_PER_RUN = 1000
DEFAULT_CACHE_CHUNK_SIZE = 500
DEFAULT_UPDATE_CHUNK_SIZE = 100


@dataclass(frozen=True, slots=True)
class PipelineConfig:
    batch_size: int = DEFAULT_BATCH_SIZE
    concurrency: int = DEFAULT_CONCURRENCY
    dispatch_delay_seconds: float = DEFAULT_DISPATCH_DELAY_MS / 1000
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_delay_seconds: float = DEFAULT_RETRY_DELAY_MS / 1000
    rate_limit_delay_seconds: float = DEFAULT_RATE_LIMIT_DELAY_MS / 1000
    max_records_per_run: int = DEFAULT_MAX_RECORDS_PER_RUN
    cache_chunk_size: int = DEFAULT_CACHE_CHUNK_SIZE
    update_chunk_size: int = DEFAULT_UPDATE_CHUNK_SIZE


def get_pipeline_config() -> PipelineConfig:
    return PipelineConfig(
        batch_size=env_int("BATCH_SIZE", DEFAULT_BATCH_SIZE, minimum=1),
        concurrency=env_int("CONCURRENT_REQUESTS", DEFAULT_CONCURRENCY, minimum=1),
        dispatch_delay_seconds=env_int("DELAY_BETWEEN_CALLS", DEFAULT_DISPATCH_DELAY_MS) / 1000,
        max_retries=env_int("MAX_RETRIES", DEFAULT_MAX_RETRIES),
        retry_delay_seconds=env_int("RETRY_DELAY", DEFAULT_RETRY_DELAY_MS) / 1000,
        rate_limit_delay_seconds=env_int("RATE_LIMIT_DELAY", DEFAULT_RATE_LIMIT_DELAY_MS) / 1000,
        max_records_per_run=env_int("MAX_RECORDS_PER_RUN", DEFAULT_MAX_RECORDS_PER_RUN, minimum=1),
    )
