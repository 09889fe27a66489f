"""Cache-aside gateway in front of the persistent name cache."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from logging import getLogger
from typing import TYPE_CHECKING

from naturalize.config.pipeline import DEFAULT_CACHE_CHUNK_SIZE
from naturalize.domain.dedup import chunked
from naturalize.domain.errors import CacheBackendError

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from naturalize.domain.ports import NameCache

log = getLogger(__name__)

ErrorSink = Callable[[str], None]


def _ignore_error(_message: str) -> None:
    return None


class CacheGateway:
    """Chunked, failure-tolerant reads and writes against a :class:`NameCache`.

    Backend failures never escape: a failed lookup chunk counts as all-miss (the
    names simply get recomputed) and a failed write chunk is reported through
    ``on_error`` and dropped.
    """

    def __init__(
        self,
        cache: NameCache,
        *,
        chunk_size: int = DEFAULT_CACHE_CHUNK_SIZE,
        on_error: ErrorSink | None = None,
    ) -> None:
        if chunk_size < 1:
            raise ValueError(f"Chunk size must be positive, got {chunk_size}")
        self._cache = cache
        self._chunk_size = chunk_size
        self._on_error = on_error or _ignore_error

    async def lookup(self, names: Iterable[str]) -> dict[str, str]:
        unique = list(dict.fromkeys(names))
        found: dict[str, str] = {}
        for number, chunk in enumerate(chunked(unique, self._chunk_size), start=1):
            try:
                partial = await asyncio.to_thread(self._cache.get_many, chunk)
            except Exception as exc:  # noqa: BLE001
                self._fail(f"Cache lookup chunk {number} ({len(chunk)} names) failed", exc)
                continue
            requested = set(chunk)
            found.update({key: value for key, value in partial.items() if key in requested})

        if found:
            await self._touch(list(found))
        log.info(f"Cache lookup: {len(found)} of {len(unique)} names found")
        return found

    async def upsert(self, entries: Mapping[str, str]) -> int:
        """Write ``original -> natural`` pairs; returns the number of rows written."""

        items = list(entries.items())
        written = 0
        for number, chunk in enumerate(chunked(items, self._chunk_size), start=1):
            try:
                written += await asyncio.to_thread(self._cache.upsert_many, dict(chunk))
            except Exception as exc:  # noqa: BLE001
                self._fail(f"Cache write chunk {number} ({len(chunk)} names) failed", exc)
        return written

    async def _touch(self, names: list[str]) -> None:
        for chunk in chunked(names, self._chunk_size):
            try:
                await asyncio.to_thread(self._cache.touch_many, chunk)
            except Exception as exc:  # noqa: BLE001
                self._fail("Recording cache usage failed", exc)

    def _fail(self, message: str, exc: Exception) -> None:
        error = exc if isinstance(exc, CacheBackendError) else CacheBackendError(str(exc))
        log.warning(f"{message}: {error}")
        self._on_error(f"{message}: {error}")
