"""Bounded, paced dispatch of naturalization batches."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, TypeVar

from naturalize.domain.errors import FatalUpstreamError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

log = getLogger(__name__)

T = TypeVar("T")


@dataclass(slots=True)
class DispatchReport:
    total: int = 0
    dispatched: int = 0
    completed: int = 0
    fatal: FatalUpstreamError | None = None

    @property
    def skipped(self) -> int:
        return self.total - self.dispatched

    @property
    def cancelled(self) -> bool:
        return self.fatal is not None


class ConcurrencyController:
    """Gate every outbound batch: at most ``limit`` in flight, ``dispatch_delay`` apart.

    A :class:`FatalUpstreamError` from any worker closes the gate. Batches not yet
    admitted are skipped, batches already running are allowed to finish, and the
    first fatal error is handed back in the report.
    """

    def __init__(
        self,
        *,
        limit: int,
        dispatch_delay: float = 0.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if limit < 1:
            raise ValueError(f"Concurrency limit must be positive, got {limit}")
        self.limit = limit
        self.dispatch_delay = max(dispatch_delay, 0.0)
        self._sleep = sleep

    async def run(
        self,
        batches: Sequence[T],
        worker: Callable[[T], Awaitable[None]],
    ) -> DispatchReport:
        report = DispatchReport(total=len(batches))
        semaphore = asyncio.Semaphore(self.limit)
        tasks: list[asyncio.Task[None]] = []

        async def guarded(number: int, batch: T) -> None:
            try:
                await worker(batch)
            except FatalUpstreamError as exc:
                if report.fatal is None:
                    report.fatal = exc
                    log.error(f"Batch {number} hit a fatal condition; no new batches admitted")
                return
            finally:
                semaphore.release()
            report.completed += 1

        try:
            for number, batch in enumerate(batches, start=1):
                await semaphore.acquire()
                if report.cancelled:
                    semaphore.release()
                    break
                if report.dispatched and self.dispatch_delay:
                    await self._sleep(self.dispatch_delay)
                    if report.cancelled:
                        semaphore.release()
                        break
                log.debug(f"Dispatching batch {number}/{report.total}")
                tasks.append(asyncio.create_task(guarded(number, batch)))
                report.dispatched += 1

            if tasks:
                await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        if report.cancelled:
            log.warning(
                f"Dispatch stopped early: {report.completed} of {report.total} batches done, "
                f"{report.skipped} skipped"
            )
        return report
