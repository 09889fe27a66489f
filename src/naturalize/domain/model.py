"""Domain types for the naturalization pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class SourceRecord:
    """A record owned by the record store whose display name needs a short form."""

    id: str
    display_name: str | None
    resolved_name: str | None = None
    category: str | None = None

    @property
    def is_pending(self) -> bool:
        return self.resolved_name is None


@dataclass(frozen=True, slots=True)
class CacheEntry:
    original_name: str
    natural_name: str
    usage_count: int = 1
    created_at: datetime = field(default_factory=_utcnow)
    last_used_at: datetime = field(default_factory=_utcnow)

    @property
    def is_identity(self) -> bool:
        return self.original_name == self.natural_name


class ResolutionOutcome(StrEnum):
    RESOLVED = "resolved"
    PADDED = "padded"
    IDENTITY_FALLBACK = "identity_fallback"


@dataclass(frozen=True, slots=True)
class Resolution:
    """Result of one Naturalizer call, aligned index-for-index with its batch."""

    names: tuple[str, ...]
    outcome: ResolutionOutcome = ResolutionOutcome.RESOLVED
    fallback_count: int = 0

    @property
    def resolved_count(self) -> int:
        return len(self.names) - self.fallback_count


class PipelineState(StrEnum):
    STARTED = "started"
    FETCHED = "fetched"
    EMPTY = "empty"
    DEDUPED = "deduped"
    CACHE_CHECKED = "cache_checked"
    RESOLVING = "resolving"
    CACHE_WRITTEN = "cache_written"
    PROPAGATED = "propagated"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATES


_TERMINAL_STATES = frozenset({PipelineState.EMPTY, PipelineState.COMPLETED, PipelineState.FAILED})


@dataclass(slots=True)
class RunStats:
    """Counters for a single pipeline execution."""

    fetched: int = 0
    unique_names: int = 0
    skipped_blank: int = 0
    cache_hits: int = 0
    api_calls: int = 0
    resolved: int = 0
    fallbacks: int = 0
    cache_writes: int = 0
    processed: int = 0
    unresolved: int = 0
    errors: int = 0
    duration_seconds: float = 0.0
    pending_remaining: int | None = None
    state: PipelineState = PipelineState.STARTED
    history: list[PipelineState] = field(default_factory=lambda: [PipelineState.STARTED])
    error: BaseException | None = None
    error_messages: list[str] = field(default_factory=list[str])

    @property
    def failed(self) -> bool:
        return self.state is PipelineState.FAILED

    @property
    def stopped_early(self) -> bool:
        """True for a run cut short by a fatal upstream condition."""

        return self.failed and self.error is not None

    def transition(self, state: PipelineState) -> None:
        if self.state.is_terminal:
            raise RuntimeError(f"Run already finished in state {self.state}")
        self.state = state
        self.history.append(state)

    def record_error(self, message: str) -> None:
        self.errors += 1
        self.error_messages.append(message)

    def summary(self) -> dict[str, object]:
        return {
            "state": str(self.state),
            "fetched": self.fetched,
            "unique_names": self.unique_names,
            "cache_hits": self.cache_hits,
            "api_calls": self.api_calls,
            "resolved": self.resolved,
            "fallbacks": self.fallbacks,
            "cache_writes": self.cache_writes,
            "processed": self.processed,
            "unresolved": self.unresolved,
            "skipped_blank": self.skipped_blank,
            "errors": self.errors,
            "duration_seconds": round(self.duration_seconds, 3),
            "pending_remaining": self.pending_remaining,
            "error": str(self.error) if self.error is not None else None,
        }
