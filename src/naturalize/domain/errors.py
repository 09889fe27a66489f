"""Error taxonomy for the naturalization pipeline.

Only :class:`FatalUpstreamError` ends a run early. Every other kind is absorbed by
the component that sees it and shows up in ``RunStats.errors``.
"""

from __future__ import annotations


class NaturalizationError(RuntimeError):
    """Base class for pipeline errors."""


class UpstreamError(NaturalizationError):
    """Raised by the generation adapter; subclasses drive retry classification."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TransientUpstreamError(UpstreamError):
    """Network blip, server error or malformed payload. Retried with a fixed delay."""


class RateLimitedError(UpstreamError):
    """The upstream asked us to slow down. Retried with an increasing delay."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = 429,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message, status_code=status_code)
        self.retry_after = retry_after


class FatalUpstreamError(UpstreamError):
    """Retrying cannot help; the run must stop."""


class QuotaExhaustedError(FatalUpstreamError):
    """Credits for the generation API are used up."""


class UpstreamAuthError(FatalUpstreamError):
    """The generation API rejected our credentials."""


class CacheBackendError(NaturalizationError):
    """A cache read or write failed; callers degrade to recomputation."""


class RecordUpdateError(NaturalizationError):
    """A single record update failed."""

    def __init__(self, record_id: str, message: str) -> None:
        super().__init__(f"{record_id}: {message}")
        self.record_id = record_id
