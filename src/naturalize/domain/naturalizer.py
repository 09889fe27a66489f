"""Turn a batch of business names into conversational short names.

One request carries the whole batch as a numbered list. The reply is free text;
:func:`parse_response` recovers one name per line and :meth:`Naturalizer.resolve`
guarantees the output lines up with the input, whatever the upstream returned.
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Awaitable, Callable
from logging import getLogger
from typing import TYPE_CHECKING

from naturalize.config.pipeline import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_RATE_LIMIT_DELAY_MS,
    DEFAULT_RETRY_DELAY_MS,
)
from naturalize.domain.errors import (
    FatalUpstreamError,
    RateLimitedError,
    UpstreamError,
)
from naturalize.domain.model import Resolution, ResolutionOutcome

if TYPE_CHECKING:
    from collections.abc import Sequence

    from naturalize.domain.ports import NameGenerator

log = getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]

PROMPT_TEMPLATE = """\
You are helping create natural, conversational versions of business names for email outreach.

For each business name, create a shortened, natural version that would sound appropriate \
in an email greeting like "Hi [Natural Name],"

RULES:
1. Remove business type suffixes that aren't part of the actual name \
(Boutique, Floral, Party Store, Bookstore, Shop, Store, etc.)
2. Remove legal entities (LLC, Co., Inc., Corporation, etc.)
3. Remove "The" prefix in most cases
4. Remove promotional/descriptive text (hours, locations, "call after", etc.)
5. Fix formatting issues (extra spaces, invisible characters)
6. Keep it conversational - what would a human naturally call this business?
7. If truncation would be confusing, keep more of the name
8. Remove quotation marks and clean up formatting

EXAMPLES:
- "Birthday's Plus Floral & Party Store" -> "Birthday's Plus"
- "DeJa Vu Flowers Open late call after 12 AM" -> "Deja Vu Flowers"
- "The BookWorm Bookstore & More" -> "BookWorm"
- "North Branch Floral" -> "North Branch"
- "Cigi's Boutique" -> "Cigi's"

Please process these business names and return ONLY the natural versions, \
one per line, in the same order:

{names}"""

_ORDINAL = re.compile(r"^\s*(?:\d+[.):](?=\s|$)|\d+\s+-\s|[-*\u2022](?=\s))\s*")
_INVISIBLE = re.compile("[\u200b-\u200f\u202a-\u202e\u2060\ufeff]")
_QUOTES = "\"'\u201c\u201d\u2018\u2019`"


def build_prompt(names: Sequence[str]) -> str:
    numbered = "\n".join(f"{position}. {name}" for position, name in enumerate(names, start=1))
    return PROMPT_TEMPLATE.format(names=numbered)


def clean_line(line: str) -> str:
    text = _INVISIBLE.sub("", line)
    text = _ORDINAL.sub("", text, count=1).strip()
    if len(text) >= 2 and text[0] in _QUOTES and text[-1] in _QUOTES:  # noqa: PLR2004
        text = text[1:-1].strip()
    return " ".join(text.split())


def parse_response(content: str) -> list[str]:
    """Split a reply into ordered names, dropping blank lines and list markers."""

    cleaned = (clean_line(line) for line in content.splitlines() if line.strip())
    return [line for line in cleaned if line]


def align(batch: Sequence[str], parsed: Sequence[str]) -> Resolution:
    """Fit parsed lines to ``batch``: extras are dropped, gaps resolve to the input."""

    names = list(parsed[: len(batch)])
    padded = len(batch) - len(names)
    if padded:
        names.extend(batch[len(names) :])
        return Resolution(
            names=tuple(names),
            outcome=ResolutionOutcome.PADDED,
            fallback_count=padded,
        )
    return Resolution(names=tuple(names))


def identity(batch: Sequence[str]) -> Resolution:
    return Resolution(
        names=tuple(batch),
        outcome=ResolutionOutcome.IDENTITY_FALLBACK,
        fallback_count=len(batch),
    )


class Naturalizer:
    """Resolve batches through a :class:`NameGenerator` with retry and fallback.

    Rate limiting waits ``rate_limit_delay * attempt`` (or the upstream's
    ``Retry-After`` if that is longer); other transient failures wait a fixed
    ``retry_delay``. Both share the ``max_retries`` budget, after which the batch
    falls back to identity. Fatal upstream errors are re-raised immediately.
    """

    def __init__(
        self,
        generator: NameGenerator,
        *,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY_MS / 1000,
        rate_limit_delay: float = DEFAULT_RATE_LIMIT_DELAY_MS / 1000,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {max_retries}")
        self._generator = generator
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._rate_limit_delay = rate_limit_delay
        self._sleep = sleep

    async def resolve(self, batch: Sequence[str]) -> Resolution:
        if not batch:
            return Resolution(names=())

        prompt = build_prompt(batch)
        attempts = self._max_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                content = await self._generator.complete(prompt)
            except FatalUpstreamError:
                log.error(f"Fatal upstream condition while resolving {len(batch)} names")
                raise
            except RateLimitedError as exc:
                delay = self._rate_limit_delay * attempt
                if exc.retry_after is not None:
                    delay = max(delay, exc.retry_after)
                log.warning(f"Rate limited (attempt {attempt}/{attempts}): {exc}")
            except UpstreamError as exc:
                delay = self._retry_delay
                log.warning(f"Upstream call failed (attempt {attempt}/{attempts}): {exc}")
            else:
                return self._finish(batch, content)

            if attempt < attempts:
                log.info(f"Retrying in {delay:.1f}s")
                await self._sleep(delay)

        log.warning(f"Retries exhausted; keeping {len(batch)} original names")
        return identity(batch)

    @staticmethod
    def _finish(batch: Sequence[str], content: str) -> Resolution:
        parsed = parse_response(content)
        if len(parsed) != len(batch):
            log.warning(f"Response count mismatch: expected {len(batch)}, got {len(parsed)}")
        return align(batch, parsed)
