from __future__ import annotations

import asyncio

import pytest

from naturalize.domain.errors import (
    QuotaExhaustedError,
    RateLimitedError,
    TransientUpstreamError,
    UpstreamAuthError,
    UpstreamError,
)
from naturalize.domain.model import ResolutionOutcome
from naturalize.domain.naturalizer import (
    Naturalizer,
    align,
    build_prompt,
    clean_line,
    parse_response,
)
from tests.support.fakes import ScriptedGenerator, SleepRecorder

BATCH = [
    "Birthday's Plus Floral & Party Store",
    "The BookWorm Bookstore & More",
    "Cigi's Boutique",
]


def _naturalizer(
    generator: ScriptedGenerator,
    sleep: SleepRecorder,
    *,
    max_retries: int = 3,
) -> Naturalizer:
    return Naturalizer(
        generator,
        max_retries=max_retries,
        retry_delay=3.0,
        rate_limit_delay=2.0,
        sleep=sleep,
    )


def test_build_prompt_numbers_names_in_order() -> None:
    prompt = build_prompt(["Alpha Shop", "Beta Store"])

    assert prompt.endswith("1. Alpha Shop\n2. Beta Store")
    assert "Hi [Natural Name]," in prompt


def test_parse_response_strips_ordinals_quotes_and_blank_lines() -> None:
    content = "1. Birthday's Plus\n\n2) \"BookWorm\"\n- Cigi's\n  3:   North   Branch  \n"

    assert parse_response(content) == ["Birthday's Plus", "BookWorm", "Cigi's", "North Branch"]


def test_clean_line_removes_invisible_characters() -> None:
    line = f"1. Deja{chr(0x200B)} Vu{chr(0xFEFF)} Flowers"

    assert clean_line(line) == "Deja Vu Flowers"


def test_clean_line_keeps_leading_numbers_that_are_part_of_the_name() -> None:
    assert clean_line("7-Eleven") == "7-Eleven"
    assert clean_line("1. 21st Amendment") == "21st Amendment"


def test_align_pads_short_replies_with_originals() -> None:
    resolution = align(BATCH, ["Birthday's Plus"])

    assert resolution.names == ("Birthday's Plus", BATCH[1], BATCH[2])
    assert resolution.outcome is ResolutionOutcome.PADDED
    assert resolution.fallback_count == 2
    assert resolution.resolved_count == 1


def test_align_drops_extra_lines() -> None:
    resolution = align(BATCH[:2], ["A", "B", "C"])

    assert resolution.names == ("A", "B")
    assert resolution.outcome is ResolutionOutcome.RESOLVED


def test_resolve_success_keeps_order() -> None:
    generator = ScriptedGenerator({BATCH[0]: ["1. Birthday's Plus\n2. BookWorm\n3. Cigi's"]})
    sleep = SleepRecorder()

    resolution = asyncio.run(_naturalizer(generator, sleep).resolve(BATCH))

    assert resolution.names == ("Birthday's Plus", "BookWorm", "Cigi's")
    assert resolution.outcome is ResolutionOutcome.RESOLVED
    assert sleep.delays == []
    assert generator.batches == [BATCH]


def test_resolve_empty_batch_makes_no_call() -> None:
    generator = ScriptedGenerator()

    resolution = asyncio.run(_naturalizer(generator, SleepRecorder()).resolve([]))

    assert resolution.names == ()
    assert generator.prompts == []


def test_resolve_output_length_always_matches_input() -> None:
    replies = ["", "1. Only One", "1. A\n2. B\n3. C\n4. D\n5. E"]
    for reply in replies:
        generator = ScriptedGenerator({BATCH[0]: [reply]})
        resolution = asyncio.run(_naturalizer(generator, SleepRecorder()).resolve(BATCH))
        assert len(resolution.names) == len(BATCH)


def test_transient_errors_retry_with_fixed_delay() -> None:
    generator = ScriptedGenerator(
        {
            BATCH[0]: [
                TransientUpstreamError("boom", status_code=500),
                TransientUpstreamError("timeout"),
                "1. A\n2. B\n3. C",
            ]
        }
    )
    sleep = SleepRecorder()

    resolution = asyncio.run(_naturalizer(generator, sleep).resolve(BATCH))

    assert resolution.names == ("A", "B", "C")
    assert sleep.delays == [3.0, 3.0]
    assert len(generator.prompts) == 3


def test_rate_limits_back_off_linearly() -> None:
    generator = ScriptedGenerator(
        {
            BATCH[0]: [
                RateLimitedError("slow down"),
                RateLimitedError("slow down"),
                "1. A\n2. B\n3. C",
            ]
        }
    )
    sleep = SleepRecorder()

    asyncio.run(_naturalizer(generator, sleep).resolve(BATCH))

    assert sleep.delays == [2.0, 4.0]


def test_rate_limit_honours_longer_retry_after() -> None:
    generator = ScriptedGenerator(
        {BATCH[0]: [RateLimitedError("slow down", retry_after=10.0), "1. A\n2. B\n3. C"]}
    )
    sleep = SleepRecorder()

    asyncio.run(_naturalizer(generator, sleep).resolve(BATCH))

    assert sleep.delays == [10.0]


def test_exhausted_retries_fall_back_to_identity() -> None:
    generator = ScriptedGenerator({BATCH[0]: [TransientUpstreamError("down")] * 4})
    sleep = SleepRecorder()

    resolution = asyncio.run(_naturalizer(generator, sleep).resolve(BATCH))

    assert resolution.names == tuple(BATCH)
    assert resolution.outcome is ResolutionOutcome.IDENTITY_FALLBACK
    assert resolution.fallback_count == 3
    assert len(generator.prompts) == 4
    assert sleep.delays == [3.0, 3.0, 3.0]


def test_unclassified_upstream_errors_retry_then_fall_back() -> None:
    generator = ScriptedGenerator(
        {BATCH[0]: [UpstreamError("unexpected reply", status_code=418)] * 3}
    )
    sleep = SleepRecorder()

    resolution = asyncio.run(_naturalizer(generator, sleep, max_retries=2).resolve(BATCH))

    assert resolution.outcome is ResolutionOutcome.IDENTITY_FALLBACK
    assert resolution.names == tuple(BATCH)
    assert len(generator.prompts) == 3
    assert sleep.delays == [3.0, 3.0]


def test_zero_retries_means_single_attempt() -> None:
    generator = ScriptedGenerator({BATCH[0]: [RateLimitedError("slow down")]})
    sleep = SleepRecorder()

    resolution = asyncio.run(_naturalizer(generator, sleep, max_retries=0).resolve(BATCH))

    assert resolution.outcome is ResolutionOutcome.IDENTITY_FALLBACK
    assert len(generator.prompts) == 1
    assert sleep.delays == []


@pytest.mark.parametrize(
    "error",
    [
        QuotaExhaustedError("credits gone", status_code=402),
        UpstreamAuthError("bad key", status_code=401),
    ],
)
def test_fatal_errors_are_not_retried(error: Exception) -> None:
    generator = ScriptedGenerator({BATCH[0]: [error]})
    sleep = SleepRecorder()

    with pytest.raises(type(error)):
        asyncio.run(_naturalizer(generator, sleep).resolve(BATCH))

    assert len(generator.prompts) == 1
    assert sleep.delays == []


def test_negative_retries_rejected() -> None:
    with pytest.raises(ValueError, match="max_retries"):
        Naturalizer(ScriptedGenerator(), max_retries=-1)
