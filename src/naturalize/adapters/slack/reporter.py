"""Run reports for humans: Slack incoming webhooks or the log."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

import httpx

from naturalize.adapters.http_resilience import ResilientClient

if TYPE_CHECKING:
    from collections.abc import Callable

    from naturalize.config.http_resilience import ResilienceConfig
    from naturalize.config.slack import SlackConfig
    from naturalize.domain.model import RunStats

log = getLogger(__name__)

MAX_REPORTED_ERRORS = 3


def _field(label: str, value: object) -> dict[str, str]:
    return {"type": "mrkdwn", "text": f"*{label}:*\n{value}"}


def build_report_blocks(stats: RunStats) -> list[dict[str, object]]:
    """Render a Block Kit summary of ``stats``."""

    title = "Naturalization run stopped early" if stats.stopped_early else "Naturalization report"
    blocks: list[dict[str, object]] = [
        {"type": "header", "text": {"type": "plain_text", "text": title}},
        {
            "type": "section",
            "fields": [
                _field("Records Updated", stats.processed),
                _field("Names Resolved", stats.resolved),
                _field("From Cache", stats.cache_hits),
                _field("API Calls", stats.api_calls),
                _field("Processing Time", f"{stats.duration_seconds:.1f}s"),
                _field("Status", stats.state),
            ],
        },
    ]
    if stats.error is not None:
        blocks.append(
            {"type": "section", "text": {"type": "mrkdwn", "text": f"*Fatal:* {stats.error}"}}
        )
    if stats.errors:
        shown = "\n".join(stats.error_messages[:MAX_REPORTED_ERRORS])
        blocks.append(
            {
                "type": "section",
                "text": {"type": "mrkdwn", "text": f"*Errors ({stats.errors}):*\n{shown}"},
            }
        )
    if stats.pending_remaining:
        blocks.append(
            {
                "type": "section",
                "text": {
                    "type": "mrkdwn",
                    "text": f"*Still Pending:* {stats.pending_remaining} records",
                },
            }
        )
    return blocks


class LoggingReporter:
    """Default reporter when no webhook is configured."""

    async def report(self, stats: RunStats) -> None:
        log.info(f"Run report: {stats.summary()}")


class SlackWebhookReporter:
    """Post run summaries to a Slack incoming webhook.

    Delivery problems are logged and never raised: a report must not turn a
    finished run into a failed one.
    """

    def __init__(
        self,
        *,
        config: SlackConfig,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        if not config.webhook_url:
            raise ValueError("SlackWebhookReporter requires a webhook URL")
        self._config = config
        self._webhook_url = config.webhook_url
        self._client_factory = client_factory or ResilientClient

    async def report(self, stats: RunStats) -> None:
        payload = {"text": "Naturalization report", "blocks": build_report_blocks(stats)}
        async with self._client_factory(self._config.resilience) as client:
            try:
                response = await client.post_json(self._webhook_url, payload)
                response.raise_for_status()
            except httpx.HTTPError as exc:
                log.error(f"Failed to send Slack notification: {exc}")
                return
        log.info("Slack notification sent")
