"""Run reporting adapters."""

from __future__ import annotations

from .reporter import LoggingReporter, SlackWebhookReporter, build_report_blocks

__all__ = ["LoggingReporter", "SlackWebhookReporter", "build_report_blocks"]
