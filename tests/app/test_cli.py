from __future__ import annotations

import pytest

from naturalize.adapters.sqlalchemy import ProcessingStats
from naturalize.app import StatusReport
from naturalize.config import MissingConfigurationError
from naturalize.config.pipeline import DEFAULT_BATCH_SIZE, PipelineConfig
from naturalize.domain.errors import QuotaExhaustedError
from naturalize.domain.model import PipelineState, RunStats
from naturalize.ui import cli as cli_module


def _stats(state: PipelineState, processed: int = 0) -> RunStats:
    stats = RunStats(processed=processed)
    stats.transition(state)
    return stats


def test_run_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_run(**kwargs: object) -> RunStats:
        captured.update(kwargs)
        return _stats(PipelineState.COMPLETED, processed=4)

    monkeypatch.delenv("BATCH_SIZE", raising=False)
    monkeypatch.setattr(cli_module, "naturalize_pending_names", fake_run)

    cli_module.main(["run"])

    assert captured["limit"] is None
    assert captured["category"] is None
    config = captured["config"]
    assert isinstance(config, PipelineConfig)
    assert config.batch_size == DEFAULT_BATCH_SIZE


def test_run_with_flags(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_run(**kwargs: object) -> RunStats:
        captured.update(kwargs)
        return _stats(PipelineState.COMPLETED)

    monkeypatch.setattr(cli_module, "naturalize_pending_names", fake_run)

    cli_module.main(
        ["run", "--limit", "50", "--category", "florist", "--batch-size", "4", "--concurrency", "2"]
    )

    assert captured["limit"] == 50
    assert captured["category"] == "florist"
    config = captured["config"]
    assert isinstance(config, PipelineConfig)
    assert (config.batch_size, config.concurrency) == (4, 2)


def test_continuous_run(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    captured: dict[str, object] = {}

    def fake_drain(**kwargs: object) -> list[RunStats]:
        captured.update(kwargs)
        return [_stats(PipelineState.COMPLETED, 5), _stats(PipelineState.EMPTY)]

    monkeypatch.setattr(cli_module, "naturalize_until_drained", fake_drain)

    cli_module.main(["run", "--continuous", "--max-iterations", "3", "--limit", "5"])

    assert captured["max_iterations"] == 3
    assert captured["limit"] == 5
    assert "2 runs, 5 records updated" in capsys.readouterr().out


def test_failed_run_exits_with_one(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_run(**_: object) -> RunStats:
        stats = _stats(PipelineState.FAILED)
        stats.error = QuotaExhaustedError("credits gone")
        return stats

    monkeypatch.setattr(cli_module, "naturalize_pending_names", fake_run)

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["run"])

    assert excinfo.value.code == 1


def test_unexpected_error_exits_with_one(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_run(**_: object) -> RunStats:
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(cli_module, "naturalize_pending_names", fake_run)

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["run"])

    assert excinfo.value.code == 1


def test_missing_configuration_exits_with_two(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    def fake_run(**_: object) -> RunStats:
        raise MissingConfigurationError("Missing configuration for: OPENROUTER_API_KEY")

    monkeypatch.setattr(cli_module, "naturalize_pending_names", fake_run)

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["run"])

    assert excinfo.value.code == 2
    assert "OPENROUTER_API_KEY" in capsys.readouterr().err


@pytest.mark.parametrize(("name", "value"), [("BATCH_SIZE", "eight"), ("LOG_LEVEL", "chatty")])
def test_invalid_environment_exits_with_two(
    monkeypatch: pytest.MonkeyPatch, name: str, value: str
) -> None:
    monkeypatch.setenv(name, value)

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["run"])

    assert excinfo.value.code == 2


@pytest.mark.parametrize("argv", [["run", "--limit", "0"], ["run", "--batch-size", "x"], []])
def test_invalid_arguments_exit_with_two(argv: list[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(argv)

    assert excinfo.value.code == 2


def test_status_prints_progress(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    calls: list[str | None] = []

    def fake_status(*, category: str | None = None) -> StatusReport:
        calls.append(category)
        records = ProcessingStats(total=10, resolved=7, pending=3)
        return StatusReport(records=records, cached_names=6)

    monkeypatch.setattr(cli_module, "processing_status", fake_status)

    cli_module.main(["status", "--category", "florist"])

    out = capsys.readouterr().out
    assert calls == ["florist"]
    assert "Resolved:       7 (70%)" in out
    assert "Cached names:   6" in out


def test_maintenance_commands(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    resets: list[str | None] = []

    def fake_reset(*, category: str | None = None) -> int:
        resets.append(category)
        return 3

    monkeypatch.setattr(cli_module, "purge_identity_cache_entries", lambda: 2)
    monkeypatch.setattr(cli_module, "reset_resolved_names", fake_reset)

    cli_module.main(["purge-identity"])
    cli_module.main(["reset", "--category", "toys"])

    out = capsys.readouterr().out
    assert "Removed 2 identity cache entries" in out
    assert "Reset 3 records" in out
    assert resets == ["toys"]
