"""Tests for CLI parsing and commands."""

import json
from pathlib import Path

import pytest

from usecase_mapper import cli
from usecase_mapper.cli import _EtaProgressPrinter, _HaltOnInterrupt, build_parser
from usecase_mapper.config import Settings
from usecase_mapper.errors import EmptyMapResultError, RemoteAuthError
from usecase_mapper.schemas import AnalysisResult

_RESULT = AnalysisResult.model_validate(
    {
        "summary": "ok",
        "identifiedUseCases": [
            {
                "vertical": "v",
                "audience": "a",
                "task": "t",
                "channel": "c",
                "description": "d",
                "count": 2,
            }
        ],
        "commonPatterns": [],
        "topIssues": [],
        "sentimentDistribution": {"positive": 1, "neutral": 1, "negative": 1},
        "keyTakeaways": [],
        "suggestedImprovements": [],
    }
)


def _write_report(tmp_path: Path, count: int = 3) -> Path:
    path = tmp_path / "report.json"
    records = [
        {
            "id": f"c{index}",
            "timestamp": "2025-01-01T00:00:00Z",
            "messages": [{"role": "user", "text": "hi"}],
            "metadata": {"satisfactionScore": 4},
        }
        for index in range(count)
    ]
    path.write_text(json.dumps({"conversations": records}), encoding="utf-8")
    return path


def _settings(tmp_path: Path, **kwargs) -> Settings:
    return Settings(
        _env_file=None,
        openai_api_key=kwargs.pop("openai_api_key", ""),
        output_dir=tmp_path / "out",
        **kwargs,
    )


def test_analyze_parser_accepts_engine_and_scope_flags():
    args = build_parser().parse_args(
        [
            "analyze",
            "--input",
            "data/report.json",
            "--scope",
            "percent",
            "--scope-value",
            "25",
            "--batch-size",
            "20",
            "--rpm",
            "30",
            "--model",
            "gpt-x",
            "--api-key",
            "sk-override",
        ]
    )
    assert args.command == "analyze"
    assert args.scope == "percent"
    assert args.scope_value == 25.0
    assert args.batch_size == 20
    assert args.rpm == 30.0
    assert args.model == "gpt-x"
    assert args.api_key == "sk-override"


def test_parser_rejects_unknown_scope():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["analyze", "--scope", "sample"])


def test_doctor_parser_accepts_network_check_flag():
    args = build_parser().parse_args(["--log-level", "DEBUG", "doctor", "--network-check"])
    assert args.command == "doctor"
    assert args.network_check is True
    assert args.log_level == "DEBUG"


def test_eta_progress_printer_prints_batches(capsys):
    printer = _EtaProgressPrinter("map")
    printer(1, 3)
    printer(2, 3)
    output = capsys.readouterr().out
    assert "map: batch 1/3" in output
    assert "map: batch 2/3" in output


def test_halt_on_interrupt_requests_halt_then_aborts():
    with _HaltOnInterrupt() as halt:
        halt._handle(2, None)
        assert halt.halt_requested is True
        with pytest.raises(KeyboardInterrupt):
            halt._handle(2, None)


def test_summarize_prints_json(tmp_path, capsys):
    path = _write_report(tmp_path)
    args = build_parser().parse_args(["summarize", "--input", str(path), "--json"])
    cli.cmd_summarize(_settings(tmp_path), args)

    payload = json.loads(capsys.readouterr().out)
    assert payload["conversation_count"] == 3
    assert payload["avg_satisfaction_score"] == 4.0


def test_analyze_without_credential_exits_with_code_2(tmp_path, monkeypatch):
    path = _write_report(tmp_path)
    args = build_parser().parse_args(["analyze", "--input", str(path)])
    with pytest.raises(SystemExit) as exc_info:
        cli.cmd_analyze(_settings(tmp_path), args)
    assert exc_info.value.code == cli.EXIT_MISSING_CREDENTIAL


def test_analyze_writes_result_and_passes_override(tmp_path, monkeypatch):
    path = _write_report(tmp_path, count=5)
    output = tmp_path / "result.json"
    captured: dict = {}

    def _fake_analyze(conversations, settings, credential, on_progress, on_status, **kwargs):
        captured.update(credential=credential, settings=settings, scope=kwargs["scope"])
        on_status("batching")
        assert on_progress(1, 1) is True
        on_status("consolidating")
        return _RESULT

    monkeypatch.setattr(cli, "analyze_conversations", _fake_analyze)
    args = build_parser().parse_args(
        [
            "analyze",
            "--input",
            str(path),
            "--output",
            str(output),
            "--api-key",
            "sk-override",
            "--batch-size",
            "2",
            "--scope",
            "count",
            "--scope-value",
            "4",
        ]
    )
    cli.cmd_analyze(_settings(tmp_path, openai_api_key="sk-ambient"), args)

    assert captured["credential"] == "sk-override"
    assert captured["settings"].batch_size == 2
    assert captured["scope"].mode == "count"
    saved = json.loads(output.read_text(encoding="utf-8"))
    assert saved["identifiedUseCases"][0]["count"] == 2


@pytest.mark.parametrize(
    ("error", "exit_code"),
    [
        (RemoteAuthError("Requested entity was not found."), cli.EXIT_AUTH_FAILURE),
        (EmptyMapResultError(), cli.EXIT_FAILURE),
    ],
)
def test_analyze_maps_errors_to_exit_codes(tmp_path, monkeypatch, error, exit_code):
    path = _write_report(tmp_path)

    def _failing_analyze(*args, **kwargs):
        raise error

    monkeypatch.setattr(cli, "analyze_conversations", _failing_analyze)
    args = build_parser().parse_args(["analyze", "--input", str(path)])
    with pytest.raises(SystemExit) as exc_info:
        cli.cmd_analyze(_settings(tmp_path, openai_api_key="sk-ambient"), args)
    assert exc_info.value.code == exit_code


def test_analyze_rejects_invalid_engine_settings(tmp_path):
    path = _write_report(tmp_path)
    args = build_parser().parse_args(["analyze", "--input", str(path), "--rpm", "0"])
    with pytest.raises(SystemExit) as exc_info:
        cli.cmd_analyze(_settings(tmp_path, openai_api_key="sk"), args)
    assert exc_info.value.code == cli.EXIT_FAILURE
