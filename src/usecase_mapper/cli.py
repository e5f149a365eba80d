"""CLI entrypoint for the use-case mapper."""

import argparse
import json
import logging
import os
import signal
import sys
import time
from datetime import UTC, datetime
from pathlib import Path

import httpx

from usecase_mapper import __version__
from usecase_mapper.config import Settings
from usecase_mapper.errors import (
    ConfigurationError,
    ConversationDatasetError,
    MissingCredentialError,
    RemoteAuthError,
    UseCaseMapperError,
)
from usecase_mapper.io import load_conversation_report, save_json, summarize_conversations
from usecase_mapper.models import OpenAIJsonClient
from usecase_mapper.observability import get_tracing_status
from usecase_mapper.pipeline import analyze_conversations, plan_batches, resolve_scope

EXIT_FAILURE = 1
EXIT_MISSING_CREDENTIAL = 2
EXIT_AUTH_FAILURE = 3


def _format_duration(seconds: float) -> str:
    if seconds < 0 or not (seconds < float("inf")):
        return "--:--"
    total = int(seconds)
    minutes, secs = divmod(total, 60)
    hours, minutes = divmod(minutes, 60)
    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


class _EtaProgressPrinter:
    """Print batch progress with elapsed time and ETA."""

    def __init__(self, label: str) -> None:
        self._label = label
        self._started_at = time.perf_counter()

    def __call__(self, current: int, total: int) -> None:
        capped_total = max(total, 1)
        done = max(0, min(current - 1, capped_total))
        elapsed = max(0.0, time.perf_counter() - self._started_at)

        eta = float("inf")
        if done > 0 and elapsed > 0:
            eta = (capped_total - done) / (done / elapsed)

        print(
            "    "
            f"{self._label}: batch {current}/{capped_total} "
            f"| elapsed {_format_duration(elapsed)} | ETA {_format_duration(eta)}"
        )


class _HaltOnInterrupt:
    """Turn the first Ctrl+C into a cooperative halt request.

    The batch in flight still finishes and the collected results are
    consolidated. A second Ctrl+C raises KeyboardInterrupt.
    """

    def __init__(self) -> None:
        self.halt_requested = False
        self._previous_handler = None

    def _handle(self, signum, frame) -> None:
        if self.halt_requested:
            raise KeyboardInterrupt
        self.halt_requested = True
        print("\n    Halt requested: finishing current batch, then consolidating.")

    def __enter__(self) -> "_HaltOnInterrupt":
        self._previous_handler = signal.signal(signal.SIGINT, self._handle)
        return self

    def __exit__(self, *exc_info) -> None:
        signal.signal(signal.SIGINT, self._previous_handler)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="usecase-mapper",
        description="Map-reduce use-case and sentiment analysis over conversation reports",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--config",
        type=str,
        default="configs/default.yaml",
        help="Path to YAML config file (default: configs/default.yaml)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: WARNING)",
    )

    sub = parser.add_subparsers(dest="command")

    sub.add_parser("info", help="Show current configuration")
    doctor_parser = sub.add_parser(
        "doctor",
        help="Run environment and filesystem diagnostics before first run.",
    )
    doctor_parser.add_argument(
        "--network-check",
        action="store_true",
        help="Perform a lightweight endpoint reachability check.",
    )

    summarize_parser = sub.add_parser(
        "summarize",
        help="Print dataset statistics for a conversation report.",
    )
    summarize_parser.add_argument(
        "--input",
        type=str,
        default=None,
        help="Path to a report JSON/JSONL. Defaults to configured input_report_path.",
    )
    summarize_parser.add_argument("--json", action="store_true", help="Print JSON output.")

    analyze_parser = sub.add_parser(
        "analyze",
        help="Run the batched analysis and write the consolidated report.",
    )
    analyze_parser.add_argument(
        "--input",
        type=str,
        default=None,
        help="Path to a report JSON/JSONL. Defaults to configured input_report_path.",
    )
    analyze_parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Where to write the analysis JSON. Defaults to <output_dir>/analysis_<utc>.json.",
    )
    analyze_parser.add_argument(
        "--scope",
        choices=["all", "count", "percent"],
        default=None,
        help="Which prefix of the report to analyze.",
    )
    analyze_parser.add_argument(
        "--scope-value",
        type=float,
        default=None,
        help="Record count or percentage for --scope count|percent.",
    )
    analyze_parser.add_argument("--batch-size", type=int, default=None)
    analyze_parser.add_argument("--rpm", type=float, default=None)
    analyze_parser.add_argument("--model", type=str, default=None)
    analyze_parser.add_argument(
        "--api-key",
        type=str,
        default=None,
        help="Credential override; takes precedence over OPENAI_API_KEY.",
    )
    analyze_parser.add_argument(
        "--json",
        action="store_true",
        help="Also print the analysis JSON to stdout.",
    )

    return parser


def cmd_info(settings: Settings) -> None:
    tracing = get_tracing_status()

    print(f"usecase-mapper v{__version__}")
    print(f"  Model:            {settings.openai_model}")
    print(f"  Base URL:         {settings.resolved_base_url() or '(default OpenAI)'}")
    print(f"  Key source:       {settings.resolved_key_source()}")
    print(f"  Temperature:      {settings.openai_temperature}")
    print(f"  Client attempts:  {settings.client_max_retries}")
    print(f"  Batch size:       {settings.batch_size}")
    print(f"  Requests/minute:  {settings.rpm}")
    print(f"  Snippet chars:    {settings.snippet_chars}")
    print(f"  Scope:            {settings.scope_mode} ({settings.scope_value})")
    print(f"  Tracing:          {tracing.enabled}")
    print(f"  Tracing project:  {tracing.project or '(not set)'}")
    print(f"  Input file:       {settings.input_report_path}")
    print(f"  Output dir:       {settings.output_dir}")


def _resolve_input_path(settings: Settings, args: argparse.Namespace) -> Path:
    """Resolve effective report path for this invocation."""

    if args.input:
        return Path(args.input).expanduser()
    return settings.input_report_path


def _print_json(payload: dict | list[dict]) -> None:
    """Pretty-print JSON payload."""

    print(json.dumps(payload, indent=2, ensure_ascii=True))


def _check_write_access(directory: Path) -> tuple[bool, str]:
    """Verify write permission for one directory via temp file probe."""

    try:
        directory.mkdir(parents=True, exist_ok=True)
        probe = directory / f".doctor_write_probe_{os.getpid()}"
        probe.write_text("ok", encoding="utf-8")
        probe.unlink()
    except OSError as exc:
        return False, str(exc)
    return True, "writable"


def _probe_endpoint(url: str, *, timeout_seconds: float = 5.0) -> tuple[bool, str]:
    """Best-effort network reachability probe for one URL."""

    try:
        response = httpx.get(url, timeout=timeout_seconds, follow_redirects=True)
    except httpx.HTTPError as exc:
        return False, str(exc)
    return True, f"http_status={response.status_code}"


def cmd_doctor(settings: Settings, args: argparse.Namespace) -> None:
    """Run readiness diagnostics for the local environment."""

    checks: list[dict[str, str]] = []

    input_path = settings.input_report_path
    checks.append(
        {
            "name": "input_report_exists",
            "status": "pass" if input_path.exists() else "warn",
            "detail": str(input_path),
        }
    )

    write_ok, write_detail = _check_write_access(settings.output_dir)
    checks.append(
        {
            "name": "output_dir_writable",
            "status": "pass" if write_ok else "fail",
            "detail": f"{settings.output_dir} ({write_detail})",
        }
    )

    checks.append(
        {
            "name": "api_key_present",
            "status": "pass" if settings.resolved_api_key() else "fail",
            "detail": settings.resolved_key_source(),
        }
    )

    try:
        engine = settings.engine_settings()
    except ConfigurationError as exc:
        checks.append({"name": "engine_settings_valid", "status": "fail", "detail": str(exc)})
    else:
        checks.append(
            {
                "name": "engine_settings_valid",
                "status": "pass",
                "detail": f"model={engine.model} batch_size={engine.batch_size} rpm={engine.rpm}",
            }
        )

    tracing = get_tracing_status()
    checks.append(
        {
            "name": "tracing_config",
            "status": "pass" if (not tracing.enabled or tracing.api_key_present) else "warn",
            "detail": (
                "enabled+key_set"
                if tracing.active
                else ("enabled_no_key" if tracing.enabled else "disabled")
            ),
        }
    )

    if args.network_check:
        probe_url = settings.resolved_base_url() or "https://api.openai.com/v1/models"
        probe_ok, probe_detail = _probe_endpoint(probe_url)
        checks.append(
            {
                "name": "endpoint_reachable",
                "status": "pass" if probe_ok else "warn",
                "detail": f"{probe_url} ({probe_detail})",
            }
        )

    print("usecase-mapper doctor")
    for item in checks:
        print(f"  - {item['name']}: {item['status']} ({item['detail']})")

    fail_count = sum(1 for item in checks if item["status"] == "fail")
    warn_count = sum(1 for item in checks if item["status"] == "warn")
    print("")
    print(f"Doctor result: {fail_count} fail, {warn_count} warn")
    if fail_count > 0:
        sys.exit(EXIT_FAILURE)


def cmd_summarize(settings: Settings, args: argparse.Namespace) -> None:
    """Print dataset statistics for one report."""

    try:
        report = load_conversation_report(_resolve_input_path(settings, args))
    except ConversationDatasetError as exc:
        print(f"Could not load report: {exc}")
        sys.exit(EXIT_FAILURE)

    summary = summarize_conversations(report.conversations)
    if args.json:
        _print_json(summary.to_dict())
        return

    satisfaction = (
        f"{summary.avg_satisfaction_score:.2f}"
        if summary.avg_satisfaction_score is not None
        else "N/A"
    )
    time_range = (
        f"{summary.earliest.date().isoformat()} - {summary.latest.date().isoformat()}"
        if summary.earliest and summary.latest
        else "N/A"
    )
    print(f"Report: {report.source_path}")
    print(f"  Conversations:     {summary.conversation_count}")
    print(f"  Total messages:    {summary.message_count}")
    print(f"  Avg messages:      {summary.avg_message_count}")
    print(f"  Avg satisfaction:  {satisfaction}")
    print(f"  Time range:        {time_range}")


def _default_output_path(settings: Settings) -> Path:
    stamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%SZ")
    return settings.output_dir / f"analysis_{stamp}.json"


def cmd_analyze(settings: Settings, args: argparse.Namespace) -> None:
    """Load a report, run the analysis, and write the result."""

    credential = settings.resolved_api_key(args.api_key)
    try:
        engine = settings.engine_settings(
            model=args.model,
            batch_size=args.batch_size,
            rpm=args.rpm,
        )
        scope = settings.scope_selection(args.scope, args.scope_value)
        report = load_conversation_report(_resolve_input_path(settings, args))
    except UseCaseMapperError as exc:
        print(f"Analysis not started: {exc}")
        sys.exit(EXIT_FAILURE)

    selected = resolve_scope(report.conversations, scope)
    batch_count = len(plan_batches(selected, engine.batch_size))
    print(
        f"Analyzing {len(selected)}/{len(report.conversations)} conversations "
        f"in {batch_count} batches ({engine.model}, {engine.rpm:g} rpm)."
    )

    printer = _EtaProgressPrinter("map")
    try:
        with _HaltOnInterrupt() as halt:

            def _on_progress(current: int, total: int) -> bool:
                printer(current, total)
                return not halt.halt_requested

            def _on_status(status: str) -> None:
                print(f"  [{status}]")

            llm_client = None
            if credential:
                llm_client = OpenAIJsonClient(
                    api_key=credential,
                    base_url=settings.resolved_base_url() or None,
                    temperature=settings.openai_temperature,
                    max_retries=settings.client_max_retries,
                    backoff_seconds=settings.client_backoff_seconds,
                )
            result = analyze_conversations(
                report.conversations,
                engine,
                credential,
                _on_progress,
                _on_status,
                scope=scope,
                llm_client=llm_client,
                snippet_chars=settings.snippet_chars,
            )
    except MissingCredentialError as exc:
        print(f"{exc} Set OPENAI_API_KEY or pass --api-key.")
        sys.exit(EXIT_MISSING_CREDENTIAL)
    except RemoteAuthError as exc:
        print(f"API Key Error: the remote model rejected the credential ({exc}).")
        print("Re-enter a valid key with --api-key or OPENAI_API_KEY.")
        sys.exit(EXIT_AUTH_FAILURE)
    except UseCaseMapperError as exc:
        print(f"Analysis failed: {exc}")
        sys.exit(EXIT_FAILURE)

    output_path = Path(args.output) if args.output else _default_output_path(settings)
    save_json(output_path, result)
    print(f"  Use cases:  {len(result.identified_use_cases)}")
    print(f"  Patterns:   {len(result.common_patterns)}")
    print(f"  Report:     {output_path}")
    if args.json:
        _print_json(result.model_dump(mode="json", by_alias=True))


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    settings = Settings.from_yaml(args.config)

    if args.command == "info":
        cmd_info(settings)
    elif args.command == "doctor":
        cmd_doctor(settings, args)
    elif args.command == "summarize":
        cmd_summarize(settings, args)
    elif args.command == "analyze":
        cmd_analyze(settings, args)
    else:
        parser.print_help()
        sys.exit(0)


if __name__ == "__main__":
    main()
