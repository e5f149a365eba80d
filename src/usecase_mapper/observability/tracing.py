"""Optional LangSmith tracing for remote model calls."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

_TRACING_ENV_KEYS = (
    "LANGSMITH_TRACING",
    "LANGSMITH_ENDPOINT",
    "LANGSMITH_API_KEY",
    "LANGSMITH_PROJECT",
)


@dataclass(frozen=True)
class TracingStatus:
    """Effective tracing configuration, without secrets."""

    enabled: bool
    endpoint: str
    project: str
    api_key_present: bool

    @property
    def active(self) -> bool:
        return self.enabled and self.api_key_present


def _read_dotenv(path: Path) -> dict[str, str]:
    if not path.exists():
        return {}

    values: dict[str, str] = {}
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, raw_value = line.split("=", 1)
        values[key.strip()] = raw_value.strip().strip('"').strip("'")
    return values


def load_tracing_env_from_dotenv(path: str | Path = ".env") -> None:
    """Copy LangSmith keys from a dotenv file into the process env when unset."""

    for key, value in _read_dotenv(Path(path)).items():
        if key in _TRACING_ENV_KEYS and not os.getenv(key):
            os.environ[key] = value


def get_tracing_status(path: str | Path = ".env") -> TracingStatus:
    """Return the effective tracing status after dotenv hydration."""

    load_tracing_env_from_dotenv(path)
    flag = (os.getenv("LANGSMITH_TRACING") or "").strip().lower()
    return TracingStatus(
        enabled=flag in {"1", "true", "yes", "on"},
        endpoint=os.getenv("LANGSMITH_ENDPOINT") or "",
        project=os.getenv("LANGSMITH_PROJECT") or "",
        api_key_present=bool(os.getenv("LANGSMITH_API_KEY")),
    )


def maybe_wrap_openai_client(client: Any, path: str | Path = ".env") -> tuple[Any, bool]:
    """Wrap an OpenAI client with the LangSmith tracer when tracing is active."""

    if not get_tracing_status(path).active:
        return client, False

    try:
        from langsmith.wrappers import wrap_openai
    except ImportError:
        logger.warning("LANGSMITH_TRACING is set but langsmith is not installed.")
        return client, False

    return wrap_openai(client), True
