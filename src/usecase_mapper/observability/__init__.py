"""Observability helpers."""

from usecase_mapper.observability.tracing import (
    TracingStatus,
    get_tracing_status,
    load_tracing_env_from_dotenv,
    maybe_wrap_openai_client,
)

__all__ = [
    "TracingStatus",
    "get_tracing_status",
    "load_tracing_env_from_dotenv",
    "maybe_wrap_openai_client",
]
