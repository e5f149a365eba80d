"""Analysis pipeline stages."""

from usecase_mapper.pipeline.batching import (
    build_batch_payload,
    build_batch_payloads,
    plan_batches,
    resolve_scope,
    resolve_scope_length,
)
from usecase_mapper.pipeline.dedupe import deduplicate_result, deduplicate_use_cases, use_case_key
from usecase_mapper.pipeline.map_stage import analyze_batch, run_map_stage
from usecase_mapper.pipeline.orchestrator import analyze_conversations
from usecase_mapper.pipeline.rate_limit import RateLimiter
from usecase_mapper.pipeline.reduce_stage import run_reduce_stage

__all__ = [
    "RateLimiter",
    "analyze_batch",
    "analyze_conversations",
    "build_batch_payload",
    "build_batch_payloads",
    "deduplicate_result",
    "deduplicate_use_cases",
    "plan_batches",
    "resolve_scope",
    "resolve_scope_length",
    "run_map_stage",
    "run_reduce_stage",
    "use_case_key",
]
