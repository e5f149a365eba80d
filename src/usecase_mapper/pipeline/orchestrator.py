"""End-to-end analysis: plan, map, reduce, deduplicate."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from usecase_mapper.errors import EmptyMapResultError, MissingCredentialError
from usecase_mapper.models import LLMJsonClient, OpenAIJsonClient
from usecase_mapper.pipeline.batching import DEFAULT_SNIPPET_CHARS, plan_batches, resolve_scope
from usecase_mapper.pipeline.dedupe import deduplicate_result
from usecase_mapper.pipeline.map_stage import ProgressCallback, run_map_stage
from usecase_mapper.pipeline.rate_limit import RateLimiter
from usecase_mapper.pipeline.reduce_stage import run_reduce_stage
from usecase_mapper.schemas import (
    AnalysisResult,
    AnalysisStatus,
    Conversation,
    EngineSettings,
    ScopeSelection,
)

logger = logging.getLogger(__name__)

StatusCallback = Callable[[AnalysisStatus], None]


def analyze_conversations(
    conversations: Sequence[Conversation],
    settings: EngineSettings,
    credential: str | None,
    on_progress: ProgressCallback | None = None,
    on_status: StatusCallback | None = None,
    *,
    scope: ScopeSelection | None = None,
    llm_client: LLMJsonClient | None = None,
    rate_limiter: RateLimiter | None = None,
    snippet_chars: int = DEFAULT_SNIPPET_CHARS,
) -> AnalysisResult:
    """Produce one deduplicated report for `conversations`.

    Batches run strictly in order. `on_status` receives "batching" before the
    first batch and "consolidating" before the reduce call. When `llm_client`
    is omitted an `OpenAIJsonClient` is built from `credential`.
    """

    if credential is None or not credential.strip():
        raise MissingCredentialError()

    selected = resolve_scope(conversations, scope or ScopeSelection())
    batches = plan_batches(selected, settings.batch_size)
    client = llm_client or OpenAIJsonClient(api_key=credential.strip())
    limiter = rate_limiter or RateLimiter(settings.rpm)
    logger.info(
        "Analyzing %d of %d conversations in %d batches with %s.",
        len(selected),
        len(conversations),
        len(batches),
        settings.model,
    )

    if on_status is not None:
        on_status("batching")
    partial_results = run_map_stage(
        batches,
        settings=settings,
        llm_client=client,
        rate_limiter=limiter,
        on_progress=on_progress,
        snippet_chars=snippet_chars,
    )
    if not partial_results:
        raise EmptyMapResultError()

    if on_status is not None:
        on_status("consolidating")
    result = run_reduce_stage(partial_results, settings=settings, llm_client=client)
    deduplicated = deduplicate_result(result)
    logger.info(
        "Analysis complete: %d/%d batches usable, %d use cases.",
        len(partial_results),
        len(batches),
        len(deduplicated.identified_use_cases),
    )
    return deduplicated
