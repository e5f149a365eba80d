"""Map stage: one schema-constrained model call per batch."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from pydantic import ValidationError

from usecase_mapper.errors import (
    BatchParseError,
    RemoteAuthError,
    RemoteCallError,
    ResponseParseError,
)
from usecase_mapper.models import LLMJsonClient
from usecase_mapper.pipeline.batching import DEFAULT_SNIPPET_CHARS, build_batch_payloads
from usecase_mapper.pipeline.rate_limit import RateLimiter
from usecase_mapper.prompts import BATCH_ANALYSIS_SYSTEM_PROMPT, build_batch_analysis_user_prompt
from usecase_mapper.schemas import Conversation, EngineSettings, PartialResult

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], bool | None]


def analyze_batch(
    batch: Sequence[Conversation],
    *,
    batch_index: int,
    settings: EngineSettings,
    llm_client: LLMJsonClient,
    snippet_chars: int = DEFAULT_SNIPPET_CHARS,
) -> PartialResult:
    """Analyze one batch; raise BatchParseError when the response is unusable."""

    payloads = build_batch_payloads(batch, snippet_chars=snippet_chars)
    try:
        payload = llm_client.complete_json(
            model=settings.model,
            system_prompt=BATCH_ANALYSIS_SYSTEM_PROMPT,
            user_prompt=build_batch_analysis_user_prompt(payloads),
            schema_name="batch_partial_result",
            json_schema=PartialResult.model_json_schema(),
            strict_schema=True,
        )
        return PartialResult.model_validate(payload)
    except (ResponseParseError, ValidationError) as exc:
        raise BatchParseError(batch_index, str(exc)) from exc


def run_map_stage(
    batches: Sequence[Sequence[Conversation]],
    *,
    settings: EngineSettings,
    llm_client: LLMJsonClient,
    rate_limiter: RateLimiter,
    on_progress: ProgressCallback | None = None,
    snippet_chars: int = DEFAULT_SNIPPET_CHARS,
) -> list[PartialResult]:
    """Analyze batches sequentially and return the partial results in batch order.

    `on_progress(current, total)` runs before each batch. Returning exactly
    False requests a halt: once at least one partial result exists, no further
    batch is started. A batch already signaled is always finished. Batches whose
    response cannot be parsed, or whose remote call fails for a reason other than
    a rejected credential, are logged and dropped.
    """

    total = len(batches)
    partial_results: list[PartialResult] = []
    halt_requested = False

    for index, batch in enumerate(batches):
        if on_progress is not None and on_progress(index + 1, total) is False:
            halt_requested = True
        if halt_requested and partial_results:
            logger.info("Halt requested; skipping batches %d-%d.", index + 1, total)
            break

        logger.debug("Analyzing batch %d/%d (%d conversations).", index + 1, total, len(batch))
        call_started_at = rate_limiter.now()
        try:
            partial_results.append(
                analyze_batch(
                    batch,
                    batch_index=index,
                    settings=settings,
                    llm_client=llm_client,
                    snippet_chars=snippet_chars,
                )
            )
        except BatchParseError as exc:
            logger.warning("Dropping batch %d/%d: %s", index + 1, total, exc.reason)
        except RemoteAuthError:
            raise
        except RemoteCallError as exc:
            logger.warning("Dropping batch %d/%d after remote failure: %s", index + 1, total, exc)

        if index == total - 1:
            break
        if halt_requested and partial_results:
            logger.info("Halt requested; skipping batches %d-%d.", index + 2, total)
            break
        rate_limiter.wait_after(call_started_at)

    return partial_results
