"""Reduce stage: consolidate every partial result in one model call."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from pydantic import ValidationError

from usecase_mapper.errors import EmptyMapResultError, ReduceFailureError, ResponseParseError
from usecase_mapper.models import LLMJsonClient
from usecase_mapper.prompts import CONSOLIDATION_SYSTEM_PROMPT, build_consolidation_user_prompt
from usecase_mapper.schemas import AnalysisResult, EngineSettings, PartialResult

logger = logging.getLogger(__name__)


def run_reduce_stage(
    partial_results: Sequence[PartialResult],
    *,
    settings: EngineSettings,
    llm_client: LLMJsonClient,
) -> AnalysisResult:
    """Merge partial results into one report. Any unusable response is fatal."""

    if not partial_results:
        raise EmptyMapResultError()

    logger.debug("Consolidating %d partial results.", len(partial_results))
    try:
        payload = llm_client.complete_json(
            model=settings.model,
            system_prompt=CONSOLIDATION_SYSTEM_PROMPT,
            user_prompt=build_consolidation_user_prompt(list(partial_results)),
            schema_name="analysis_result",
            json_schema=AnalysisResult.model_json_schema(),
            strict_schema=True,
        )
    except ResponseParseError as exc:
        raise ReduceFailureError(
            f"Final analysis consolidation returned an empty response: {exc}"
        ) from exc

    if not payload:
        raise ReduceFailureError("Final analysis consolidation returned an empty response.")

    try:
        return AnalysisResult.model_validate(payload)
    except ValidationError as exc:
        raise ReduceFailureError(
            f"Final analysis consolidation failed validation: {exc}"
        ) from exc
