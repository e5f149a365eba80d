"""Prompt builders for the use-case mapper."""

from usecase_mapper.prompts.analysis_prompts import (
    BATCH_ANALYSIS_SYSTEM_PROMPT,
    CONSOLIDATION_SYSTEM_PROMPT,
    build_batch_analysis_user_prompt,
    build_consolidation_user_prompt,
)

__all__ = [
    "BATCH_ANALYSIS_SYSTEM_PROMPT",
    "CONSOLIDATION_SYSTEM_PROMPT",
    "build_batch_analysis_user_prompt",
    "build_consolidation_user_prompt",
]
