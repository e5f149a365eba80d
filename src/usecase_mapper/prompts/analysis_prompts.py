"""Prompts for the batch (map) and consolidation (reduce) calls."""

from __future__ import annotations

import json

from usecase_mapper.schemas import BatchPayload, PartialResult

BATCH_ANALYSIS_SYSTEM_PROMPT = """You are a conversation analytics specialist.
You receive condensed records of customer conversations with a virtual agent.

Identify the specific USE CASES present, each described by:
- vertical: the business domain or industry
- audience: who the end user is
- task: what the user was trying to get done
- channel: where the interaction happened

Rules:
- Only report use cases found IN THIS BATCH.
- For each use case, `count` is how many conversations in this batch matched it.
- Give a one-sentence `description` per use case.
- Estimate the sentiment split of this batch as percentages (positive, neutral,
  negative) that sum to about 100.
- Do not include personally identifying information.
"""

CONSOLIDATION_SYSTEM_PROMPT = """You are a conversation analytics lead producing a final report.
You receive per-batch partial analyses of one conversation dataset.

Produce a FINAL, GLOBAL analysis for the whole dataset:
1. MERGE identical or overlapping use cases. If the task and channel are the same,
   they MUST be merged.
2. SUM the counts for merged use cases.
3. Write one unified executive summary.
4. Aggregate the top issues and suggest improvements.
5. Average the sentiment distribution across batches.

Describe recurring patterns with a frequency of High, Medium or Low.
"""


def build_batch_analysis_user_prompt(payloads: list[BatchPayload]) -> str:
    """Render one batch of condensed conversation records."""

    records = [
        payload.model_dump(mode="json", by_alias=True, exclude_none=True) for payload in payloads
    ]
    return (
        f"Analyze these {len(records)} conversation records and return the use cases "
        "and sentiment split for this batch.\n\n"
        f"Data: {json.dumps(records, ensure_ascii=True)}"
    )


def build_consolidation_user_prompt(partial_results: list[PartialResult]) -> str:
    """Render all partial results for the single consolidation call."""

    rows = [result.model_dump(mode="json", by_alias=True) for result in partial_results]
    return (
        f"I have analyzed a conversation report in {len(rows)} batches.\n"
        f"Here are the raw results: {json.dumps(rows, ensure_ascii=True)}"
    )
