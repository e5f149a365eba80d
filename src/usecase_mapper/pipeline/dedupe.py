"""Client-side merge of use cases the consolidation call left duplicated."""

from __future__ import annotations

import re
from collections.abc import Iterable

from usecase_mapper.schemas import AnalysisResult, UseCase

_WHITESPACE = re.compile(r"\s+")


def use_case_key(use_case: UseCase) -> str:
    """Return the identity key: lowercase `vertical|audience|task|channel` without whitespace."""

    raw = f"{use_case.vertical}|{use_case.audience}|{use_case.task}|{use_case.channel}"
    return _WHITESPACE.sub("", raw.lower())


def deduplicate_use_cases(use_cases: Iterable[UseCase]) -> list[UseCase]:
    """Merge use cases sharing a key, summing counts.

    The first occurrence supplies the descriptive fields and the output order.
    """

    merged: dict[str, UseCase] = {}
    for use_case in use_cases:
        key = use_case_key(use_case)
        existing = merged.get(key)
        if existing is None:
            merged[key] = use_case.model_copy()
        else:
            merged[key] = existing.model_copy(update={"count": existing.count + use_case.count})
    return list(merged.values())


def deduplicate_result(result: AnalysisResult) -> AnalysisResult:
    """Return a copy of `result` with its use cases deduplicated."""

    return result.model_copy(
        update={"identified_use_cases": deduplicate_use_cases(result.identified_use_cases)}
    )
