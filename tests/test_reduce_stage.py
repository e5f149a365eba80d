"""Tests for the consolidation (reduce) stage."""

from __future__ import annotations

import json

import pytest

from usecase_mapper.errors import EmptyMapResultError, ReduceFailureError, ResponseParseError
from usecase_mapper.pipeline import run_reduce_stage
from usecase_mapper.schemas import EngineSettings, PartialResult

_SETTINGS = EngineSettings(model="test-model", batch_size=10, rpm=15)

_FINAL_PAYLOAD = {
    "summary": "Customers mostly check balances over chat.",
    "identifiedUseCases": [
        {
            "vertical": "Telecom",
            "audience": "Customers",
            "task": "Check balance",
            "channel": "Chat",
            "description": "Balance lookup",
            "count": 5,
        }
    ],
    "commonPatterns": [
        {"title": "Repeat contacts", "description": "Users retry", "frequency": "Medium"}
    ],
    "topIssues": ["Slow authentication"],
    "sentimentDistribution": {"positive": 55, "neutral": 30, "negative": 15},
    "keyTakeaways": ["Chat dominates"],
    "suggestedImprovements": ["Shorten authentication"],
}


class _FakeJsonClient:
    def __init__(self, response):
        self.response = response
        self.calls: list[dict] = []

    def complete_json(self, **kwargs) -> dict:
        self.calls.append(kwargs)
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


def _partials(count: int) -> list[PartialResult]:
    return [
        PartialResult.model_validate(
            {
                "useCases": [
                    {
                        "vertical": "Telecom",
                        "audience": "Customers",
                        "task": "Check balance",
                        "channel": "Chat",
                        "description": f"batch {index}",
                        "count": index + 1,
                    }
                ],
                "sentiment": {"positive": 50, "neutral": 30, "negative": 20},
            }
        )
        for index in range(count)
    ]


class TestRunReduceStage:
    def test_sends_all_partials_in_one_call(self):
        client = _FakeJsonClient(_FINAL_PAYLOAD)
        result = run_reduce_stage(_partials(3), settings=_SETTINGS, llm_client=client)

        assert len(client.calls) == 1
        call = client.calls[0]
        assert call["model"] == "test-model"
        assert call["schema_name"] == "analysis_result"
        assert set(call["json_schema"]["required"]) == {
            "summary",
            "identifiedUseCases",
            "commonPatterns",
            "topIssues",
            "sentimentDistribution",
            "keyTakeaways",
            "suggestedImprovements",
        }
        assert "in 3 batches" in call["user_prompt"]
        rows = json.loads(call["user_prompt"].split("raw results: ", 1)[1])
        assert [row["useCases"][0]["description"] for row in rows] == [
            "batch 0",
            "batch 1",
            "batch 2",
        ]
        assert result.identified_use_cases[0].count == 5
        assert result.sentiment_distribution.positive == 55

    def test_empty_response_is_fatal(self):
        client = _FakeJsonClient(ResponseParseError("Model returned empty content."))
        with pytest.raises(ReduceFailureError, match="empty response"):
            run_reduce_stage(_partials(1), settings=_SETTINGS, llm_client=client)

    def test_empty_object_is_fatal(self):
        client = _FakeJsonClient({})
        with pytest.raises(ReduceFailureError, match="empty response"):
            run_reduce_stage(_partials(1), settings=_SETTINGS, llm_client=client)

    def test_missing_required_field_is_fatal(self):
        payload = {key: value for key, value in _FINAL_PAYLOAD.items() if key != "topIssues"}
        client = _FakeJsonClient(payload)
        with pytest.raises(ReduceFailureError, match="failed validation"):
            run_reduce_stage(_partials(1), settings=_SETTINGS, llm_client=client)

    def test_requires_partial_results(self):
        client = _FakeJsonClient(_FINAL_PAYLOAD)
        with pytest.raises(EmptyMapResultError):
            run_reduce_stage([], settings=_SETTINGS, llm_client=client)
        assert client.calls == []
