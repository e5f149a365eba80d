"""Loaders for conversation reports."""

from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from usecase_mapper.errors import ConversationDatasetError
from usecase_mapper.schemas import Conversation


@dataclass(frozen=True)
class ConversationReport:
    """A loaded batch of conversations plus report-level metadata."""

    conversations: list[Conversation]
    report_id: str | None = None
    generated_at: str | None = None
    source_path: str | None = None


@dataclass(frozen=True)
class DatasetSummary:
    """Aggregate statistics for a set of conversations."""

    conversation_count: int
    message_count: int
    avg_message_count: int
    avg_satisfaction_score: float | None
    earliest: datetime | None
    latest: datetime | None

    def to_dict(self) -> dict:
        """Render summary as a JSON-serializable dictionary."""

        return {
            "conversation_count": self.conversation_count,
            "message_count": self.message_count,
            "avg_message_count": self.avg_message_count,
            "avg_satisfaction_score": self.avg_satisfaction_score,
            "earliest": self.earliest.isoformat() if self.earliest else None,
            "latest": self.latest.isoformat() if self.latest else None,
        }


def _read_records(file_path: Path) -> tuple[list[Any], dict[str, Any]]:
    """Return raw records and report-level fields from a JSON or JSONL file."""

    text = file_path.read_text(encoding="utf-8")
    if file_path.suffix.lower() == ".jsonl":
        records: list[Any] = []
        for line_number, line in enumerate(text.splitlines(), start=1):
            stripped = line.strip()
            if not stripped:
                continue
            try:
                records.append(json.loads(stripped))
            except json.JSONDecodeError as exc:
                raise ConversationDatasetError(
                    f"Invalid JSON on line {line_number} of {file_path}: {exc.msg}"
                ) from exc
        return records, {}

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConversationDatasetError(f"Invalid JSON in {file_path}: {exc.msg}") from exc

    if isinstance(payload, list):
        return payload, {}
    if isinstance(payload, dict) and isinstance(payload.get("conversations"), list):
        return payload["conversations"], payload
    raise ConversationDatasetError(
        f"Invalid format in {file_path}. "
        "Expected an array of conversations or a 'conversations' key."
    )


def parse_conversations(records: Sequence[Any], *, source: str = "input") -> list[Conversation]:
    """Validate raw records into conversations, enforcing unique ids."""

    conversations: list[Conversation] = []
    seen_ids: set[str] = set()
    for index, record in enumerate(records):
        if not isinstance(record, dict):
            raise ConversationDatasetError(
                f"Expected object for record {index} of {source}, got {type(record).__name__}."
            )
        try:
            conversation = Conversation.model_validate(record)
        except ValidationError as exc:
            raise ConversationDatasetError(
                f"Conversation schema validation failed for record {index} of {source}: {exc}"
            ) from exc

        key = str(conversation.id)
        if key in seen_ids:
            raise ConversationDatasetError(
                f"Duplicate conversation id '{key}' found at record {index} of {source}."
            )
        seen_ids.add(key)
        conversations.append(conversation)
    return conversations


def load_conversation_report(path: str | Path) -> ConversationReport:
    """Load a conversation report from JSON (array or `conversations` key) or JSONL."""

    file_path = Path(path)
    if not file_path.exists():
        raise ConversationDatasetError(f"Conversation file does not exist: {file_path}")

    records, report_fields = _read_records(file_path)
    conversations = parse_conversations(records, source=str(file_path))
    if not conversations:
        raise ConversationDatasetError(f"No conversations found in file: {file_path}")

    report_id = report_fields.get("reportId")
    generated_at = report_fields.get("generatedAt")
    return ConversationReport(
        conversations=conversations,
        report_id=str(report_id) if report_id is not None else None,
        generated_at=str(generated_at) if generated_at is not None else None,
        source_path=str(file_path),
    )


def summarize_conversations(conversations: Sequence[Conversation]) -> DatasetSummary:
    """Compute dataset statistics for a conversation list."""

    if not conversations:
        return DatasetSummary(
            conversation_count=0,
            message_count=0,
            avg_message_count=0,
            avg_satisfaction_score=None,
            earliest=None,
            latest=None,
        )

    message_count = sum(
        len(conv.messages) if conv.messages else (conv.metadata.total_utterances or 0)
        for conv in conversations
    )
    scores = [
        conv.metadata.satisfaction_score
        for conv in conversations
        if conv.metadata.satisfaction_score is not None
    ]
    timestamps = [conv.timestamp for conv in conversations]

    return DatasetSummary(
        conversation_count=len(conversations),
        message_count=message_count,
        avg_message_count=round(message_count / len(conversations)),
        avg_satisfaction_score=round(sum(scores) / len(scores), 2) if scores else None,
        earliest=min(timestamps),
        latest=max(timestamps),
    )
