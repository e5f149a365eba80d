"""Scope resolution, batch planning and per-batch record projection."""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
from math import ceil

from usecase_mapper.errors import ConfigurationError
from usecase_mapper.schemas import BatchPayload, Conversation, ScopeSelection

DEFAULT_SNIPPET_CHARS = 100


def resolve_scope_length(total: int, scope: ScopeSelection) -> int:
    """Return the prefix length selected by `scope` for a sequence of `total` records."""

    if scope.mode == "all":
        return total
    if scope.mode == "count":
        return min(int(scope.value), total)
    return min(ceil(Decimal(str(scope.value)) / 100 * total), total)


def resolve_scope(
    conversations: Sequence[Conversation],
    scope: ScopeSelection,
) -> list[Conversation]:
    """Return the ordered prefix of `conversations` selected by `scope`."""

    return list(conversations[: resolve_scope_length(len(conversations), scope)])


def plan_batches(
    conversations: Sequence[Conversation],
    batch_size: int,
) -> list[list[Conversation]]:
    """Split conversations into contiguous batches; the last one may be smaller."""

    if batch_size < 1:
        raise ConfigurationError(f"batch_size must be >= 1, got {batch_size}.")
    return [
        list(conversations[start : start + batch_size])
        for start in range(0, len(conversations), batch_size)
    ]


def build_batch_payload(
    conversation: Conversation,
    *,
    snippet_chars: int = DEFAULT_SNIPPET_CHARS,
) -> BatchPayload:
    """Project a conversation down to the fields the model needs.

    Only a leading snippet of the first message is kept. Missing fields are
    left unset.
    """

    metadata = conversation.metadata
    intent = metadata.primary_intent or metadata.metric_value("TriggeredIntent")
    topic_names = [topic.topic_name for topic in metadata.topics]
    snippet = None
    if conversation.messages and conversation.messages[0].text:
        snippet = conversation.messages[0].text[:snippet_chars]

    return BatchPayload(
        id=conversation.id,
        domain=metadata.domain or metadata.domain_name,
        intent=intent,
        topics=topic_names or None,
        executed_goals=metadata.metric_value("executed_goals"),
        channel=metadata.initial_channel or metadata.channel,
        resolution=metadata.resolution_status,
        snippet=snippet,
    )


def build_batch_payloads(
    batch: Sequence[Conversation],
    *,
    snippet_chars: int = DEFAULT_SNIPPET_CHARS,
) -> list[BatchPayload]:
    """Project every conversation in a batch."""

    return [
        build_batch_payload(conversation, snippet_chars=snippet_chars) for conversation in batch
    ]
