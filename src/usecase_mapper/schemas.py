"""Core data schemas for the use-case mapper."""

from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, JsonValue, field_validator
from pydantic.alias_generators import to_camel

MessageRole = Literal["user", "agent", "system"]
ScopeMode = Literal["all", "count", "percent"]
PatternFrequency = Literal["High", "Medium", "Low"]
AnalysisStatus = Literal["batching", "consolidating"]


class _CamelModel(BaseModel):
    """Base for models exchanged as camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Message(_CamelModel):
    """A single message in a conversation."""

    model_config = ConfigDict(frozen=True)

    role: MessageRole
    text: str = ""
    timestamp: datetime | None = None


class Topic(_CamelModel):
    """A topic detected on a conversation by the source platform."""

    model_config = ConfigDict(frozen=True, extra="allow")

    topic_name: str
    explanation: str | None = None
    resolution_status: str | None = None


class MetricEntry(_CamelModel):
    """One free-form metric attached to a conversation."""

    model_config = ConfigDict(frozen=True)

    code: str
    value: JsonValue = None


class ConversationMetadata(_CamelModel):
    """Known metadata fields; anything else is kept as extra JSON values."""

    model_config = ConfigDict(frozen=True, extra="allow")

    user_id: str | None = None
    agent_id: str | None = None
    user_name: str | None = None
    duration: float | None = None
    tags: list[str] = Field(default_factory=list)
    sentiment: str | None = None
    domain: str | None = None
    domain_name: str | None = None
    channel: str | None = None
    initial_channel: str | None = None
    primary_intent: str | None = None
    intent_validation: JsonValue = None
    resolution_status: str | None = None
    satisfaction_score: float | None = None
    total_utterances: int | None = None
    topics: list[Topic] = Field(default_factory=list)
    metrics: list[MetricEntry] = Field(default_factory=list)

    def metric_value(self, code: str) -> JsonValue:
        """Return the value of the first metric with this code, if any."""

        for metric in self.metrics:
            if metric.code == code:
                return metric.value
        return None


class Conversation(_CamelModel):
    """A normalized conversation record. Read-only once constructed."""

    model_config = ConfigDict(frozen=True)

    id: str | int
    timestamp: datetime
    messages: list[Message] = Field(default_factory=list)
    metadata: ConversationMetadata = Field(default_factory=ConversationMetadata)

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


class EngineSettings(_CamelModel):
    """Remote engine configuration for one analysis run."""

    model_config = ConfigDict(frozen=True)

    model: str = Field(min_length=1)
    batch_size: int = Field(ge=1)
    rpm: float = Field(gt=0)


class ScopeSelection(BaseModel):
    """Which prefix of the conversation sequence to analyze."""

    model_config = ConfigDict(frozen=True)

    mode: ScopeMode = "all"
    value: float = Field(default=100, ge=0)


class BatchPayload(_CamelModel):
    """Reduced projection of a conversation sent to the model in a batch."""

    id: str | int
    domain: str | None = None
    intent: JsonValue = None
    topics: list[str] | None = None
    executed_goals: JsonValue = None
    channel: str | None = None
    resolution: str | None = None
    snippet: str | None = None


class UseCase(_CamelModel):
    """A (vertical, audience, task, channel) pattern with an occurrence count."""

    model_config = ConfigDict(extra="forbid")

    vertical: str
    audience: str
    task: str
    channel: str
    description: str
    count: int


class SentimentDistribution(_CamelModel):
    """Sentiment split in percentages, nominally summing to about 100."""

    model_config = ConfigDict(extra="forbid")

    positive: float
    neutral: float
    negative: float


class PartialResult(_CamelModel):
    """Per-batch model output collected by the map stage."""

    model_config = ConfigDict(extra="forbid")

    use_cases: list[UseCase]
    sentiment: SentimentDistribution


class Pattern(_CamelModel):
    """A recurring behavioral pattern across conversations."""

    model_config = ConfigDict(extra="forbid")

    title: str
    description: str
    frequency: PatternFrequency


class AnalysisResult(_CamelModel):
    """Consolidated analytics report returned to the caller."""

    model_config = ConfigDict(extra="forbid")

    summary: str
    identified_use_cases: list[UseCase]
    common_patterns: list[Pattern]
    top_issues: list[str]
    sentiment_distribution: SentimentDistribution
    key_takeaways: list[str]
    suggested_improvements: list[str]
