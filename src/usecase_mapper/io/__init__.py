"""I/O utilities for reading reports and writing analysis results."""

from usecase_mapper.io.load import (
    ConversationReport,
    DatasetSummary,
    load_conversation_report,
    parse_conversations,
    summarize_conversations,
)
from usecase_mapper.io.save import ensure_directory, save_json

__all__ = [
    "ConversationReport",
    "DatasetSummary",
    "ensure_directory",
    "load_conversation_report",
    "parse_conversations",
    "save_json",
    "summarize_conversations",
]
