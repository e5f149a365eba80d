"""Remote model client abstractions."""

from usecase_mapper.models.openai_client import LLMJsonClient, OpenAIJsonClient

__all__ = [
    "LLMJsonClient",
    "OpenAIJsonClient",
]
