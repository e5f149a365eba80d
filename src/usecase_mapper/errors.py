"""Error hierarchy for the use-case mapper.

All project exceptions inherit from UseCaseMapperError so the CLI can catch
one type at its boundary while library callers keep fine-grained handling:

    UseCaseMapperError
    ├── ConfigurationError
    │   └── MissingCredentialError
    ├── RemoteCallError
    │   └── RemoteAuthError
    ├── ResponseParseError
    │   └── BatchParseError
    ├── EmptyMapResultError
    ├── ReduceFailureError
    └── ConversationDatasetError
"""

from __future__ import annotations

_AUTH_FAILURE_MARKERS = (
    "requested entity was not found",
    "entity not found",
    "api key",
    "api_key",
    "invalid_api_key",
    "incorrect api key",
    "unauthorized",
)


class UseCaseMapperError(Exception):
    """Base class for all use-case mapper errors."""


class ConfigurationError(UseCaseMapperError, ValueError):
    """Raised when settings or call preconditions are invalid."""


class MissingCredentialError(ConfigurationError):
    """Raised before any remote call when no API credential is available."""

    def __init__(self, message: str = "API Key is missing.") -> None:
        super().__init__(message)


class RemoteCallError(UseCaseMapperError):
    """Raised when the remote model call itself fails."""


class RemoteAuthError(RemoteCallError):
    """Raised when the remote model rejects the credential."""


class ResponseParseError(UseCaseMapperError, ValueError):
    """Raised when a model response is empty, not JSON, or off-schema."""


class BatchParseError(ResponseParseError):
    """Raised when one map batch returns an unusable payload."""

    def __init__(self, batch_index: int, reason: str) -> None:
        self.batch_index = batch_index
        self.reason = reason
        super().__init__(f"Batch {batch_index + 1} payload failed validation: {reason}")


class EmptyMapResultError(UseCaseMapperError):
    """Raised when the map stage produced zero partial results."""

    def __init__(self, message: str = "No analysis data was generated.") -> None:
        super().__init__(message)


class ReduceFailureError(UseCaseMapperError):
    """Raised when the consolidation call returns an empty or unparsable response."""


class ConversationDatasetError(UseCaseMapperError, ValueError):
    """Raised when a conversation report fails schema or integrity checks."""


def is_auth_failure_message(message: str | None) -> bool:
    """Return whether an error message looks like a rejected credential."""

    lowered = (message or "").lower()
    return any(marker in lowered for marker in _AUTH_FAILURE_MARKERS)
