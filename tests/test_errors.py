"""Tests for the error hierarchy."""

import pytest

from usecase_mapper.errors import (
    BatchParseError,
    ConfigurationError,
    EmptyMapResultError,
    MissingCredentialError,
    RemoteAuthError,
    RemoteCallError,
    ResponseParseError,
    UseCaseMapperError,
    is_auth_failure_message,
)


@pytest.mark.parametrize(
    "message",
    [
        "Requested entity was not found.",
        "Error: API Key not valid. Please pass a valid API key.",
        "Incorrect API key provided: sk-***",
        "401 Unauthorized",
    ],
)
def test_auth_failure_messages_detected(message):
    assert is_auth_failure_message(message) is True


@pytest.mark.parametrize("message", ["", None, "rate limit exceeded", "Internal server error"])
def test_other_messages_not_auth_failures(message):
    assert is_auth_failure_message(message) is False


def test_hierarchy_shape():
    assert issubclass(MissingCredentialError, ConfigurationError)
    assert issubclass(ConfigurationError, ValueError)
    assert issubclass(RemoteAuthError, RemoteCallError)
    assert issubclass(BatchParseError, ResponseParseError)
    for error_cls in (MissingCredentialError, RemoteAuthError, EmptyMapResultError):
        assert issubclass(error_cls, UseCaseMapperError)


def test_default_messages():
    assert str(MissingCredentialError()) == "API Key is missing."
    assert str(EmptyMapResultError()) == "No analysis data was generated."
    error = BatchParseError(1, "bad shape")
    assert error.batch_index == 1
    assert "Batch 2" in str(error)
