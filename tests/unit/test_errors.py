"""Tests for user-facing error mapping."""

from longform_tts.errors import (
    GENERIC_FAILURE_MESSAGE,
    TOKEN_LIMIT_MESSAGE,
    GenerationFailed,
    ServiceError,
    user_message,
)


class TestUserMessage:
    def test_token_limit(self):
        exc = ServiceError("Request exceeds the maximum number of tokens allowed")
        assert user_message(exc) == TOKEN_LIMIT_MESSAGE

    def test_generic_with_cause(self):
        assert user_message(ServiceError("quota exceeded")) == (
            "Failed to generate speech. quota exceeded"
        )

    def test_empty_cause(self):
        assert user_message(ServiceError("")) == GENERIC_FAILURE_MESSAGE


class TestGenerationFailed:
    def test_carries_index_and_cause(self):
        cause = ServiceError("boom", status=500)
        exc = GenerationFailed(3, cause)
        assert exc.segment_index == 3
        assert exc.cause is cause
        assert exc.user_message == "Failed to generate speech. boom"
        assert "part 3" in str(exc)
