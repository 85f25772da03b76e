"""Error taxonomy for the generation pipeline."""

from __future__ import annotations

GENERIC_FAILURE_MESSAGE = "Failed to generate speech."
TOKEN_LIMIT_MESSAGE = "Text is too complex for one segment. Try simpler text."


class LongformTTSError(Exception):
    """Base class for all errors raised by longform_tts."""


class ValidationError(LongformTTSError):
    """Input rejected before any generation work starts."""


class ServiceError(LongformTTSError):
    """The external synthesis call failed or returned no payload."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class MalformedAudioError(LongformTTSError):
    """A payload could not be decoded as 16-bit PCM."""


class GenerationFailed(LongformTTSError):
    """A segment failed; the whole generation was aborted.

    ``segment_index`` is the 1-based index of the failing segment and
    ``cause`` the underlying service or decode error.
    """

    def __init__(self, segment_index: int, cause: BaseException) -> None:
        self.segment_index = segment_index
        self.cause = cause
        self.user_message = user_message(cause)
        super().__init__(f"Failed to generate part {segment_index}: {cause}")


def user_message(exc: BaseException) -> str:
    """Map a failure to the message shown to the user."""
    detail = str(exc).strip()
    if "tokens" in detail:
        return TOKEN_LIMIT_MESSAGE
    if detail:
        return f"{GENERIC_FAILURE_MESSAGE} {detail}"
    return GENERIC_FAILURE_MESSAGE
