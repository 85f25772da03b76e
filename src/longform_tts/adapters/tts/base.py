"""TTS adapter protocol: defines the interface all synthesis backends must implement."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class SpeechSynthesizer(Protocol):
    """Protocol for one-shot text-to-speech backends.

    Implementations synthesize one short text segment per call and
    return the whole payload as raw PCM16 little-endian bytes (mono,
    24kHz).  Calls cannot be aborted once issued.
    """

    async def synthesize(
        self,
        text: str,
        voice_id: str,
        instruction: str | None = None,
    ) -> bytes:
        """Synthesize a text segment and return raw PCM bytes.

        Args:
            text: Short segment to synthesize.
            voice_id: Service voice identifier.
            instruction: Optional delivery instruction; ``None`` means
                no preference.

        Raises:
            ServiceError: The call failed or returned no audio.
        """
        ...

    async def close(self) -> None:
        """Close the connection and release resources."""
        ...
