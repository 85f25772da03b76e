"""Request / response schemas for the generation server."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from longform_tts.pipeline.instructions import EMOTIONS, NORMAL_SPEED


class VoiceOut(BaseModel):
    """A catalog or custom voice as listed to clients."""

    id: str
    name: str
    style: str
    gender: str | None = None
    custom: bool = False


class VoicesResponse(BaseModel):
    """GET /sessions/{id}/voices response body."""

    custom: list[VoiceOut]
    catalog: list[VoiceOut]


class CustomVoiceRequest(BaseModel):
    """POST /sessions/{id}/voices request body."""

    name: str = Field(default="", max_length=128, description="Display name of the cloned voice")
    style: str = Field(default="", max_length=500, description="Style description to imitate")


class GenerateRequest(BaseModel):
    """POST /sessions/{id}/generate request body."""

    text: str = Field(..., description="Text to synthesize; length is checked by the orchestrator")
    voice_id: str | None = Field(default=None, max_length=128, description="Defaults to the configured voice")
    speed: int = Field(default=NORMAL_SPEED, ge=0, le=100)
    description: str = Field(default="", description="Free-form delivery description")
    emotions: dict[str, int] = Field(default_factory=dict)

    @field_validator("emotions")
    @classmethod
    def _known_emotions(cls, v: dict[str, int]) -> dict[str, int]:
        """Reject emotion names outside the fixed set and out-of-range intensities."""
        for name, value in v.items():
            if name not in EMOTIONS:
                raise ValueError(f"Unknown emotion '{name}'. Expected one of: {', '.join(EMOTIONS)}")
            if not 0 <= value <= 100:
                raise ValueError(f"Emotion '{name}' must be between 0 and 100")
        return v


class GenerateResponse(BaseModel):
    """POST /sessions/{id}/generate response body."""

    epoch: int
    segment_count: int
    voice_id: str
    instruction: str | None


class StatusResponse(BaseModel):
    """Generation and playback state of one session."""

    state: str
    message: str
    epoch: int
    error: str | None = None
    has_recording: bool = False
    duration_s: float = 0.0
    is_playing: bool = False
    position: str = "00:00"
    duration: str = "00:00"
