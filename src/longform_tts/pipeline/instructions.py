"""Instruction-string construction for the synthesis call.

Clauses are emitted in a fixed order and joined by ``". "``:
baseline style, emotional tone, speaking pace, free-form description,
then any voice clause from voice resolution.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from longform_tts.errors import ValidationError
from longform_tts.voices import DEFAULT_VOICE_ID, StandardVoice, Voice, find_option

BASELINE_STYLE = (
    "Style: Ultra-realistic, human-like, natural conversational tone with breathiness, "
    "natural pauses, and varying intonation. Do not sound robotic."
)

EMOTIONS: tuple[str, ...] = ("Happy", "Sad", "Angry", "Fearful", "Excited", "Crying")

NORMAL_SPEED = 50
CLAUSE_SEPARATOR = ". "


def _default_voice() -> StandardVoice:
    option = find_option(DEFAULT_VOICE_ID)
    if option is None:
        raise LookupError(f"Default voice {DEFAULT_VOICE_ID!r} is missing from the catalog")
    return StandardVoice.from_option(option)


@dataclass(frozen=True)
class VoiceParams:
    """Voice selection plus delivery controls for one generation."""

    voice: Voice = field(default_factory=_default_voice)
    emotions: Mapping[str, int] = field(default_factory=dict)
    speed: int = NORMAL_SPEED
    description: str = ""

    def __post_init__(self) -> None:
        unknown = set(self.emotions) - set(EMOTIONS)
        if unknown:
            raise ValidationError(f"Unknown emotion(s): {', '.join(sorted(unknown))}")
        for name, value in self.emotions.items():
            if not 0 <= value <= 100:
                raise ValidationError(f"Emotion {name} must be between 0 and 100, got {value}")
        if not 0 <= self.speed <= 100:
            raise ValidationError(f"Speed must be between 0 and 100, got {self.speed}")


def emotion_clause(emotions: Mapping[str, int]) -> str | None:
    active = [f"{name}: {emotions[name]}%" for name in EMOTIONS if emotions.get(name, 0) > 0]
    if not active:
        return None
    return f"Emotional Tone: [{', '.join(active)}]"


def speed_clause(speed: int) -> str | None:
    """Threshold a 0–100 speed value; the 48–52 band is normal pace."""
    if speed < 40:
        return "Speaking Pace: Very Slow"
    if speed < 48:
        return "Speaking Pace: Slow"
    if speed > 60:
        return "Speaking Pace: Very Fast"
    if speed > 52:
        return "Speaking Pace: Fast"
    return None


def build_instruction(
    params: VoiceParams,
    extra_clause: str | None = None,
    baseline: str | None = BASELINE_STYLE,
) -> str | None:
    """Compose the instruction string, or ``None`` when no clause applies.

    The service treats "no instruction" and an empty instruction
    differently; an empty set is never returned as ``""``.
    """
    clauses = [
        baseline,
        emotion_clause(params.emotions),
        speed_clause(params.speed),
        params.description,
        extra_clause,
    ]
    parts = [c.strip() for c in clauses if c and c.strip()]
    if not parts:
        return None
    return CLAUSE_SEPARATOR.join(parts)
