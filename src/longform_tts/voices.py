"""Voice catalog, voice variants, and resolution to service voice ids."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Union

from longform_tts.errors import ValidationError
from longform_tts.logging import get_logger

logger = get_logger("voices")

# Voice names the synthesis service actually accepts
SUPPORTED_VOICE_IDS = frozenset({"Puck", "Charon", "Kore", "Fenrir", "Aoede", "Zephyr"})
FALLBACK_VOICE_ID = "Puck"
DEFAULT_VOICE_ID = "Kore"
DEFAULT_CLONED_STYLE = "Custom Cloned Style"


@dataclass(frozen=True)
class VoiceOption:
    """Catalog entry shown to the user."""

    id: str
    name: str
    gender: str
    style: str


VOICE_OPTIONS: tuple[VoiceOption, ...] = (
    VoiceOption("Puck", "Puck", "Male", "Soft, Narrative"),
    VoiceOption("Charon", "Charon", "Male", "Deep, Authoritative"),
    VoiceOption("Kore", "Kore", "Female", "Calm, Soothing"),
    VoiceOption("Fenrir", "Fenrir", "Male", "Energetic, Strong"),
    VoiceOption("Aoede", "Aoede", "Female", "Expressive, Bright"),
    VoiceOption("Enceladus", "Enceladus", "Male", "Resonant, Heroic"),
    VoiceOption("Zephyr", "Zephyr", "Female", "Gentle, Airy"),
    VoiceOption("Titan", "Titan", "Male", "Heavy, Powerful"),
    VoiceOption("Miranda", "Miranda", "Female", "Young, Cheerful"),
    VoiceOption("Umbriel", "Umbriel", "Male", "Mysterious, Low"),
    VoiceOption("Ariel", "Ariel", "Female", "Light, Melodic"),
    VoiceOption("Oberon", "Oberon", "Male", "Regal, Commanding"),
    VoiceOption("Callisto", "Callisto", "Female", "Mature, Textured"),
    VoiceOption("Ganymede", "Ganymede", "Male", "Clear, Youthful"),
    VoiceOption("Europa", "Europa", "Female", "Elegant, Smooth"),
    VoiceOption("Io", "Io", "Female", "Intense, Sharp"),
    VoiceOption("Amalthea", "Amalthea", "Female", "Warm, Motherly"),
    VoiceOption("Himalia", "Himalia", "Female", "Distant, Ethereal"),
    VoiceOption("Elara", "Elara", "Female", "Soft, Whispering"),
    VoiceOption("Pasiphae", "Pasiphae", "Female", "Dark, Complex"),
    VoiceOption("Sinope", "Sinope", "Female", "Direct, Bold"),
    VoiceOption("Lysithea", "Lysithea", "Female", "Sweet, Light"),
    VoiceOption("Carme", "Carme", "Female", "Rich, Deep"),
    VoiceOption("Ananke", "Ananke", "Female", "Ancient, Slow"),
    VoiceOption("Leda", "Leda", "Female", "Playful, Bright"),
    VoiceOption("Thebe", "Thebe", "Female", "Fast, Energetic"),
    VoiceOption("Adrastea", "Adrastea", "Female", "Small, Delicate"),
    VoiceOption("Metis", "Metis", "Female", "Intellectual, Sharp"),
    VoiceOption("Mimas", "Mimas", "Male", "Small, Punchy"),
    VoiceOption("Tethys", "Tethys", "Female", "Flowing, Watery"),
    VoiceOption("Dione", "Dione", "Female", "Balanced, Neutral"),
    VoiceOption("Rhea", "Rhea", "Female", "Grand, Operatic"),
    VoiceOption("Hyperion", "Hyperion", "Male", "Bright, Radiant"),
    VoiceOption("Iapetus", "Iapetus", "Male", "Dual, Contrast"),
    VoiceOption("Phoebe", "Phoebe", "Female", "Quirky, Unique"),
)


@dataclass(frozen=True)
class StandardVoice:
    """A catalog voice, addressed by its id."""

    id: str
    name: str = ""
    style: str = ""

    @property
    def display_name(self) -> str:
        return self.name or self.id

    @classmethod
    def from_option(cls, option: VoiceOption) -> StandardVoice:
        return cls(id=option.id, name=option.name, style=option.style)


@dataclass(frozen=True)
class ClonedVoice:
    """A user-defined voice imitated through the instruction string."""

    display_name: str
    style_text: str = DEFAULT_CLONED_STYLE
    id: str = ""


Voice = Union[StandardVoice, ClonedVoice]


@dataclass(frozen=True)
class VoiceResolution:
    """What to send to the service for a given voice."""

    service_voice_id: str
    extra_clause: str | None = None


def resolve_voice(voice: Voice) -> VoiceResolution:
    """Map either voice variant to a service voice id plus an optional clause.

    Cloned voices and catalog voices the service does not support fall
    back to :data:`FALLBACK_VOICE_ID`; the intended voice is described
    in the extra instruction clause instead.
    """
    if isinstance(voice, ClonedVoice):
        return VoiceResolution(
            service_voice_id=FALLBACK_VOICE_ID,
            extra_clause=(
                f'Voice Identity: Imitate the style of "{voice.display_name}". '
                f"Description: {voice.style_text}."
            ),
        )

    if voice.id in SUPPORTED_VOICE_IDS:
        return VoiceResolution(service_voice_id=voice.id)

    clause = f"Voice Character: {voice.display_name}"
    if voice.style:
        clause += f" ({voice.style})"
    logger.debug(
        "Voice %s not supported by service, substituting %s",
        voice.id,
        FALLBACK_VOICE_ID,
        extra={"voice_id": voice.id, "event": "voice_fallback"},
    )
    return VoiceResolution(service_voice_id=FALLBACK_VOICE_ID, extra_clause=clause)


def find_option(voice_id: str) -> VoiceOption | None:
    for option in VOICE_OPTIONS:
        if option.id == voice_id:
            return option
    return None


class VoiceLibrary:
    """Catalog voices plus the user's cloned voices (newest first)."""

    def __init__(self, custom: list[ClonedVoice] | None = None) -> None:
        if custom is None:
            custom = [
                ClonedVoice(
                    display_name="R J Raihan",
                    style_text="Deep, energetic, radio-host style",
                    id="custom-rj-raihan",
                )
            ]
        self._custom: list[ClonedVoice] = list(custom)

    @property
    def custom_voices(self) -> list[ClonedVoice]:
        return list(self._custom)

    def add_custom(self, name: str, style: str = "") -> ClonedVoice:
        """Register a cloned voice; a name is required."""
        if not name.strip():
            raise ValidationError("Please give your voice a name.")
        voice = ClonedVoice(
            display_name=name.strip(),
            style_text=style.strip() or DEFAULT_CLONED_STYLE,
            id=f"custom-{int(time.time() * 1000)}",
        )
        # Millisecond ids can collide when voices are added back to back
        while any(v.id == voice.id for v in self._custom):
            voice = ClonedVoice(voice.display_name, voice.style_text, id=voice.id + "-1")
        self._custom.insert(0, voice)
        logger.info(
            "Custom voice added: %s",
            voice.display_name,
            extra={"voice_id": voice.id, "event": "custom_voice_added"},
        )
        return voice

    def get(self, voice_id: str) -> Voice | None:
        """Look a voice up by id across cloned and catalog voices."""
        for cloned in self._custom:
            if cloned.id == voice_id:
                return cloned
        option = find_option(voice_id)
        if option is not None:
            return StandardVoice.from_option(option)
        return None
