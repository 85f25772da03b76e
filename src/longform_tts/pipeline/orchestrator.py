"""Generation orchestrator: drives segments through synthesis in order.

One generation at a time per orchestrator.  Each generation captures
the current *epoch*; ``cancel()`` and every new ``begin()`` bump it, and
a run whose captured epoch no longer matches stops at its next check
and discards whatever it produced.  In-flight synthesis calls are never
aborted, their results are simply dropped.

Partial recordings are never published: either every segment succeeds
and the concatenated recording replaces the previous one, or nothing
is published at all.
"""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING, Callable

from longform_tts.adapters.tts.base import SpeechSynthesizer
from longform_tts.errors import GenerationFailed, ServiceError, ValidationError
from longform_tts.logging import get_logger
from longform_tts.metrics import GenerationMetrics
from longform_tts.pipeline.audio_buffer import SampleBuffer, concatenate
from longform_tts.pipeline.audio_codec import SERVICE_CHANNELS, SERVICE_SAMPLE_RATE, decode_pcm16
from longform_tts.pipeline.instructions import VoiceParams, build_instruction
from longform_tts.pipeline.text_segmenter import Segment, segment_text
from longform_tts.voices import resolve_voice

if TYPE_CHECKING:
    from longform_tts.config import Settings
    from longform_tts.playback import Player

logger = get_logger("orchestrator")

EMPTY_TEXT_MESSAGE = "Please enter some text to generate audio."
CANCELLED_MESSAGE = "Generation cancelled."
COMPLETED_MESSAGE = "Generation complete."


class GenerationState(Enum):
    IDLE = auto()
    RUNNING = auto()
    COMPLETED = auto()
    CANCELLED = auto()
    FAILED = auto()


@dataclass(frozen=True)
class GenerationStatus:
    """Snapshot published to the progress sink."""

    state: GenerationState
    message: str = ""
    epoch: int = 0
    error: str | None = None


@dataclass(frozen=True)
class GenerationPlan:
    """Everything a run needs, fixed at ``begin`` time."""

    epoch: int
    segments: tuple[Segment, ...]
    voice_id: str
    instruction: str | None
    voice_name: str


StatusSink = Callable[[GenerationStatus], None]


def validate_text(text: str, max_chars: int) -> None:
    """Reject empty, whitespace-only, or over-long input text."""
    if not text or not text.strip():
        raise ValidationError(EMPTY_TEXT_MESSAGE)
    if len(text) > max_chars:
        raise ValidationError(
            f"Text is too long ({len(text)} characters). The limit is {max_chars} characters."
        )


class GenerationOrchestrator:
    """Sequential, cancellable long-text generation.

    ``begin`` validates input and claims a new epoch synchronously so a
    caller can schedule ``run`` as a task and still observe the epoch
    change immediately.  ``start`` does both in one await.
    """

    def __init__(
        self,
        synthesizer: SpeechSynthesizer,
        *,
        chunk_max_chars: int = 2500,
        max_text_chars: int = 50000,
        max_description_chars: int = 7000,
        sample_rate: int = SERVICE_SAMPLE_RATE,
        channels: int = SERVICE_CHANNELS,
        player: Player | None = None,
        on_status: StatusSink | None = None,
        metrics_enabled: bool = True,
        metrics_history: int = 20,
        log_segments: bool = False,
        session_id: str = "",
    ) -> None:
        self._synthesizer = synthesizer
        self._chunk_max_chars = chunk_max_chars
        self._max_text_chars = max_text_chars
        self._max_description_chars = max_description_chars
        self._sample_rate = sample_rate
        self._channels = channels
        self._player = player
        self._on_status = on_status
        self._metrics_enabled = metrics_enabled
        self._log_segments = log_segments
        self._session_id = session_id

        self._epoch = 0
        self._status = GenerationStatus(GenerationState.IDLE)
        self._last_error: str | None = None
        self._recording: SampleBuffer | None = None
        self._recording_voice_name = ""
        # Most recent runs only, oldest dropped first
        self.history: deque[GenerationMetrics] = deque(maxlen=metrics_history)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        synthesizer: SpeechSynthesizer,
        **kwargs,
    ) -> GenerationOrchestrator:
        return cls(
            synthesizer,
            chunk_max_chars=settings.chunk_max_chars,
            max_text_chars=settings.max_text_chars,
            max_description_chars=settings.max_description_chars,
            sample_rate=settings.pcm_sample_rate,
            channels=settings.pcm_channels,
            metrics_enabled=settings.metrics_enabled,
            metrics_history=settings.metrics_history,
            log_segments=settings.log_segments,
            **kwargs,
        )

    # ── State ─────────────────────────────────────────────

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def state(self) -> GenerationState:
        return self._status.state

    @property
    def status(self) -> GenerationStatus:
        return self._status

    @property
    def last_error(self) -> str | None:
        return self._last_error

    @property
    def recording(self) -> SampleBuffer | None:
        return self._recording

    @property
    def recording_voice_name(self) -> str:
        return self._recording_voice_name

    def _publish(self, state: GenerationState, message: str = "", error: str | None = None) -> None:
        self._status = GenerationStatus(state, message, self._epoch, error)
        if self._on_status is not None:
            self._on_status(self._status)

    def _log_extra(self, epoch: int, **fields: object) -> dict[str, object]:
        return {"session_id": self._session_id, "epoch": epoch, **fields}

    # ── Lifecycle ─────────────────────────────────────────

    def begin(self, text: str, params: VoiceParams | None = None) -> GenerationPlan:
        """Validate input, claim a new epoch and prepare the segment plan.

        Raises:
            ValidationError: Empty, whitespace-only or over-long text, or
                an over-long description.  Nothing changes in that case.
        """
        params = params or VoiceParams()
        validate_text(text, self._max_text_chars)
        if len(params.description) > self._max_description_chars:
            raise ValidationError(
                f"Description is too long ({len(params.description)} characters). "
                f"The limit is {self._max_description_chars} characters."
            )

        if self.state is GenerationState.RUNNING:
            self.cancel()

        self._epoch += 1
        self._recording = None
        self._recording_voice_name = ""
        self._last_error = None
        if self._player is not None:
            self._player.reset()

        resolution = resolve_voice(params.voice)
        instruction = build_instruction(params, resolution.extra_clause)
        segments = tuple(segment_text(text, self._chunk_max_chars))

        plan = GenerationPlan(
            epoch=self._epoch,
            segments=segments,
            voice_id=resolution.service_voice_id,
            instruction=instruction,
            voice_name=params.voice.display_name,
        )
        self._publish(GenerationState.RUNNING, f"Preparing {len(segments)} part(s)...")
        logger.info(
            "Generation started: %d segment(s), voice %s",
            len(segments),
            plan.voice_id,
            extra=self._log_extra(
                plan.epoch,
                segment_count=len(segments),
                voice_id=plan.voice_id,
                event="generation_start",
            ),
        )
        return plan

    async def run(self, plan: GenerationPlan) -> SampleBuffer | None:
        """Synthesize every segment of ``plan`` in order.

        Returns the published recording, or ``None`` if the plan went
        stale (cancelled or superseded) before it finished.

        Raises:
            GenerationFailed: A segment failed while the plan was current.
        """
        metrics = GenerationMetrics(
            epoch=plan.epoch, segment_count=len(plan.segments), session_id=self._session_id
        )
        metrics.start()
        outcome = "stale"
        buffers: list[SampleBuffer] = []
        total = len(plan.segments)

        try:
            for segment in plan.segments:
                if self._epoch != plan.epoch:
                    return None

                self._publish(GenerationState.RUNNING, f"Generating part {segment.index}/{total}...")
                if self._log_segments:
                    logger.debug(
                        "Segment text: %s",
                        segment.text,
                        extra=self._log_extra(plan.epoch, segment_index=segment.index),
                    )

                started = metrics.now()
                try:
                    raw = await self._synthesizer.synthesize(
                        segment.text, plan.voice_id, plan.instruction
                    )
                    if not raw:
                        raise ServiceError("No audio data returned from the model.")
                    buffers.append(decode_pcm16(raw, self._sample_rate, self._channels))
                except asyncio.CancelledError:
                    raise
                except Exception as exc:
                    if self._epoch != plan.epoch:
                        logger.debug(
                            "Dropping failure from stale generation: %s",
                            exc,
                            extra=self._log_extra(plan.epoch, segment_index=segment.index),
                        )
                        return None
                    outcome = "failed"
                    self._fail(plan, segment, exc)
                metrics.record_segment(started)

            if self._epoch != plan.epoch:
                return None

            recording = concatenate(buffers)
            self._recording = recording
            self._recording_voice_name = plan.voice_name
            self._publish(GenerationState.COMPLETED, COMPLETED_MESSAGE)
            outcome = "completed"
            logger.info(
                "Generation complete: %.2fs of audio",
                recording.duration_s,
                extra=self._log_extra(plan.epoch, segment_count=total, event="generation_complete"),
            )
            return recording
        except asyncio.CancelledError:
            outcome = "cancelled"
            if self._epoch == plan.epoch and self.state is GenerationState.RUNNING:
                self._publish(GenerationState.IDLE)
            raise
        finally:
            metrics.finish(outcome)
            if self._metrics_enabled:
                self.history.append(metrics)
                metrics.emit()

    def _fail(self, plan: GenerationPlan, segment: Segment, exc: Exception) -> None:
        error = GenerationFailed(segment.index, exc)
        self._last_error = error.user_message
        self._publish(GenerationState.FAILED, error.user_message, error=error.user_message)
        logger.error(
            "Segment %d/%d failed: %s",
            segment.index,
            len(plan.segments),
            exc,
            extra=self._log_extra(
                plan.epoch,
                segment_index=segment.index,
                segment_count=len(plan.segments),
                error_code=type(exc).__name__,
                event="generation_failed",
            ),
        )
        raise error from exc

    async def start(self, text: str, params: VoiceParams | None = None) -> SampleBuffer | None:
        """Begin and run a generation in one call."""
        plan = self.begin(text, params)
        return await self.run(plan)

    def cancel(self) -> None:
        """Invalidate the current generation; any in-flight result is dropped."""
        self._epoch += 1
        was_running = self.state is GenerationState.RUNNING
        if was_running:
            self._publish(GenerationState.CANCELLED, CANCELLED_MESSAGE)
            logger.info(
                "Generation cancelled",
                extra=self._log_extra(self._epoch, event="generation_cancel"),
            )
        self._last_error = None
        self._publish(GenerationState.IDLE)

    def discard_recording(self) -> None:
        self._recording = None
        self._recording_voice_name = ""
        if self.state is GenerationState.COMPLETED:
            self._publish(GenerationState.IDLE)

    def dismiss_error(self) -> None:
        self._last_error = None
        if self.state is GenerationState.FAILED:
            self._publish(GenerationState.IDLE)
