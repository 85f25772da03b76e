"""Playback clock: pull-based position tracking for an assembled recording.

The core owns no timer loop; the presentation layer polls
:meth:`PlaybackClock.elapsed` and renders it with :func:`format_time`.
"""

from __future__ import annotations

import time
from typing import Callable, Protocol, runtime_checkable

from longform_tts.logging import get_logger

logger = get_logger("playback")


@runtime_checkable
class Player(Protocol):
    """Anything the orchestrator can halt and rewind when a new generation begins."""

    def stop(self) -> None: ...

    def reset(self) -> None: ...


def format_time(seconds: float) -> str:
    """Render a position as ``MM:SS``; negative and NaN values show as 00:00."""
    if not seconds or seconds != seconds or seconds < 0:
        return "00:00"
    whole = int(seconds)
    return f"{whole // 60:02d}:{whole % 60:02d}"


class PlaybackClock:
    """Tracks playback position of one recording.

    ``play`` restarts from zero, ``stop`` freezes the current position
    and ``reset`` forgets the recording entirely.
    The position is clamped to the recording duration and playback
    ends by itself once the duration has elapsed.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._duration_s = 0.0
        self._started_at: float | None = None
        self._frozen_at = 0.0

    @property
    def duration_s(self) -> float:
        return self._duration_s

    @property
    def is_playing(self) -> bool:
        if self._started_at is None:
            return False
        return self._clock() - self._started_at < self._duration_s

    def play(self, duration_s: float) -> None:
        if duration_s < 0:
            raise ValueError(f"duration_s must be >= 0, got {duration_s}")
        self._duration_s = duration_s
        self._frozen_at = 0.0
        self._started_at = self._clock()
        logger.debug("Playback started (%.2fs)", duration_s, extra={"event": "playback_start"})

    def stop(self) -> None:
        if self._started_at is None:
            return
        self._frozen_at = self.elapsed()
        self._started_at = None
        logger.debug("Playback stopped at %.2fs", self._frozen_at, extra={"event": "playback_stop"})

    def elapsed(self) -> float:
        """Current position in seconds, clamped to ``[0, duration]``."""
        if self._started_at is None:
            return self._frozen_at
        return min(max(self._clock() - self._started_at, 0.0), self._duration_s)

    def reset(self) -> None:
        """Stop and rewind to zero; the recording is being replaced."""
        self._started_at = None
        self._frozen_at = 0.0
        self._duration_s = 0.0
