"""Sample buffers and the assembler that stitches them together."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from longform_tts.logging import get_logger

logger = get_logger("audio_buffer")

DEFAULT_SAMPLE_RATE = 24000


@dataclass(frozen=True, eq=False)
class SampleBuffer:
    """Decoded audio: per-channel float32 samples in [-1.0, 1.0].

    ``frames`` has shape ``(channel_count, frame_count)`` so every channel
    has the same number of frames by construction.
    """

    sample_rate: int
    frames: np.ndarray

    def __post_init__(self) -> None:
        if self.sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {self.sample_rate}")
        if self.frames.ndim != 2 or self.frames.shape[0] < 1:
            raise ValueError(
                f"frames must be shaped (channels, frames), got {self.frames.shape}"
            )

    @classmethod
    def empty(cls, sample_rate: int = DEFAULT_SAMPLE_RATE, channel_count: int = 1) -> SampleBuffer:
        return cls(sample_rate=sample_rate, frames=np.zeros((channel_count, 0), dtype=np.float32))

    @property
    def channel_count(self) -> int:
        return int(self.frames.shape[0])

    @property
    def frame_count(self) -> int:
        return int(self.frames.shape[1])

    @property
    def duration_s(self) -> float:
        return self.frame_count / self.sample_rate

    def channel(self, index: int) -> np.ndarray:
        return self.frames[index]


def concatenate(buffers: Sequence[SampleBuffer]) -> SampleBuffer:
    """Join buffers end to end, per channel, in input order.

    All buffers must share sample rate and channel count.  Synthesis
    output is produced under that contract, so a mismatch is a bug.
    """
    if not buffers:
        return SampleBuffer.empty()
    if len(buffers) == 1:
        return buffers[0]

    first = buffers[0]
    for buf in buffers[1:]:
        assert buf.sample_rate == first.sample_rate, (
            f"sample rate mismatch: {buf.sample_rate} != {first.sample_rate}"
        )
        assert buf.channel_count == first.channel_count, (
            f"channel count mismatch: {buf.channel_count} != {first.channel_count}"
        )

    total = sum(buf.frame_count for buf in buffers)
    out = np.empty((first.channel_count, total), dtype=np.float32)
    offset = 0
    for buf in buffers:
        out[:, offset : offset + buf.frame_count] = buf.frames
        offset += buf.frame_count

    logger.debug(
        "Concatenated %d buffers into %d frames (%.2fs)",
        len(buffers),
        total,
        total / first.sample_rate,
    )
    return SampleBuffer(sample_rate=first.sample_rate, frames=out)
