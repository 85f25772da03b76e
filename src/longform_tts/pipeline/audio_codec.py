"""Audio codec: raw PCM16 payloads to float sample buffers and back.

The synthesis service returns raw little-endian 16-bit signed PCM,
mono, 24kHz.  Decoding normalises to float32 in [-1.0, 1.0]; encoding
clamps and scales back with the asymmetric int16 mapping (negative
values by 32768, non-negative by 32767, truncated toward zero).
"""

from __future__ import annotations

import numpy as np

from longform_tts.errors import MalformedAudioError
from longform_tts.pipeline.audio_buffer import SampleBuffer

# Fixed format at the synthesis service boundary
SERVICE_SAMPLE_RATE = 24000
SERVICE_CHANNELS = 1
SAMPLE_WIDTH = 2  # 16-bit = 2 bytes

_PCM16_LE = np.dtype("<i2")


def decode_pcm16(
    raw: bytes,
    sample_rate: int = SERVICE_SAMPLE_RATE,
    channel_count: int = SERVICE_CHANNELS,
) -> SampleBuffer:
    """Decode interleaved PCM16 bytes into a :class:`SampleBuffer`.

    Args:
        raw: Little-endian signed 16-bit samples, interleaved by channel.
        sample_rate: Sample rate of the payload.
        channel_count: Number of interleaved channels.

    Raises:
        MalformedAudioError: If the payload does not hold a whole number
            of frames.
    """
    if channel_count < 1:
        raise ValueError(f"channel_count must be >= 1, got {channel_count}")

    frame_bytes = SAMPLE_WIDTH * channel_count
    if len(raw) % frame_bytes:
        raise MalformedAudioError(
            f"PCM payload of {len(raw)} bytes is not a multiple of "
            f"{frame_bytes} ({channel_count} channel(s) x 16-bit)"
        )

    ints = np.frombuffer(raw, dtype=_PCM16_LE)
    # (frames, channels) interleaved → (channels, frames)
    frames = ints.reshape(-1, channel_count).T.astype(np.float32) / np.float32(32768.0)
    return SampleBuffer(sample_rate=sample_rate, frames=np.ascontiguousarray(frames))


def encode_pcm16(buffer: SampleBuffer) -> bytes:
    """Encode a buffer as interleaved little-endian PCM16 bytes."""
    samples = np.nan_to_num(buffer.frames.astype(np.float64), nan=0.0)
    clipped = np.clip(samples, -1.0, 1.0)
    scaled = np.where(clipped < 0.0, clipped * 32768.0, clipped * 32767.0)
    ints = np.trunc(scaled).astype(_PCM16_LE)
    # (channels, frames) → interleaved (frames, channels)
    return ints.T.tobytes()
