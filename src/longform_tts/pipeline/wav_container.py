"""WAV container encoder for assembled recordings."""

from __future__ import annotations

import re
import struct
import time

from longform_tts.pipeline.audio_buffer import SampleBuffer
from longform_tts.pipeline.audio_codec import SAMPLE_WIDTH, encode_pcm16

WAV_HEADER_SIZE = 44
DEFAULT_DOWNLOAD_PREFIX = "tts-r-2.0"

# RIFF header, fmt chunk (16 bytes, PCM), data chunk header, little-endian
_WAV_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")
_FMT_CHUNK_SIZE = 16
_FORMAT_PCM = 1

_UNSAFE_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f]')


def encode_wav(buffer: SampleBuffer, bit_depth: int = 16) -> bytes:
    """Serialize a buffer into a standard uncompressed PCM WAV byte stream.

    The result is exactly ``44 + frame_count * channel_count * 2`` bytes.
    """
    if bit_depth != 16:
        raise ValueError(f"Only 16-bit PCM is supported, got {bit_depth}-bit")

    pcm = encode_pcm16(buffer)
    block_align = buffer.channel_count * SAMPLE_WIDTH
    header = _WAV_HEADER.pack(
        b"RIFF",
        WAV_HEADER_SIZE - 8 + len(pcm),
        b"WAVE",
        b"fmt ",
        _FMT_CHUNK_SIZE,
        _FORMAT_PCM,
        buffer.channel_count,
        buffer.sample_rate,
        buffer.sample_rate * block_align,
        block_align,
        bit_depth,
        b"data",
        len(pcm),
    )
    return header + pcm


def recording_filename(
    voice_name: str,
    timestamp_ms: int | None = None,
    prefix: str = DEFAULT_DOWNLOAD_PREFIX,
) -> str:
    """Download name: ``<prefix>-<voice name>-<epoch millis>.wav``."""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    safe_name = _UNSAFE_FILENAME_CHARS.sub("_", voice_name).strip() or "voice"
    return f"{prefix}-{safe_name}-{timestamp_ms}.wav"
