"""Tests for PCM16 decode / encode."""

import struct

import numpy as np
import pytest

from longform_tts.errors import MalformedAudioError
from longform_tts.pipeline.audio_buffer import SampleBuffer
from longform_tts.pipeline.audio_codec import decode_pcm16, encode_pcm16


def _pcm(*samples: int) -> bytes:
    return struct.pack(f"<{len(samples)}h", *samples)


def _ints(raw: bytes) -> list[int]:
    return list(struct.unpack(f"<{len(raw) // 2}h", raw))


class TestDecode:
    """Raw service payload to float samples."""

    def test_mono_scaling(self):
        buf = decode_pcm16(_pcm(-32768, 0, 16384, 32767))
        assert buf.sample_rate == 24000
        assert buf.channel_count == 1
        assert buf.frames.dtype == np.float32
        np.testing.assert_array_equal(
            buf.channel(0), np.array([-1.0, 0.0, 0.5, 32767 / 32768], dtype=np.float32)
        )

    def test_empty_payload(self):
        buf = decode_pcm16(b"")
        assert buf.frame_count == 0

    def test_stereo_deinterleave(self):
        buf = decode_pcm16(_pcm(1, 2, 3, 4), sample_rate=48000, channel_count=2)
        assert buf.sample_rate == 48000
        assert buf.frame_count == 2
        np.testing.assert_array_equal(buf.channel(0) * 32768, [1, 3])
        np.testing.assert_array_equal(buf.channel(1) * 32768, [2, 4])

    def test_odd_length_is_malformed(self):
        with pytest.raises(MalformedAudioError):
            decode_pcm16(b"\x00\x01\x02")

    def test_partial_stereo_frame_is_malformed(self):
        with pytest.raises(MalformedAudioError):
            decode_pcm16(_pcm(1, 2, 3), channel_count=2)


class TestEncode:
    """Float samples back to little-endian int16."""

    def test_asymmetric_scaling_and_clamping(self):
        frames = np.array([[-1.0, 0.0, 1.0, 0.5, -0.5, 2.0, -3.0, np.nan]], dtype=np.float32)
        raw = encode_pcm16(SampleBuffer(24000, frames))
        assert _ints(raw) == [-32768, 0, 32767, 16383, -16384, 32767, -32768, 0]

    def test_truncates_toward_zero(self):
        frames = np.array([[0.99999, -0.99999, 1e-6, -1e-6]], dtype=np.float32)
        ints = _ints(encode_pcm16(SampleBuffer(24000, frames)))
        assert ints[0] == 32766
        assert ints[1] == -32767
        assert ints[2] == 0
        assert ints[3] == 0

    def test_interleaves_channels(self):
        frames = np.array([[0.5, 1.0], [-0.5, -1.0]], dtype=np.float32)
        raw = encode_pcm16(SampleBuffer(24000, frames))
        assert _ints(raw) == [16383, -16384, 32767, -32768]

    def test_output_length(self):
        buf = SampleBuffer(24000, np.zeros((2, 10), dtype=np.float32))
        assert len(encode_pcm16(buf)) == 2 * 10 * 2


class TestRoundTrip:
    """Decode then encode, pinned to the asymmetric scaling."""

    def test_negative_and_zero_are_exact(self):
        raw = _pcm(-32768, -12345, -1, 0)
        assert encode_pcm16(decode_pcm16(raw)) == raw

    def test_positive_values_come_back_one_lower(self):
        raw = _pcm(1, 100, 16384, 32767)
        assert _ints(encode_pcm16(decode_pcm16(raw))) == [0, 99, 16383, 32766]
