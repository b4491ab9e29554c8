"""16-bit PCM WAV encoding.

Produces the canonical 44-byte RIFF/WAVE header (PCM format tag 1)
followed by interleaved little-endian int16 samples. Output is
byte-for-byte deterministic for identical input.
"""

from __future__ import annotations

import io
import struct
import wave
from dataclasses import dataclass

import numpy as np

from agentwire.schemas.audio import PcmAudio

WAV_HEADER_SIZE = 44
_SAMPLE_WIDTH = 2  # bytes, 16-bit

_HEADER_STRUCT = struct.Struct("<4sI4s4sIHHIIHH4sI")


@dataclass(frozen=True)
class WavHeader:
    """Fields of a canonical 44-byte PCM WAV header."""

    riff_size: int
    format_tag: int
    channels: int
    sample_rate: int
    byte_rate: int
    block_align: int
    bits_per_sample: int
    data_size: int


def to_pcm16(samples: np.ndarray) -> np.ndarray:
    """Clamp float samples to [-1, 1] and scale to int16. No dithering."""
    clipped = np.clip(samples.astype(np.float64, copy=False), -1.0, 1.0)
    scaled = np.round(clipped * 32768.0)
    return np.clip(scaled, -32768, 32767).astype("<i2")


def encode_wav(audio: PcmAudio) -> bytes:
    """Serialize PCM audio as a 16-bit WAV byte string."""
    pcm = to_pcm16(audio.samples)
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wf:
        wf.setnchannels(audio.channels)
        wf.setsampwidth(_SAMPLE_WIDTH)
        wf.setframerate(audio.sample_rate)
        # Row-major (frames, channels) is already interleaved
        wf.writeframes(pcm.tobytes())
    return buffer.getvalue()


def parse_wav_header(data: bytes) -> WavHeader:
    """Read back the fixed 44-byte header of a canonical PCM WAV.

    Raises:
        ValueError: If the data is not a canonical PCM WAV.
    """
    if len(data) < WAV_HEADER_SIZE:
        raise ValueError(f"WAV data too short: {len(data)} bytes")

    (
        riff, riff_size, wave_id, fmt_id, fmt_size, format_tag, channels,
        sample_rate, byte_rate, block_align, bits, data_id, data_size,
    ) = _HEADER_STRUCT.unpack_from(data)

    if riff != b"RIFF" or wave_id != b"WAVE":
        raise ValueError("Not a RIFF/WAVE file")
    if fmt_id != b"fmt " or fmt_size != 16 or data_id != b"data":
        raise ValueError("Not a canonical 44-byte PCM WAV header")

    return WavHeader(
        riff_size=riff_size,
        format_tag=format_tag,
        channels=channels,
        sample_rate=sample_rate,
        byte_rate=byte_rate,
        block_align=block_align,
        bits_per_sample=bits,
        data_size=data_size,
    )
