"""Audio file loading and PCM decoding.

Decoding goes through soundfile (libsndfile), which covers WAV, FLAC,
OGG/Vorbis, Opus and, with libsndfile 1.1+, MP3. Anything it cannot read
is reported as an AudioDecodeError carrying a user-facing message.
"""

from __future__ import annotations

import io
import logging
import mimetypes
from pathlib import Path

import numpy as np
import soundfile as sf

from agentwire.errors import AudioDecodeError
from agentwire.schemas.audio import AudioFileInfo, PcmAudio

logger = logging.getLogger(__name__)

_DEFAULT_MIME = "application/octet-stream"


def probe_duration(data: bytes) -> float | None:
    """Best-effort duration from container metadata, without decoding."""
    try:
        info = sf.info(io.BytesIO(data))
    except (sf.LibsndfileError, RuntimeError, TypeError) as e:
        logger.debug("Could not probe audio duration: %s", e)
        return None
    if info.samplerate <= 0 or info.frames <= 0:
        return None
    return info.frames / info.samplerate


def make_file_info(data: bytes, name: str, mime_type: str | None = None) -> AudioFileInfo:
    """Wrap raw audio bytes with their metadata."""
    mime = mime_type or mimetypes.guess_type(name)[0] or _DEFAULT_MIME
    return AudioFileInfo(
        data=data,
        name=name,
        size=len(data),
        mime_type=mime,
        duration=probe_duration(data),
    )


def load_audio_file(path: Path | str) -> AudioFileInfo:
    """Read an audio file from disk.

    Raises:
        FileNotFoundError: If the path does not exist.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Audio file not found: {path}")
    return make_file_info(path.read_bytes(), path.name)


def decode_audio(data: bytes, name: str | None = None) -> PcmAudio:
    """Decode encoded audio bytes into float32 PCM.

    Channels are preserved; nothing is resampled or mixed down.

    Raises:
        AudioDecodeError: If the data is empty, unsupported or corrupt.
    """
    label = name or "audio"
    if not data:
        raise AudioDecodeError(f"Could not decode {label}: file is empty")

    try:
        samples, sample_rate = sf.read(io.BytesIO(data), dtype="float32", always_2d=True)
    except (sf.LibsndfileError, RuntimeError, TypeError) as e:
        raise AudioDecodeError(
            f"Could not decode {label}: unsupported or corrupt audio ({e})"
        ) from e

    if samples.size == 0:
        raise AudioDecodeError(f"Could not decode {label}: no audio samples")

    audio = PcmAudio(samples=np.ascontiguousarray(samples), sample_rate=int(sample_rate))
    logger.debug(
        "Decoded %s: %d frames, %d channel(s) @ %d Hz (%.1fs)",
        label, audio.frames, audio.channels, audio.sample_rate, audio.duration,
    )
    return audio
