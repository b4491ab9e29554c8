"""Audio schemas for the transcription pipeline.

Sample data is carried as numpy arrays, so these are plain dataclasses
rather than pydantic models.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np


@dataclass
class AudioFileInfo:
    """An audio file as selected by the user or referenced by the agent.

    ``duration`` is best-effort metadata and may be None when the container
    does not expose it without decoding.
    """

    data: bytes
    name: str
    size: int
    mime_type: str
    duration: float | None = None


@dataclass
class PcmAudio:
    """Decoded PCM audio as float32 samples shaped (frames, channels)."""

    samples: np.ndarray
    sample_rate: int

    def __post_init__(self) -> None:
        if self.samples.ndim == 1:
            self.samples = self.samples.reshape(-1, 1)
        if self.samples.ndim != 2:
            raise ValueError(
                f"Expected samples shaped (frames, channels), got {self.samples.shape}"
            )
        if self.sample_rate <= 0:
            raise ValueError(f"Invalid sample rate: {self.sample_rate}")

    @property
    def frames(self) -> int:
        return int(self.samples.shape[0])

    @property
    def channels(self) -> int:
        return int(self.samples.shape[1])

    @property
    def duration(self) -> float:
        """Duration in seconds."""
        return self.frames / self.sample_rate

    def channel(self, index: int) -> np.ndarray:
        """Samples of a single channel."""
        return self.samples[:, index]


@dataclass
class AudioChunk:
    """A contiguous, bounded-duration slice of a longer recording.

    ``audio`` is None once the samples have been released in favour of
    the ``encoded`` WAV bytes.
    """

    index: int
    audio: PcmAudio | None
    start_seconds: float
    end_seconds: float
    encoded: bytes | None = field(default=None, repr=False)

    @property
    def duration(self) -> float:
        return self.end_seconds - self.start_seconds


@dataclass
class ChunkProgress:
    """Progress report emitted as each chunk is materialized."""

    current: int
    total: int
    chunk: AudioChunk
