"""Bounded-duration chunking of decoded audio.

Partitions ``[0, frames)`` into contiguous, non-overlapping ranges of at
most ``chunk_seconds`` each. Chunks are materialized lazily: iterating an
AudioChunker copies one range at a time and reports ``current/total`` as
it goes. Iterating again starts over from the first chunk.
"""

from __future__ import annotations

import math
from collections.abc import Iterator
from dataclasses import dataclass

import numpy as np

from agentwire.schemas.audio import AudioChunk, ChunkProgress, PcmAudio

DEFAULT_CHUNK_SECONDS = 120.0


@dataclass(frozen=True)
class SampleRange:
    """Half-open frame range ``[start, end)``."""

    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start


def plan_ranges(frames: int, sample_rate: int, chunk_seconds: float) -> list[SampleRange]:
    """Compute chunk boundaries without touching sample data."""
    if chunk_seconds <= 0:
        raise ValueError(f"chunk_seconds must be positive, got {chunk_seconds}")
    if frames <= 0:
        return []

    if frames / sample_rate <= chunk_seconds:
        return [SampleRange(0, frames)]

    # Floor so no chunk exceeds chunk_seconds
    chunk_frames = max(1, math.floor(chunk_seconds * sample_rate))
    count = math.ceil(frames / chunk_frames)
    return [
        SampleRange(i * chunk_frames, min((i + 1) * chunk_frames, frames))
        for i in range(count)
    ]


class AudioChunker:
    """Restartable, lazy sequence of ChunkProgress events for one recording."""

    def __init__(self, audio: PcmAudio, chunk_seconds: float = DEFAULT_CHUNK_SECONDS) -> None:
        self._audio = audio
        self._chunk_seconds = chunk_seconds
        self._ranges = plan_ranges(audio.frames, audio.sample_rate, chunk_seconds)

    @property
    def ranges(self) -> list[SampleRange]:
        return list(self._ranges)

    def __len__(self) -> int:
        return len(self._ranges)

    def __iter__(self) -> Iterator[ChunkProgress]:
        total = len(self._ranges)
        rate = self._audio.sample_rate
        for index, span in enumerate(self._ranges):
            # Copy so each chunk owns its samples independently of the source
            samples = np.array(self._audio.samples[span.start:span.end], copy=True)
            chunk = AudioChunk(
                index=index,
                audio=PcmAudio(samples=samples, sample_rate=rate),
                start_seconds=span.start / rate,
                end_seconds=span.end / rate,
            )
            yield ChunkProgress(current=index + 1, total=total, chunk=chunk)

    def chunks(self) -> list[AudioChunk]:
        """Materialize every chunk."""
        return [progress.chunk for progress in self]


def split_audio(audio: PcmAudio, chunk_seconds: float = DEFAULT_CHUNK_SECONDS) -> list[AudioChunk]:
    return AudioChunker(audio, chunk_seconds).chunks()
