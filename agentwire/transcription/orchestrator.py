"""Chunked transcription pipeline.

Files that fit under the chunk threshold are sent to the speech service
as-is in a single call. Longer files are decoded, split into
bounded-duration chunks, re-encoded as 16-bit WAV and transcribed one
chunk at a time, strictly in chunk-index order. A failing chunk is turned
into an inline ``[Error: ...]`` marker at its position and the remaining
chunks are still processed.

Progress is exposed as an async generator of TranscriptionProgress
events; the final DONE event carries the TranscriptResult.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Sequence
from pathlib import PurePath

from agentwire.audio.chunker import DEFAULT_CHUNK_SECONDS, AudioChunker
from agentwire.audio.decoder import decode_audio
from agentwire.audio.wav import encode_wav
from agentwire.errors import TranscriptionError
from agentwire.schemas.audio import AudioChunk, AudioFileInfo, PcmAudio
from agentwire.schemas.transcription import (
    TranscriptionProgress,
    TranscriptionStage,
    TranscriptResult,
    TranscriptSegment,
)
from agentwire.transcription.client import TranscriptionClient

logger = logging.getLogger(__name__)

_SEGMENT_SEPARATOR = "\n\n"


def assemble_transcript(segments: Sequence[TranscriptSegment]) -> str:
    """Join labelled segments, in index order, separated by a blank line."""
    ordered = sorted(segments, key=lambda seg: seg.index)
    return _SEGMENT_SEPARATOR.join(seg.render() for seg in ordered)


def _chunk_bytes(chunk: AudioChunk) -> bytes:
    if chunk.encoded is not None:
        return chunk.encoded
    if chunk.audio is None:
        raise ValueError(f"Chunk {chunk.index} has neither samples nor encoded audio")
    return encode_wav(chunk.audio)


def prepare_chunk(chunk: AudioChunk) -> AudioChunk:
    """Encode a chunk to WAV in place and release its sample buffer."""
    chunk.encoded = _chunk_bytes(chunk)
    chunk.audio = None
    return chunk


class TranscriptionOrchestrator:
    """Runs one file (or chunk list) through the speech service."""

    def __init__(
        self,
        client: TranscriptionClient,
        chunk_seconds: float = DEFAULT_CHUNK_SECONDS,
    ) -> None:
        if chunk_seconds <= 0:
            raise ValueError(f"chunk_seconds must be positive, got {chunk_seconds}")
        self._client = client
        self._chunk_seconds = chunk_seconds

    @property
    def chunk_seconds(self) -> float:
        return self._chunk_seconds

    async def iter_progress(
        self,
        file: AudioFileInfo,
        language: str | None = None,
    ) -> AsyncIterator[TranscriptionProgress]:
        """Transcribe ``file``, yielding progress as each step finishes.

        Raises:
            AudioDecodeError: If the file must be decoded and cannot be.
            TranscriptionError: If an unchunked whole-file call fails.
        """
        audio: PcmAudio | None = None
        duration = file.duration

        if duration is None:
            yield TranscriptionProgress(
                stage=TranscriptionStage.DECODING, message=f"Decoding {file.name}",
            )
            audio = await asyncio.to_thread(decode_audio, file.data, file.name)
            duration = audio.duration

        if duration <= self._chunk_seconds:
            yield TranscriptionProgress(
                stage=TranscriptionStage.TRANSCRIBING, current=0, total=1,
                message=f"Transcribing {file.name}",
            )
            text = await self._client.transcribe(file.data, file.name, file.mime_type, language)
            yield TranscriptionProgress(
                stage=TranscriptionStage.DONE, current=1, total=1,
                message="Transcription complete",
                result=TranscriptResult(text=text, chunked=False),
            )
            return

        if audio is None:
            yield TranscriptionProgress(
                stage=TranscriptionStage.DECODING, message=f"Decoding {file.name}",
            )
            audio = await asyncio.to_thread(decode_audio, file.data, file.name)

        chunks: list[AudioChunk] = []
        for progress in AudioChunker(audio, self._chunk_seconds):
            chunks.append(prepare_chunk(progress.chunk))
            yield TranscriptionProgress(
                stage=TranscriptionStage.CHUNKING,
                current=progress.current,
                total=progress.total,
                message=f"Prepared chunk {progress.current}/{progress.total}",
            )
        # Only the encoded chunks are needed from here on
        audio = None

        async for progress in self.iter_chunk_progress(chunks, language, PurePath(file.name).stem):
            yield progress

    async def iter_chunk_progress(
        self,
        chunks: Sequence[AudioChunk],
        language: str | None = None,
        name: str = "chunk",
    ) -> AsyncIterator[TranscriptionProgress]:
        """Transcribe precomputed chunks sequentially with per-chunk isolation."""
        total = len(chunks)
        segments: list[TranscriptSegment] = []

        for position, chunk in enumerate(chunks, start=1):
            data = _chunk_bytes(chunk)
            filename = f"{name}_part{chunk.index + 1}.wav"
            try:
                text = await self._client.transcribe(data, filename, "audio/wav", language)
                segment = TranscriptSegment(
                    index=chunk.index, start=chunk.start_seconds, end=chunk.end_seconds,
                    text=text,
                )
            except TranscriptionError as e:
                segment = TranscriptSegment(
                    index=chunk.index, start=chunk.start_seconds, end=chunk.end_seconds,
                    error=str(e),
                )
                logger.warning("Chunk %d/%d %s failed: %s", position, total, segment.label, e)

            segments.append(segment)
            yield TranscriptionProgress(
                stage=TranscriptionStage.TRANSCRIBING,
                current=position,
                total=total,
                message=f"Transcribed chunk {position}/{total}",
                segment=segment,
            )

        result = TranscriptResult(
            text=assemble_transcript(segments), segments=segments, chunked=True,
        )
        if result.all_failed:
            logger.error("No chunks transcribed successfully (%d failed)", result.failed)
        yield TranscriptionProgress(
            stage=TranscriptionStage.DONE,
            current=total,
            total=total,
            message=f"{result.succeeded}/{total} chunks transcribed",
            result=result,
        )

    async def transcribe_file(
        self,
        file: AudioFileInfo,
        language: str | None = None,
    ) -> TranscriptResult:
        return await _drain(self.iter_progress(file, language))

    async def transcribe_chunks(
        self,
        chunks: Sequence[AudioChunk],
        language: str | None = None,
    ) -> TranscriptResult:
        return await _drain(self.iter_chunk_progress(chunks, language))


async def _drain(progress: AsyncIterator[TranscriptionProgress]) -> TranscriptResult:
    result: TranscriptResult | None = None
    async for event in progress:
        if event.result is not None:
            result = event.result
    if result is None:
        raise RuntimeError("Transcription finished without a result")
    return result
