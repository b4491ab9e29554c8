"""Transcript schemas.

A chunked transcription produces one TranscriptSegment per chunk, in
chunk-index order, each rendered as a "[mm:ss - mm:ss]" label followed by
the chunk text or an inline error marker.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field


def format_timestamp(seconds: float) -> str:
    """Format seconds as ``mm:ss``; minutes are not wrapped at 60."""
    total = max(0, int(seconds))
    minutes, secs = divmod(total, 60)
    return f"{minutes:02d}:{secs:02d}"


class TranscriptSegment(BaseModel):
    """Transcript of one chunk, or the error that replaced it."""

    index: int = Field(ge=0, description="Chunk index")
    start: float = Field(ge=0.0, description="Chunk start in seconds")
    end: float = Field(ge=0.0, description="Chunk end in seconds")
    text: str | None = Field(default=None)
    error: str | None = Field(default=None)

    @property
    def label(self) -> str:
        return f"[{format_timestamp(self.start)} - {format_timestamp(self.end)}]"

    @property
    def ok(self) -> bool:
        return self.error is None

    def render(self) -> str:
        if self.error is not None:
            return f"{self.label} [Error: {self.error}]"
        return f"{self.label} {self.text or ''}".rstrip()


class TranscriptResult(BaseModel):
    """Reassembled transcript for a whole file."""

    text: str = Field(description="Final transcript text")
    segments: list[TranscriptSegment] = Field(default_factory=list)
    chunked: bool = Field(
        default=False, description="False when the file was sent in one call"
    )

    @property
    def succeeded(self) -> int:
        if not self.chunked:
            return 1
        return sum(1 for seg in self.segments if seg.ok)

    @property
    def failed(self) -> int:
        return sum(1 for seg in self.segments if not seg.ok)

    @property
    def all_failed(self) -> bool:
        """True when no chunk was transcribed; callers decide if that is fatal."""
        return self.chunked and self.succeeded == 0


class TranscriptionStage(StrEnum):
    DECODING = "decoding"
    CHUNKING = "chunking"
    TRANSCRIBING = "transcribing"
    DONE = "done"


class TranscriptionProgress(BaseModel):
    """One progress report from the transcription pipeline."""

    stage: TranscriptionStage
    current: int = Field(default=0, ge=0)
    total: int = Field(default=0, ge=0)
    message: str = Field(default="")
    segment: TranscriptSegment | None = Field(
        default=None, description="The segment just finished (transcribing stage)"
    )
    result: TranscriptResult | None = Field(
        default=None, description="Set on the final DONE event"
    )
