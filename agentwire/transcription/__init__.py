"""Remote speech-to-text client and the chunked transcription pipeline."""

from agentwire.transcription.client import TranscriptionClient
from agentwire.transcription.orchestrator import TranscriptionOrchestrator, assemble_transcript

__all__ = ["TranscriptionClient", "TranscriptionOrchestrator", "assemble_transcript"]
