"""agentwire schema definitions.

Pydantic v2 models for the chat stream, transcripts and configuration,
plus the numpy-backed audio dataclasses.
"""

from agentwire.schemas.audio import AudioChunk, AudioFileInfo, ChunkProgress, PcmAudio
from agentwire.schemas.config import AgentEndpointConfig, ClientConfig, TranscriptionConfig
from agentwire.schemas.streaming import (
    AssistantState,
    ChatMessage,
    ChatRole,
    ClientTranscriptionRequest,
    StreamEvent,
    StreamEventType,
    ToolCall,
    ToolCallStatus,
    TurnResult,
    UnmatchedToolEvent,
)
from agentwire.schemas.transcription import (
    TranscriptionProgress,
    TranscriptionStage,
    TranscriptResult,
    TranscriptSegment,
    format_timestamp,
)

__all__ = [
    # Audio
    "AudioChunk",
    "AudioFileInfo",
    "ChunkProgress",
    "PcmAudio",
    # Config
    "AgentEndpointConfig",
    "ClientConfig",
    "TranscriptionConfig",
    # Streaming
    "AssistantState",
    "ChatMessage",
    "ChatRole",
    "ClientTranscriptionRequest",
    "StreamEvent",
    "StreamEventType",
    "ToolCall",
    "ToolCallStatus",
    "TurnResult",
    "UnmatchedToolEvent",
    # Transcription
    "TranscriptResult",
    "TranscriptSegment",
    "TranscriptionProgress",
    "TranscriptionStage",
    "format_timestamp",
]
