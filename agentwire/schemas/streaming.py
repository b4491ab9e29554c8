"""Streaming schemas for agent turns.

Defines the framed StreamEvent record, the ToolCall ledger entry and the
immutable AssistantState that the event reducer derives one event at a
time, plus the finalized ChatMessage and TurnResult handed to callers.
"""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)


class StreamEventType(StrEnum):
    """Event types the agent emits on the chat stream."""

    THINKING = "thinking"
    TOOL_CALL = "tool_call"
    TOOL_PROGRESS = "tool_progress"
    TOOL_RESULT = "tool_result"
    TEXT = "text"
    ERROR = "error"
    DONE = "done"


class StreamEvent(BaseModel):
    """One ``event:``/``data:`` record decoded from the byte stream."""

    model_config = ConfigDict(frozen=True)

    type: str = Field(description="Raw event type from the 'event:' line")
    data: dict[str, Any] = Field(
        default_factory=dict,
        description="Parsed JSON payload from the 'data:' line",
    )

    @property
    def kind(self) -> StreamEventType | None:
        """The recognized event type, or None for unknown types."""
        try:
            return StreamEventType(self.type)
        except ValueError:
            return None


class ToolCallStatus(StrEnum):
    """Lifecycle status of a tool invocation."""

    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"


class ToolCall(BaseModel):
    """A single tool invocation within an assistant turn."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Identifier unique within the turn")
    tool: str = Field(description="Tool name reported by the agent")
    input: Any = Field(default=None, description="Tool input as sent by the agent")
    status: ToolCallStatus = Field(default=ToolCallStatus.RUNNING)
    summary: str | None = Field(default=None, description="Short result summary")
    result: dict[str, Any] | None = Field(
        default=None, description="Full tool_result payload"
    )
    progress: str | None = Field(
        default=None, description="Latest progress message while running"
    )

    @property
    def is_running(self) -> bool:
        return self.status == ToolCallStatus.RUNNING


class UnmatchedToolEvent(BaseModel):
    """A tool_progress/tool_result that found no running call to resolve."""

    model_config = ConfigDict(frozen=True)

    type: StreamEventType
    tool: str


class AssistantState(BaseModel):
    """Live state of one streamed assistant turn.

    Instances are immutable; every transition returns a new state. Tool
    calls are kept in insertion order, which is what LIFO correlation of
    follow-up events relies on.
    """

    model_config = ConfigDict(frozen=True)

    text: str = Field(default="", description="Accumulated text deltas")
    tool_calls: tuple[ToolCall, ...] = Field(default=())
    thinking: bool = Field(default=False)
    error: str | None = Field(default=None)
    unmatched: tuple[UnmatchedToolEvent, ...] = Field(
        default=(),
        description="Follow-up tool events that matched no running call",
    )

    def running_calls(self) -> list[ToolCall]:
        """Tool calls that have not reached a terminal status."""
        return [tc for tc in self.tool_calls if tc.is_running]


class ChatRole(StrEnum):
    USER = "user"
    ASSISTANT = "assistant"


class ChatMessage(BaseModel):
    """A finalized chat message, as sent back to the agent in history."""

    model_config = ConfigDict(frozen=True)

    role: ChatRole
    content: str
    tool_calls: tuple[ToolCall, ...] | None = Field(default=None)

    def to_wire(self) -> dict[str, str]:
        """The message shape the chat endpoint accepts."""
        return {"role": str(self.role), "content": self.content}


class TurnResult(BaseModel):
    """Outcome of one streamed turn.

    ``completed`` is False when the stream ended without a ``done`` event
    or when the request failed; ``state`` is the last applied state in
    either case.
    """

    message: ChatMessage
    state: AssistantState
    completed: bool = Field(default=False)
    error: str | None = Field(default=None)


class ClientTranscriptionRequest(BaseModel):
    """A tool result asking the client to transcribe audio on-device."""

    audio_url: str = Field(alias="audioUrl")
    recording_id: str | None = Field(default=None, alias="recordingId")
    language: str | None = Field(default=None)
    save_to_portfolio: bool = Field(default=False, alias="saveToPortfolio")
    save_to_graph: bool = Field(default=False, alias="saveToGraph")
    graph_title: str | None = Field(default=None, alias="graphTitle")
    message: str = Field(default="")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @classmethod
    def from_tool_call(cls, call: ToolCall) -> ClientTranscriptionRequest | None:
        """Extract a request from a resolved tool call, if it carries one.

        Payloads that ask for client-side work but fail validation are
        logged and skipped.
        """
        payload = call.result or {}
        if not payload.get("clientSideRequired") or not payload.get("audioUrl"):
            return None
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            logger.warning(
                "Ignoring malformed transcription request from %s (%s): %s",
                call.tool, call.id, e,
            )
            return None
