"""In-memory chat session.

Holds the message history of one conversation, runs turns through an
AgentChatClient and renders the plain-text chat log. Nothing is
persisted; the history lives as long as the session object.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import UTC, datetime
from typing import Any

from agentwire.schemas.streaming import (
    AssistantState,
    ChatMessage,
    ChatRole,
    ClientTranscriptionRequest,
    ToolCall,
    ToolCallStatus,
    TurnResult,
)
from agentwire.stream.client import AgentChatClient, StateListener

logger = logging.getLogger(__name__)

# Result payloads are truncated in the log to keep it readable
_LOG_RESULT_LIMIT = 500


def _dump(value: Any) -> str | None:
    try:
        return json.dumps(value)
    except (TypeError, ValueError):
        return None


def _tool_call_lines(calls: tuple[ToolCall, ...]) -> list[str]:
    lines: list[str] = []
    for call in calls:
        lines.append(f"  [TOOL] {call.tool} ({call.status})")
        dumped_input = _dump(call.input)
        if dumped_input is not None:
            lines.append(f"    Input: {dumped_input}")
        if call.summary:
            lines.append(f"    Summary: {call.summary}")
        if call.result:
            dumped_result = _dump(call.result)
            if dumped_result is not None:
                lines.append(f"    Result: {dumped_result[:_LOG_RESULT_LIMIT]}")
    return lines


class ChatSession:
    """One conversation with the agent.

    Turns are sent one at a time. While a turn streams, ``current`` holds
    its latest AssistantState; afterwards the finalized message is appended
    to ``messages`` whether the turn completed or failed.
    """

    def __init__(
        self,
        client: AgentChatClient,
        graph_id: str | None = None,
    ) -> None:
        self._client = client
        self.graph_id = graph_id
        self.messages: list[ChatMessage] = []
        self.current: AssistantState | None = None
        self.last_result: TurnResult | None = None

    @property
    def streaming(self) -> bool:
        return self.current is not None

    async def send(
        self,
        text: str,
        *,
        on_state: StateListener | None = None,
        timeout: float | None = None,
    ) -> TurnResult:
        """Send a user message and stream the assistant's reply."""
        content = text.strip()
        if not content:
            raise ValueError("Cannot send an empty message")
        if self.streaming:
            raise RuntimeError("A turn is already streaming in this session")

        self.messages.append(ChatMessage(role=ChatRole.USER, content=content))
        self.current = AssistantState()

        async def _track(state: AssistantState) -> None:
            self.current = state
            if on_state is not None:
                result = on_state(state)
                if asyncio.iscoroutine(result):
                    await result

        try:
            result = await self._client.run_turn(
                list(self.messages), self.graph_id, on_state=_track, timeout=timeout,
            )
        finally:
            self.current = None

        self.messages.append(result.message)
        self.last_result = result
        if not result.completed:
            logger.warning("Turn did not complete cleanly: %s", result.error or "no 'done' event")
        return result

    def pending_transcriptions(self) -> list[ClientTranscriptionRequest]:
        """Client-side transcription requests raised by the last turn."""
        if self.last_result is None:
            return []
        requests: list[ClientTranscriptionRequest] = []
        for call in self.last_result.state.tool_calls:
            if call.status != ToolCallStatus.SUCCESS:
                continue
            request = ClientTranscriptionRequest.from_tool_call(call)
            if request is not None:
                requests.append(request)
        return requests

    def add_transcript(self, transcript: str, title: str | None = None) -> ChatMessage:
        """Push a finished transcript into the history as a user message."""
        heading = f"Transcription of {title}" if title else "Transcription"
        message = ChatMessage(role=ChatRole.USER, content=f"{heading}:\n\n{transcript}")
        self.messages.append(message)
        return message

    def build_log(self, user_id: str = "", now: datetime | None = None) -> str:
        """Render the conversation, including an in-flight turn, as plain text."""
        timestamp = (now or datetime.now(UTC)).isoformat()
        lines = [
            "=== Agent Chat Log ===",
            f"Time: {timestamp}",
            f"Graph: {self.graph_id or '(none)'}",
            f"User: {user_id}",
            "",
        ]

        for message in self.messages:
            lines.append(f"--- {message.role.upper()} ---")
            if message.tool_calls:
                lines.extend(_tool_call_lines(message.tool_calls))
            lines.append(message.content)
            lines.append("")

        if self.current is not None:
            lines.append("--- ASSISTANT (streaming) ---")
            lines.extend(_tool_call_lines(self.current.tool_calls))
            if self.current.text:
                lines.append(self.current.text)
            if self.current.error:
                lines.append(f"  [ERROR] {self.current.error}")

        return "\n".join(lines)
