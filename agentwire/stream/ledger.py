"""Tool-call ledger and event reducer.

``apply_event`` is a pure transition ``(state, event) -> state'``. It is
applied strictly in arrival order, one event at a time, by the chat
client; tests replay event lists through it directly.

Progress and result events carry only a tool name, not a call id. They are
correlated with the most recently appended call of that name that is
still running (LIFO correlation). Events that find no such call leave the
tool calls untouched and are recorded in ``state.unmatched``.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from typing import Any

from agentwire.schemas.streaming import (
    AssistantState,
    ChatMessage,
    ChatRole,
    StreamEvent,
    StreamEventType,
    ToolCall,
    ToolCallStatus,
    UnmatchedToolEvent,
)

logger = logging.getLogger(__name__)


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value)


def normalize_error(value: Any) -> str:
    """Reduce an error payload to a display string.

    Strings pass through; objects with a ``message`` use it; anything else
    is JSON-serialized.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, dict) and "message" in value:
        return str(value["message"])
    return json.dumps(value)


def find_running(tool_calls: tuple[ToolCall, ...], tool: str) -> int | None:
    """Index of the most recently appended running call named ``tool``."""
    for index in range(len(tool_calls) - 1, -1, -1):
        call = tool_calls[index]
        if call.tool == tool and call.is_running:
            return index
    return None


def _replace_at(
    tool_calls: tuple[ToolCall, ...], index: int, call: ToolCall
) -> tuple[ToolCall, ...]:
    return tool_calls[:index] + (call,) + tool_calls[index + 1:]


def _unmatched(state: AssistantState, kind: StreamEventType, tool: str) -> AssistantState:
    logger.warning("No running '%s' call for %s event; ignoring", tool, kind)
    record = UnmatchedToolEvent(type=kind, tool=tool)
    return state.model_copy(update={"unmatched": state.unmatched + (record,)})


def apply_event(state: AssistantState, event: StreamEvent) -> AssistantState:
    """Return the state that follows ``state`` after ``event``."""
    kind = event.kind
    data = event.data

    if kind is StreamEventType.THINKING:
        return state.model_copy(update={"thinking": True})

    if kind is StreamEventType.TOOL_CALL:
        call = ToolCall(
            id=f"tc_{len(state.tool_calls)}",
            tool=str(data.get("tool", "")),
            input=data.get("input"),
        )
        return state.model_copy(update={
            "thinking": False,
            "tool_calls": state.tool_calls + (call,),
        })

    if kind is StreamEventType.TOOL_PROGRESS:
        tool = str(data.get("tool", ""))
        index = find_running(state.tool_calls, tool)
        if index is None:
            return _unmatched(state, kind, tool)
        message = data.get("message")
        updated = state.tool_calls[index].model_copy(
            update={"progress": None if message is None else _as_text(message)}
        )
        return state.model_copy(
            update={"tool_calls": _replace_at(state.tool_calls, index, updated)}
        )

    if kind is StreamEventType.TOOL_RESULT:
        tool = str(data.get("tool", ""))
        index = find_running(state.tool_calls, tool)
        if index is None:
            return _unmatched(state, kind, tool)
        summary = data.get("summary")
        updated = state.tool_calls[index].model_copy(update={
            "status": ToolCallStatus.SUCCESS if data.get("success") else ToolCallStatus.ERROR,
            "summary": summary if isinstance(summary, str) and summary else None,
            "result": dict(data),
            "progress": None,
        })
        return state.model_copy(
            update={"tool_calls": _replace_at(state.tool_calls, index, updated)}
        )

    if kind is StreamEventType.TEXT:
        return state.model_copy(update={
            "thinking": False,
            "text": state.text + _as_text(data.get("content", "")),
        })

    if kind is StreamEventType.ERROR:
        return state.model_copy(update={
            "thinking": False,
            "error": normalize_error(data.get("error")),
        })

    if kind is StreamEventType.DONE:
        return state

    logger.debug("Ignoring unknown stream event type %r", event.type)
    return state


def replay(
    events: Iterable[StreamEvent], state: AssistantState | None = None
) -> AssistantState:
    """Fold a sequence of events into a state, starting from ``state``."""
    current = state if state is not None else AssistantState()
    for event in events:
        current = apply_event(current, event)
    return current


def finalize(state: AssistantState, error: str | None = None) -> ChatMessage:
    """Freeze the final state of a turn into an assistant ChatMessage.

    Partial state is kept as-is; when the turn produced no text but failed,
    the content carries the error instead.
    """
    failure = error or state.error
    content = state.text
    if not content and failure:
        content = f"Error: {failure}"
    return ChatMessage(
        role=ChatRole.ASSISTANT,
        content=content,
        tool_calls=state.tool_calls or None,
    )
