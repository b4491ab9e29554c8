"""Tests for the tool-call ledger reducer."""

from __future__ import annotations

import logging

import pytest
from pydantic import ValidationError

from agentwire.schemas.streaming import (
    AssistantState,
    ChatRole,
    StreamEvent,
    StreamEventType,
    ToolCallStatus,
)
from agentwire.stream.ledger import (
    apply_event,
    finalize,
    find_running,
    normalize_error,
    replay,
)


# ── Factories ──────────────────────────────────────────────────────


def _ev(type_: str, **data) -> StreamEvent:
    return StreamEvent(type=type_, data=data)


def _two_running_create_nodes() -> AssistantState:
    return replay([
        _ev("tool_call", tool="create_node", input={"label": "A"}),
        _ev("tool_call", tool="create_node", input={"label": "B"}),
    ])


class TestThinkingAndText:
    def test_thinking_sets_flag(self):
        state = apply_event(AssistantState(), _ev("thinking"))
        assert state.thinking is True

    def test_text_appends_and_clears_thinking(self):
        state = replay([_ev("thinking"), _ev("text", content="Hel"), _ev("text", content="lo")])
        assert state.text == "Hello"
        assert state.thinking is False

    def test_non_string_text_is_serialized(self):
        state = apply_event(AssistantState(), _ev("text", content={"a": 1}))
        assert state.text == '{"a": 1}'

    def test_input_state_is_not_mutated(self):
        before = AssistantState()
        after = apply_event(before, _ev("text", content="x"))
        assert before.text == ""
        assert after is not before

    def test_state_is_frozen(self):
        with pytest.raises(ValidationError):
            AssistantState().text = "x"


class TestToolCalls:
    def test_tool_call_appends_running_entry(self):
        state = replay([_ev("thinking"), _ev("tool_call", tool="search", input={"q": "x"})])
        assert state.thinking is False
        assert len(state.tool_calls) == 1
        call = state.tool_calls[0]
        assert call.tool == "search"
        assert call.input == {"q": "x"}
        assert call.status == ToolCallStatus.RUNNING
        assert call.id == "tc_0"

    def test_ids_are_unique_within_turn(self):
        state = _two_running_create_nodes()
        assert [c.id for c in state.tool_calls] == ["tc_0", "tc_1"]

    def test_result_resolves_most_recent_running_call(self):
        state = apply_event(
            _two_running_create_nodes(),
            _ev("tool_result", tool="create_node", success=True, summary="made B"),
        )
        a, b = state.tool_calls
        assert a.status == ToolCallStatus.RUNNING
        assert b.status == ToolCallStatus.SUCCESS
        assert b.summary == "made B"

    def test_second_result_resolves_earlier_call(self):
        state = replay(
            [
                _ev("tool_result", tool="create_node", success=True),
                _ev("tool_result", tool="create_node", success=False),
            ],
            _two_running_create_nodes(),
        )
        assert [c.status for c in state.tool_calls] == [
            ToolCallStatus.ERROR,
            ToolCallStatus.SUCCESS,
        ]

    def test_progress_targets_most_recent_running_call(self):
        state = apply_event(
            _two_running_create_nodes(),
            _ev("tool_progress", tool="create_node", message="50%"),
        )
        assert state.tool_calls[0].progress is None
        assert state.tool_calls[1].progress == "50%"

    def test_progress_skips_resolved_calls(self):
        state = replay(
            [
                _ev("tool_result", tool="create_node", success=True),
                _ev("tool_progress", tool="create_node", message="still going"),
            ],
            _two_running_create_nodes(),
        )
        assert state.tool_calls[0].progress == "still going"
        assert state.tool_calls[1].progress is None

    def test_result_clears_progress_and_keeps_payload(self):
        state = replay([
            _ev("tool_call", tool="X"),
            _ev("tool_progress", tool="X", message="half"),
            _ev("tool_result", tool="X", success=True, summary="ok", rows=3),
        ])
        call = state.tool_calls[0]
        assert call.progress is None
        assert call.result == {"tool": "X", "success": True, "summary": "ok", "rows": 3}

    def test_missing_success_flag_is_error(self):
        state = replay([_ev("tool_call", tool="X"), _ev("tool_result", tool="X")])
        assert state.tool_calls[0].status == ToolCallStatus.ERROR

    def test_find_running_scans_backward(self):
        state = _two_running_create_nodes()
        assert find_running(state.tool_calls, "create_node") == 1
        assert find_running(state.tool_calls, "other") is None


class TestUnmatchedEvents:
    def test_unmatched_result_leaves_calls_untouched(self, caplog):
        state = replay([_ev("tool_call", tool="A")])
        with caplog.at_level(logging.WARNING, logger="agentwire.stream.ledger"):
            after = apply_event(state, _ev("tool_result", tool="B", success=True))
        assert after.tool_calls == state.tool_calls
        assert len(after.unmatched) == 1
        assert after.unmatched[0].type == StreamEventType.TOOL_RESULT
        assert after.unmatched[0].tool == "B"
        assert "No running 'B' call" in caplog.text

    def test_progress_after_resolution_is_unmatched(self):
        state = replay([
            _ev("tool_call", tool="A"),
            _ev("tool_result", tool="A", success=True),
            _ev("tool_progress", tool="A", message="late"),
        ])
        assert state.tool_calls[0].progress is None
        assert state.unmatched[0].type == StreamEventType.TOOL_PROGRESS


class TestErrorsAndTermination:
    def test_error_string(self):
        state = replay([_ev("thinking"), _ev("error", error="boom")])
        assert state.error == "boom"
        assert state.thinking is False

    def test_error_object_with_message(self):
        state = apply_event(AssistantState(), _ev("error", error={"message": "bad", "code": 1}))
        assert state.error == "bad"

    def test_error_object_without_message_is_serialized(self):
        assert normalize_error({"code": 1}) == '{"code": 1}'

    def test_done_does_not_change_state(self):
        state = replay([_ev("thinking"), _ev("text", content="x")])
        assert apply_event(state, _ev("done")) == state

    def test_unknown_event_is_ignored(self):
        state = replay([_ev("text", content="x")])
        assert apply_event(state, _ev("heartbeat", n=1)) == state


class TestEndToEnd:
    def test_single_tool_turn(self):
        state = replay([
            _ev("thinking"),
            _ev("tool_call", tool="X"),
            _ev("tool_progress", tool="X", message="50%"),
            _ev("tool_result", tool="X", success=True, summary="done"),
            _ev("text", content="Hello"),
            _ev("done"),
        ])
        assert state.thinking is False
        assert state.text == "Hello"
        assert len(state.tool_calls) == 1
        call = state.tool_calls[0]
        assert call.tool == "X"
        assert call.status == ToolCallStatus.SUCCESS
        assert call.summary == "done"
        assert call.progress is None
        assert state.error is None


class TestFinalize:
    def test_finalize_keeps_text_and_tool_calls(self):
        state = replay([
            _ev("tool_call", tool="X"),
            _ev("tool_result", tool="X", success=True),
            _ev("text", content="Hi"),
        ])
        message = finalize(state)
        assert message.role == ChatRole.ASSISTANT
        assert message.content == "Hi"
        assert message.tool_calls == state.tool_calls

    def test_finalize_error_without_text(self):
        message = finalize(AssistantState(), error="Network error: refused")
        assert message.content == "Error: Network error: refused"
        assert message.tool_calls is None

    def test_finalize_keeps_partial_text_on_error(self):
        state = replay([_ev("text", content="partial"), _ev("error", error="cut")])
        assert finalize(state).content == "partial"
