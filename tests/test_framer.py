"""Tests for SSE framing of the agent chat stream."""

from __future__ import annotations

import logging

import pytest

from agentwire.schemas.streaming import StreamEvent, StreamEventType
from agentwire.stream.framer import SSEFramer, iter_events

_STREAM = (
    b'event: thinking\ndata: {}\n\n'
    b'event: tool_call\ndata: {"tool": "search", "input": {"q": "fjord"}}\n\n'
    b'event: text\ndata: {"content": "Hei \xc3\xa5 du"}\n\n'
    b'event: done\ndata: {}\n\n'
)


def _frame_all(buffers: list[bytes]) -> list[StreamEvent]:
    framer = SSEFramer()
    events: list[StreamEvent] = []
    for buf in buffers:
        events.extend(framer.feed(buf))
    events.extend(framer.close())
    return events


def _split_at(data: bytes, *cuts: int) -> list[bytes]:
    bounds = [0, *cuts, len(data)]
    return [data[a:b] for a, b in zip(bounds, bounds[1:])]


async def _aiter(buffers: list[bytes]):
    for buf in buffers:
        yield buf


class TestFeed:
    def test_whole_stream_in_one_buffer(self):
        events = _frame_all([_STREAM])
        assert [e.type for e in events] == ["thinking", "tool_call", "text", "done"]
        assert events[1].data == {"tool": "search", "input": {"q": "fjord"}}
        assert events[2].data["content"] == "Hei å du"

    def test_split_invariance_every_byte_boundary(self):
        expected = _frame_all([_STREAM])
        for cut in range(1, len(_STREAM)):
            assert _frame_all(_split_at(_STREAM, cut)) == expected

    def test_one_byte_at_a_time(self):
        buffers = [_STREAM[i:i + 1] for i in range(len(_STREAM))]
        assert _frame_all(buffers) == _frame_all([_STREAM])

    def test_multibyte_character_split_across_buffers(self):
        # "å" is two bytes; cut between them
        cut = _STREAM.index(b"\xc3\xa5") + 1
        events = _frame_all(_split_at(_STREAM, cut))
        assert events[2].data["content"] == "Hei å du"

    def test_partial_line_is_held_back(self):
        framer = SSEFramer()
        assert framer.feed(b'event: text\ndata: {"content": "a') == []
        events = framer.feed(b'b"}\n')
        assert events == [StreamEvent(type="text", data={"content": "ab"})]

    def test_crlf_line_endings(self):
        events = _frame_all([b'event: text\r\ndata: {"content": "x"}\r\n\r\n'])
        assert events == [StreamEvent(type="text", data={"content": "x"})]

    def test_empty_buffer_yields_nothing(self):
        assert SSEFramer().feed(b"") == []

    def test_leading_byte_order_mark_is_stripped(self):
        events = _frame_all([b"\xef\xbb\xbfevent: thinking\ndata: {}\n\n"])
        assert events == [StreamEvent(type="thinking", data={})]
        assert events[0].kind is StreamEventType.THINKING

    def test_byte_order_mark_split_across_buffers(self):
        data = b"\xef\xbb\xbf" + _STREAM
        expected = _frame_all([_STREAM])
        for cut in (1, 2, 3):
            assert _frame_all(_split_at(data, cut)) == expected


class TestMalformedInput:
    def test_malformed_json_is_skipped(self, caplog):
        data = (
            b'event: text\ndata: {"content": "a"}\n'
            b'event: text\ndata: {not json\n'
            b'event: text\ndata: {"content": "b"}\n'
        )
        framer = SSEFramer()
        with caplog.at_level(logging.WARNING, logger="agentwire.stream.framer"):
            events = framer.feed(data)
        assert [e.data["content"] for e in events] == ["a", "b"]
        assert framer.malformed_count == 1
        assert "malformed" in caplog.text

    def test_comments_and_unknown_lines_ignored(self):
        data = b': keep-alive\nid: 7\nevent: text\ndata: {"content": "x"}\n'
        assert _frame_all([data]) == [StreamEvent(type="text", data={"content": "x"})]

    def test_data_without_event_line_uses_message_type(self):
        events = _frame_all([b'data: {"a": 1}\n'])
        assert events == [StreamEvent(type="message", data={"a": 1})]

    def test_non_object_payload_is_wrapped(self):
        events = _frame_all([b'event: text\ndata: "plain"\n'])
        assert events[0].data == {"value": "plain"}

    def test_unknown_event_type_has_no_kind(self):
        events = _frame_all([b'event: heartbeat\ndata: {}\n'])
        assert events[0].type == "heartbeat"
        assert events[0].kind is None


class TestDoneAndClose:
    def test_done_sets_flag(self):
        framer = SSEFramer()
        framer.feed(_STREAM)
        assert framer.saw_done

    def test_no_done_leaves_flag_unset(self):
        framer = SSEFramer()
        framer.feed(b'event: text\ndata: {"content": "x"}\n')
        framer.close()
        assert not framer.saw_done

    def test_close_flushes_unterminated_line(self):
        framer = SSEFramer()
        assert framer.feed(b'event: done\ndata: {}') == []
        assert framer.close() == [StreamEvent(type="done", data={})]
        assert framer.saw_done

    def test_close_is_idempotent(self):
        framer = SSEFramer()
        framer.feed(b'event: done\ndata: {}')
        framer.close()
        assert framer.close() == []

    def test_feed_after_close_raises(self):
        framer = SSEFramer()
        framer.close()
        with pytest.raises(RuntimeError):
            framer.feed(b"data: {}\n")


class TestIterEvents:
    @pytest.mark.asyncio
    async def test_frames_async_source(self):
        framer = SSEFramer()
        events = [e async for e in iter_events(_aiter(_split_at(_STREAM, 5, 40, 90)), framer)]
        assert [e.kind for e in events] == [
            StreamEventType.THINKING,
            StreamEventType.TOOL_CALL,
            StreamEventType.TEXT,
            StreamEventType.DONE,
        ]
        assert framer.saw_done

    @pytest.mark.asyncio
    async def test_missing_done_is_logged(self, caplog):
        source = _aiter([b'event: text\ndata: {"content": "x"}\n'])
        with caplog.at_level(logging.WARNING, logger="agentwire.stream.framer"):
            events = [e async for e in iter_events(source)]
        assert len(events) == 1
        assert "without a 'done' event" in caplog.text
