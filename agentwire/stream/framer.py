"""Byte-stream framing for the agent chat stream.

Turns raw byte buffers, split at arbitrary points by the network, into
ordered StreamEvent records. The wire format is a sequence of two-line
records::

    event: <type>
    data: <json>

Lines are only interpreted once their terminating newline has arrived;
the trailing fragment of each buffer is held back until the next one.
"""

from __future__ import annotations

import codecs
import json
import logging
from collections.abc import AsyncIterable, AsyncIterator

from agentwire.schemas.streaming import StreamEvent, StreamEventType

logger = logging.getLogger(__name__)

_EVENT_PREFIX = "event:"
_DATA_PREFIX = "data:"

# SSE default when a data line arrives with no preceding event line
_DEFAULT_EVENT = "message"


class SSEFramer:
    """Incremental decoder from byte buffers to StreamEvent records.

    Feed buffers in arrival order with :meth:`feed` and call :meth:`close`
    once the source is exhausted. The framer never raises on bad input:
    malformed data lines are logged, counted and skipped.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8-sig")(errors="replace")
        self._buffer = ""
        self._current_event = _DEFAULT_EVENT
        self._saw_done = False
        self._malformed = 0
        self._closed = False

    @property
    def saw_done(self) -> bool:
        """Whether a ``done`` record has been framed."""
        return self._saw_done

    @property
    def malformed_count(self) -> int:
        """Number of data lines dropped because they were not valid JSON."""
        return self._malformed

    def feed(self, chunk: bytes) -> list[StreamEvent]:
        """Append one buffer and return the records it completed."""
        if self._closed:
            raise RuntimeError("feed() called on a closed framer")
        if not chunk:
            return []

        self._buffer += self._decoder.decode(chunk)
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()

        events: list[StreamEvent] = []
        for line in lines:
            event = self._consume_line(line)
            if event is not None:
                events.append(event)
        return events

    def close(self) -> list[StreamEvent]:
        """Flush the decoder and any final unterminated line."""
        if self._closed:
            return []
        self._closed = True

        self._buffer += self._decoder.decode(b"", final=True)
        tail, self._buffer = self._buffer, ""
        if not tail:
            return []
        event = self._consume_line(tail)
        return [event] if event is not None else []

    def _consume_line(self, line: str) -> StreamEvent | None:
        line = line.rstrip("\r")
        if not line or line.startswith(":"):
            return None

        if line.startswith(_EVENT_PREFIX):
            self._current_event = line[len(_EVENT_PREFIX):].strip()
            return None

        if not line.startswith(_DATA_PREFIX):
            logger.debug("Ignoring unrecognized stream line: %.80s", line)
            return None

        raw = line[len(_DATA_PREFIX):].strip()
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as e:
            self._malformed += 1
            logger.warning(
                "Skipping malformed '%s' event payload (%s): %.120s",
                self._current_event, e.msg, raw,
            )
            return None

        if not isinstance(payload, dict):
            payload = {"value": payload}

        if self._current_event == StreamEventType.DONE:
            self._saw_done = True
        return StreamEvent(type=self._current_event, data=payload)


async def iter_events(
    source: AsyncIterable[bytes],
    framer: SSEFramer | None = None,
) -> AsyncIterator[StreamEvent]:
    """Frame an async byte source into StreamEvent records.

    Pass an explicit ``framer`` to inspect :attr:`SSEFramer.saw_done`
    after the iterator is exhausted; an end-of-stream without ``done`` is
    an abnormal termination and is logged, not raised.
    """
    framer = framer or SSEFramer()
    async for chunk in source:
        for event in framer.feed(chunk):
            yield event
    for event in framer.close():
        yield event

    if not framer.saw_done:
        logger.warning("Stream ended without a 'done' event")
