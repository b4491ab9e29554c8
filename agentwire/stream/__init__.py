"""Agent chat stream: framing, the tool-call ledger and the HTTP client."""

from agentwire.stream.client import AgentChatClient, extract_error_message
from agentwire.stream.framer import SSEFramer, iter_events
from agentwire.stream.ledger import apply_event, finalize, normalize_error, replay
from agentwire.stream.session import ChatSession

__all__ = [
    "AgentChatClient",
    "ChatSession",
    "SSEFramer",
    "apply_event",
    "extract_error_message",
    "finalize",
    "iter_events",
    "normalize_error",
    "replay",
]
