"""agentwire: streaming agent-turn client and chunked audio transcription."""

__version__ = "0.1.0"
