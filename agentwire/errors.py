"""Application-specific exception types.

Per-unit failures (a malformed stream line, one failing audio chunk) are
recovered where they happen and never surface as these exceptions to the
caller. These types cover failures that end a whole operation.
"""

from __future__ import annotations


class AgentwireError(Exception):
    """Base exception for all application-specific errors."""


class ChatRequestError(AgentwireError):
    """Raised when the primary chat request is rejected by the agent."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AudioDecodeError(AgentwireError):
    """Raised when audio data is unsupported or corrupt."""


class TranscriptionError(AgentwireError):
    """Raised when a single transcription call fails.

    ``transient`` marks failures worth retrying: connection errors,
    rate limits and server-side errors.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        *,
        transient: bool = False,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.transient = transient
