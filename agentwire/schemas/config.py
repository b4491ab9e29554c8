"""Client configuration schemas.

Loaded from defaults.toml by agentwire.settings, with environment
overrides applied on top.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class AgentEndpointConfig(BaseModel):
    """Where and how to reach the remote agent."""

    base_url: str = Field(
        default="https://agent.vegvisr.org", description="Agent API base URL"
    )
    user_id: str = Field(default="", description="Caller identifier sent with requests")
    timeout: float = Field(
        default=300.0, gt=0, description="Upper bound in seconds for one streamed turn"
    )

    @property
    def chat_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/chat"


class TranscriptionConfig(BaseModel):
    """Remote speech service and chunking parameters."""

    url: str = Field(default="", description="Transcription endpoint (empty = <agent>/audio)")
    model: str = Field(default="whisper-1", description="Speech model name")
    api_token: str = Field(default="", description="Bearer token, if the service needs one")
    chunk_seconds: float = Field(
        default=120.0, gt=0, description="Maximum duration of one transcribed chunk"
    )
    timeout: float = Field(default=120.0, gt=0, description="Per-request timeout in seconds")
    max_attempts: int = Field(
        default=3, ge=1, description="Attempts per chunk on transient failures"
    )
    backoff: float = Field(default=1.0, ge=0.0, description="Base retry backoff in seconds")


class ClientConfig(BaseModel):
    """Top-level client configuration."""

    agent: AgentEndpointConfig = Field(default_factory=AgentEndpointConfig)
    transcription: TranscriptionConfig = Field(default_factory=TranscriptionConfig)

    @property
    def transcription_url(self) -> str:
        if self.transcription.url:
            return self.transcription.url
        return f"{self.agent.base_url.rstrip('/')}/audio"
