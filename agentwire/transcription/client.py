"""HTTP client for the remote speech-to-text service.

Sends one audio payload per call as a multipart form (``file``, ``model``,
``userId`` and an optional ``language``) and returns the transcribed
text. Transient failures are retried with exponential backoff; anything
else raises TranscriptionError immediately.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from agentwire.errors import TranscriptionError
from agentwire.schemas.config import ClientConfig

logger = logging.getLogger(__name__)


def _error_detail(payload: Any) -> str | None:
    """Error text from a JSON body shaped ``{error}`` or ``{message}``."""
    if not isinstance(payload, dict):
        return None
    error = payload.get("error")
    if isinstance(error, str) and error:
        return error
    if isinstance(error, dict):
        message = error.get("message")
        if isinstance(message, str) and message:
            return message
    message = payload.get("message")
    if isinstance(message, str) and message:
        return message
    return None


def _response_error(response: httpx.Response) -> TranscriptionError:
    try:
        detail = _error_detail(response.json())
    except ValueError:
        detail = None
    if detail is None:
        detail = response.text.strip() or response.reason_phrase
    status = response.status_code
    return TranscriptionError(
        f"HTTP {status}: {detail}",
        status_code=status,
        transient=status == 429 or status >= 500,
    )


class TranscriptionClient:
    """Async client for one transcription endpoint."""

    def __init__(
        self,
        config: ClientConfig,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._settings = config.transcription
        self._owns_client = http_client is None
        headers: dict[str, str] = {}
        if self._settings.api_token:
            headers["Authorization"] = f"Bearer {self._settings.api_token}"
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(self._settings.timeout, connect=10.0),
        )
        self._auth_headers = headers

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> TranscriptionClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def transcribe(
        self,
        data: bytes,
        filename: str,
        mime_type: str = "audio/wav",
        language: str | None = None,
    ) -> str:
        """Transcribe one audio payload.

        Raises:
            TranscriptionError: On network failure, non-2xx status or a
                response body without text, after retries are exhausted.
        """
        attempts = self._settings.max_attempts
        last_error: TranscriptionError | None = None

        for attempt in range(attempts):
            try:
                return await self._post(data, filename, mime_type, language)
            except TranscriptionError as e:
                if not e.transient:
                    raise
                last_error = e

            if attempt < attempts - 1:
                backoff = self._settings.backoff * (2**attempt)
                logger.warning(
                    "Transcription retry %d/%d for %s (%s, backoff: %.1fs)",
                    attempt + 1, attempts, filename, last_error, backoff,
                )
                await asyncio.sleep(backoff)

        logger.warning(
            "Transcription of %s failed after %d attempt(s): %s", filename, attempts, last_error,
        )
        raise last_error

    async def _post(
        self,
        data: bytes,
        filename: str,
        mime_type: str,
        language: str | None,
    ) -> str:
        form: dict[str, str] = {
            "model": self._settings.model,
            "userId": self._config.agent.user_id,
        }
        if language:
            form["language"] = language
        files = {"file": (filename, data, mime_type)}
        url = self._config.transcription_url

        logger.info("POST %s file=%s (%d bytes) model=%s", url, filename, len(data), form["model"])
        try:
            response = await self._client.post(
                url, data=form, files=files, headers=self._auth_headers,
            )
        except httpx.HTTPError as e:
            raise TranscriptionError(
                f"Network error: {str(e) or type(e).__name__}", transient=True,
            ) from e

        if not response.is_success:
            raise _response_error(response)

        try:
            payload = response.json()
        except ValueError as e:
            raise TranscriptionError("Malformed response: body is not JSON") from e

        text = payload.get("text") if isinstance(payload, dict) else None
        if not isinstance(text, str):
            detail = _error_detail(payload)
            raise TranscriptionError(detail or "Malformed response: missing 'text'")
        return text.strip()

    async def fetch_audio(self, url: str) -> bytes:
        """Download an audio file referenced by the agent.

        Raises:
            TranscriptionError: If the download fails.
        """
        try:
            response = await self._client.get(url, follow_redirects=True)
        except httpx.HTTPError as e:
            raise TranscriptionError(f"Could not download {url}: {e}") from e
        if not response.is_success:
            raise TranscriptionError(
                f"Could not download {url}: HTTP {response.status_code}",
                status_code=response.status_code,
            )
        return response.content
