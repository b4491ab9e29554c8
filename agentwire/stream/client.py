"""Streaming chat client for the remote agent.

Posts the conversation to the agent's /chat endpoint and reads the reply
as an event stream. Each framed event is applied to an explicit
AssistantState through the ledger reducer; callers either iterate the
states as they are produced or run a whole turn into a TurnResult.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Callable, Sequence
from typing import Any

import httpx

from agentwire.errors import ChatRequestError
from agentwire.schemas.config import ClientConfig
from agentwire.schemas.streaming import AssistantState, ChatMessage, TurnResult
from agentwire.stream.framer import SSEFramer, iter_events
from agentwire.stream.ledger import apply_event, finalize

logger = logging.getLogger(__name__)

StateListener = Callable[[AssistantState], Any]


def extract_error_message(response: httpx.Response) -> str:
    """Pull a readable error out of a rejected chat response.

    Uses the JSON body's ``error`` field when present (strings as-is,
    objects serialized); otherwise falls back to the status code.
    """
    default = f"Request failed: {response.status_code}"
    try:
        body = response.json()
    except ValueError:
        return default
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, str) and error:
        return error
    if error:
        return json.dumps(error)
    return default


class AgentChatClient:
    """Client for one agent endpoint.

    One turn is streamed at a time per client; the AssistantState of that
    turn is owned by the coroutine running it.
    """

    def __init__(
        self,
        config: ClientConfig,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(connect=10.0, read=None, write=30.0, pool=None),
        )

    @property
    def config(self) -> ClientConfig:
        return self._config

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> AgentChatClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def build_payload(
        self,
        messages: Sequence[ChatMessage],
        graph_id: str | None = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "userId": self._config.agent.user_id,
            "messages": [m.to_wire() for m in messages],
        }
        if graph_id:
            payload["graphId"] = graph_id
        return payload

    async def iter_states(
        self,
        messages: Sequence[ChatMessage],
        graph_id: str | None = None,
        *,
        framer: SSEFramer | None = None,
    ) -> AsyncIterator[AssistantState]:
        """Stream one turn, yielding the state after every applied event.

        Raises:
            ChatRequestError: If the agent rejects the request (non-2xx).
            httpx.HTTPError: On connection or read failures.
        """
        framer = framer or SSEFramer()
        payload = self.build_payload(messages, graph_id)
        url = self._config.agent.chat_url

        logger.info("POST %s (%d messages)", url, len(messages))
        async with self._client.stream(
            "POST", url, json=payload, headers={"Accept": "text/event-stream"},
        ) as response:
            if not response.is_success:
                await response.aread()
                raise ChatRequestError(
                    extract_error_message(response), status_code=response.status_code,
                )

            state = AssistantState()
            async for event in iter_events(response.aiter_bytes(), framer):
                state = apply_event(state, event)
                yield state

    async def run_turn(
        self,
        messages: Sequence[ChatMessage],
        graph_id: str | None = None,
        *,
        on_state: StateListener | None = None,
        timeout: float | None = None,
    ) -> TurnResult:
        """Stream a whole turn and finalize it.

        Request failures and timeouts do not raise: the turn ends with the
        last applied state preserved and ``TurnResult.error`` set.
        """
        framer = SSEFramer()
        state = AssistantState()
        request_error: str | None = None
        limit = timeout or self._config.agent.timeout

        try:
            async with asyncio.timeout(limit):
                async for state in self.iter_states(messages, graph_id, framer=framer):
                    if on_state is not None:
                        result = on_state(state)
                        if asyncio.iscoroutine(result):
                            await result
        except TimeoutError:
            request_error = f"Request timed out after {limit:.0f}s"
        except ChatRequestError as e:
            request_error = str(e)
        except httpx.HTTPError as e:
            request_error = f"Network error: {str(e) or type(e).__name__}"

        if request_error is not None:
            logger.error("Chat turn failed: %s", request_error)
            state = state.model_copy(update={"thinking": False, "error": request_error})

        return TurnResult(
            message=finalize(state),
            state=state,
            completed=request_error is None and framer.saw_done,
            error=request_error or state.error,
        )
