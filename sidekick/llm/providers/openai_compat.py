"""
OpenAI-compatible chat-completion provider.

Works with any endpoint that speaks the OpenAI ``/v1/chat/completions`` wire
protocol -- OpenAI itself, Azure OpenAI, vLLM, LM Studio, LocalAI, etc.

Dependencies: ``httpx`` (async HTTP client).  No ``openai`` SDK needed.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import AsyncIterator

import httpx

from sidekick.llm.errors import ProviderError
from sidekick.llm.providers.base import Provider, is_retryable_status
from sidekick.llm.types import (
    ImagePart,
    Message,
    RawToolDelta,
    SamplingConfig,
    StreamChunk,
    TextPart,
    ToolCallPart,
    ToolResultPart,
)

logger = logging.getLogger(__name__)


class OpenAICompatProvider(Provider):
    """
    Stream-capable provider for any OpenAI-API-compatible endpoint.

    Parameters
    ----------
    url:
        Base URL of the API, e.g. ``"https://api.openai.com/v1"``.
    model:
        Model identifier sent in the ``model`` field.
    api_key:
        Bearer token.  Pass ``""`` for unauthenticated local endpoints.
    timeout:
        HTTP request timeout in seconds.
    max_retries:
        Number of automatic retries on transient HTTP errors (5xx, 429) and
        transport failures.  Never applied once output has been streamed.
    retry_backoff:
        Base delay in seconds between retries (doubled per attempt).
    transport:
        Optional httpx transport, mainly for tests.
    """

    def __init__(
        self,
        url: str = "https://api.openai.com/v1",
        model: str = "gpt-5-mini",
        api_key: str = "",
        timeout: float = 120.0,
        max_retries: int = 3,
        retry_backoff: float = 0.5,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url.rstrip("/")
        self._model = model
        self._api_key = api_key
        self._timeout = timeout
        self._max_retries = max_retries
        self._retry_backoff = retry_backoff
        self._transport = transport

    # ------------------------------------------------------------------
    # Provider interface
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return "openai"

    @property
    def model(self) -> str:
        return self._model

    async def chat(
        self,
        messages: list[Message],
        tools: list[dict] | None = None,
        sampling: SamplingConfig | None = None,
    ) -> AsyncIterator[StreamChunk]:
        body = self._build_body(messages, tools, sampling or SamplingConfig())
        async for chunk in self._stream_request(body, self._build_headers()):
            yield chunk

    # ------------------------------------------------------------------
    # Request building
    # ------------------------------------------------------------------

    def _build_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
        }
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    @staticmethod
    def _wire_message(msg: Message) -> dict:
        if isinstance(msg.content, str):
            return {"role": msg.role, "content": msg.content}

        if msg.role == "tool":
            result = msg.tool_result
            if result is None:
                raise ValueError("tool message without a tool-result part")
            return {
                "role": "tool",
                "tool_call_id": result.id,
                "content": json.dumps(result.output.value),
            }

        if msg.role == "assistant":
            m: dict = {"role": "assistant", "content": msg.text or None}
            calls = msg.tool_calls
            if calls:
                m["tool_calls"] = [
                    {
                        "id": tc.id,
                        "type": "function",
                        "function": {
                            "name": tc.name,
                            "arguments": json.dumps(tc.input),
                        },
                    }
                    for tc in calls
                ]
            return m

        parts: list[dict] = []
        for part in msg.content:
            if isinstance(part, ImagePart):
                parts.append(
                    {"type": "image_url", "image_url": {"url": part.to_data_url()}}
                )
            elif isinstance(part, TextPart):
                parts.append({"type": "text", "text": part.text})
            elif isinstance(part, (ToolCallPart, ToolResultPart)):
                raise ValueError(f"{part.type} part not allowed in a {msg.role} message")
        return {"role": msg.role, "content": parts}

    def _build_body(
        self,
        messages: list[Message],
        tools: list[dict] | None,
        sampling: SamplingConfig,
    ) -> dict:
        wire_messages = [self._wire_message(m) for m in messages]
        body: dict = {
            "model": self._model,
            "messages": wire_messages,
            "stream": True,
            "temperature": sampling.temperature,
            "max_completion_tokens": sampling.max_output_tokens,
        }
        if tools:
            body["tools"] = [
                {
                    "type": "function",
                    "function": {
                        "name": t["name"],
                        "description": t["description"],
                        "parameters": t["parameters"],
                    },
                }
                for t in tools
            ]
            body["tool_choice"] = "auto"
        logger.info(
            "REQUEST: model=%s tools=%d messages=%d",
            self._model,
            len(tools) if tools else 0,
            len(wire_messages),
        )
        return body

    # ------------------------------------------------------------------
    # Streaming request
    # ------------------------------------------------------------------

    async def _stream_request(
        self,
        body: dict,
        headers: dict[str, str],
    ) -> AsyncIterator[StreamChunk]:
        url = f"{self._url}/chat/completions"

        last_error: Exception | None = None
        for attempt in range(1 + self._max_retries):
            if attempt:
                await asyncio.sleep(self._retry_backoff * 2 ** (attempt - 1))
            yielded = False
            try:
                async with httpx.AsyncClient(
                    timeout=self._timeout, transport=self._transport
                ) as client:
                    async with client.stream(
                        "POST", url, json=body, headers=headers
                    ) as response:
                        if is_retryable_status(response.status_code):
                            # Read body so the connection is released.
                            await response.aread()
                            last_error = httpx.HTTPStatusError(
                                f"HTTP {response.status_code}",
                                request=response.request,
                                response=response,
                            )
                            logger.warning(
                                "Retryable status %d (attempt %d)",
                                response.status_code,
                                attempt + 1,
                            )
                            continue

                        if response.is_error:
                            await response.aread()
                        response.raise_for_status()

                        async for chunk in self._parse_sse_stream(response):
                            yielded = True
                            yield chunk
                        return  # success
            except httpx.TransportError as exc:
                last_error = exc
                if yielded or attempt >= self._max_retries:
                    raise
                logger.warning("Transport error (attempt %d): %s", attempt + 1, exc)

        if last_error is not None:
            raise last_error

    async def _parse_sse_stream(
        self, response: httpx.Response
    ) -> AsyncIterator[StreamChunk]:
        """
        Parse Server-Sent Events from the response line stream.

        Each SSE event has the form::

            data: {json}\\n\\n

        The sentinel ``data: [DONE]`` terminates the stream.
        """
        async for line in response.aiter_lines():
            line = line.rstrip("\r")
            if not line or not line.startswith("data:"):
                continue

            data_str = line[len("data:"):].strip()
            if data_str == "[DONE]":
                yield StreamChunk(done=True)
                return

            try:
                data = json.loads(data_str)
            except json.JSONDecodeError:
                logger.warning("Failed to parse SSE data: %s", data_str[:200])
                continue

            if "error" in data:
                err = data["error"]
                detail = err.get("message") if isinstance(err, dict) else err
                raise ProviderError(f"Provider stream error: {detail}")

            chunk = self._sse_data_to_chunk(data)
            if chunk is not None:
                yield chunk

        # The stream ended without [DONE].
        yield StreamChunk(done=True)

    def _sse_data_to_chunk(self, data: dict) -> StreamChunk | None:
        """Convert a parsed SSE ``data`` payload into a ``StreamChunk``."""
        choices = data.get("choices")
        if not choices:
            return None

        choice = choices[0]
        delta = choice.get("delta", {})
        finish_reason = choice.get("finish_reason")

        text_delta = delta.get("content") or ""

        tool_deltas: list[RawToolDelta] | None = None
        raw_tcs = delta.get("tool_calls")
        if raw_tcs:
            tool_deltas = []
            for raw_tc in raw_tcs:
                func = raw_tc.get("function", {})
                tool_deltas.append(
                    RawToolDelta(
                        call_index=raw_tc.get("index", 0),
                        id=raw_tc.get("id"),
                        name_delta=func.get("name", "") or "",
                        args_delta=func.get("arguments", "") or "",
                    )
                )

        # finish_reason closes every open call; the router flushes the
        # assembler at stream end, so only the flag needs to travel.
        return StreamChunk(
            delta=text_delta,
            tool_deltas=tool_deltas,
            done=finish_reason is not None,
        )
