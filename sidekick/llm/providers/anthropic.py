"""
Anthropic Messages API provider.

Speaks ``POST /v1/messages`` with ``stream: true`` and translates the
``content_block_*`` server-sent events into ``StreamChunk`` objects, the same
way the OpenAI-compatible provider does.

Dependencies: ``httpx`` only.
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
)

logger = logging.getLogger(__name__)

ANTHROPIC_VERSION = "2023-06-01"


class AnthropicProvider(Provider):
    """
    Stream-capable provider for the Anthropic Messages API.

    Parameters mirror ``OpenAICompatProvider``; *url* defaults to
    ``https://api.anthropic.com/v1``.
    """

    def __init__(
        self,
        url: str = "https://api.anthropic.com/v1",
        model: str = "claude-haiku-4-5-20251001",
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

    @property
    def name(self) -> str:
        return "anthropic"

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
        return {
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
            "x-api-key": self._api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }

    @staticmethod
    def _wire_blocks(msg: Message) -> list[dict]:
        if isinstance(msg.content, str):
            return [{"type": "text", "text": msg.content}] if msg.content else []

        blocks: list[dict] = []
        for part in msg.content:
            if isinstance(part, TextPart):
                if part.text:
                    blocks.append({"type": "text", "text": part.text})
            elif isinstance(part, ImagePart):
                blocks.append(
                    {
                        "type": "image",
                        "source": {
                            "type": "base64",
                            "media_type": part.media_type,
                            "data": part.to_base64(),
                        },
                    }
                )
            elif isinstance(part, ToolCallPart):
                blocks.append(
                    {"type": "tool_use", "id": part.id, "name": part.name, "input": part.input}
                )
            else:
                blocks.append(
                    {
                        "type": "tool_result",
                        "tool_use_id": part.id,
                        "content": json.dumps(part.output.value),
                    }
                )
        return blocks

    def _wire_messages(self, messages: list[Message]) -> tuple[str, list[dict]]:
        """Split out the system prompt and merge consecutive same-role turns.

        Tool results travel as ``user`` turns, so several results in a row
        (and a following user message) collapse into a single turn.
        """
        system_parts: list[str] = []
        wire: list[dict] = []
        for msg in messages:
            if msg.role == "system":
                system_parts.append(msg.text)
                continue
            role = "user" if msg.role in ("user", "tool") else "assistant"
            blocks = self._wire_blocks(msg)
            if not blocks:
                continue
            if wire and wire[-1]["role"] == role:
                wire[-1]["content"].extend(blocks)
            else:
                wire.append({"role": role, "content": blocks})
        return "\n\n".join(system_parts), wire

    def _build_body(
        self,
        messages: list[Message],
        tools: list[dict] | None,
        sampling: SamplingConfig,
    ) -> dict:
        system, wire_messages = self._wire_messages(messages)
        body: dict = {
            "model": self._model,
            "messages": wire_messages,
            "max_tokens": sampling.max_output_tokens,
            "temperature": sampling.temperature,
            "stream": True,
        }
        if system:
            body["system"] = system
        if tools:
            body["tools"] = [
                {
                    "name": t["name"],
                    "description": t["description"],
                    "input_schema": t["parameters"],
                }
                for t in tools
            ]
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
        url = f"{self._url}/messages"

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
                        return
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
        Parse the Messages API event stream.

        Only ``data:`` lines matter; each payload carries its own ``type``.
        """
        tool_blocks: set[int] = set()
        async for line in response.aiter_lines():
            line = line.rstrip("\r")
            if not line.startswith("data:"):
                continue
            try:
                data = json.loads(line[len("data:"):].strip())
            except json.JSONDecodeError:
                logger.warning("Failed to parse SSE data: %s", line[:200])
                continue

            event_type = data.get("type")
            if event_type == "error":
                err = data.get("error") or {}
                raise ProviderError(
                    f"Provider stream error: {err.get('type', '')} {err.get('message', '')}".strip()
                )
            if event_type == "message_stop":
                yield StreamChunk(done=True)
                return

            chunk = self._event_to_chunk(data, tool_blocks)
            if chunk is not None:
                yield chunk

        yield StreamChunk(done=True)

    def _event_to_chunk(self, data: dict, tool_blocks: set[int]) -> StreamChunk | None:
        event_type = data.get("type")
        index = data.get("index", 0)

        if event_type == "content_block_start":
            block = data.get("content_block", {})
            if block.get("type") == "tool_use":
                tool_blocks.add(index)
                return StreamChunk(
                    tool_deltas=[
                        RawToolDelta(
                            call_index=index,
                            id=block.get("id"),
                            name_delta=block.get("name", ""),
                        )
                    ]
                )
            if block.get("type") == "text" and block.get("text"):
                return StreamChunk(delta=block["text"])
            return None

        if event_type == "content_block_delta":
            delta = data.get("delta", {})
            if delta.get("type") == "text_delta":
                return StreamChunk(delta=delta.get("text", ""))
            if delta.get("type") == "input_json_delta":
                return StreamChunk(
                    tool_deltas=[
                        RawToolDelta(call_index=index, args_delta=delta.get("partial_json", ""))
                    ]
                )
            return None

        if event_type == "content_block_stop" and index in tool_blocks:
            tool_blocks.discard(index)
            return StreamChunk(tool_deltas=[RawToolDelta(call_index=index, done=True)])

        return None
