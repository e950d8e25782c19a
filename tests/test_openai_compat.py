"""Tests for OpenAICompatProvider against a mocked HTTP transport."""

from __future__ import annotations

from functools import partial

import httpx
import pytest

from sidekick.llm.errors import ProviderError
from sidekick.llm.providers.openai_compat import OpenAICompatProvider
from sidekick.llm.types import (
    ImagePart,
    Message,
    ResultEnvelope,
    SamplingConfig,
    TextPart,
    ToolCallPart,
    ToolResultPart,
    user_message,
)
from tests.mock_http import Recorder, sse, sse_response


def _content(text, finish=None):
    return {"choices": [{"delta": {"content": text}, "finish_reason": finish}]}


class BrokenStream(httpx.AsyncByteStream):
    """Yields one SSE event, then drops the connection."""

    async def __aiter__(self):
        yield sse(_content("Hel"))
        raise httpx.ReadError("connection reset")


def _provider(recorder, **kwargs) -> OpenAICompatProvider:
    kwargs.setdefault("retry_backoff", 0)
    return OpenAICompatProvider(
        url="https://llm.test/v1",
        model="test-model",
        api_key="sk-test",
        transport=recorder.transport(),
        **kwargs,
    )


async def _collect(provider, messages=None, tools=None, sampling=None):
    messages = messages or [user_message("hi")]
    return [c async for c in provider.chat(messages, tools=tools, sampling=sampling)]


class TestStreaming:
    async def test_text_stream(self):
        rec = Recorder(sse_response(_content("Hel"), _content("lo", "stop"), "[DONE]"))
        chunks = await _collect(_provider(rec))

        assert "".join(c.delta for c in chunks) == "Hello"
        assert chunks[-1].done is True

    async def test_tool_call_deltas(self):
        rec = Recorder(
            sse_response(
                {
                    "choices": [
                        {
                            "delta": {
                                "tool_calls": [
                                    {
                                        "index": 0,
                                        "id": "call_1",
                                        "function": {"name": "echo", "arguments": ""},
                                    }
                                ]
                            }
                        }
                    ]
                },
                {
                    "choices": [
                        {
                            "delta": {
                                "tool_calls": [
                                    {"index": 0, "function": {"arguments": '{"message": "x"}'}}
                                ]
                            },
                            "finish_reason": "tool_calls",
                        }
                    ]
                },
                "[DONE]",
            )
        )
        chunks = await _collect(_provider(rec))

        deltas = [d for c in chunks for d in (c.tool_deltas or [])]
        assert deltas[0].id == "call_1"
        assert deltas[0].name_delta == "echo"
        assert "".join(d.args_delta for d in deltas) == '{"message": "x"}'
        assert chunks[1].done is True

    async def test_stream_error_payload(self):
        rec = Recorder(sse_response({"error": {"message": "model overloaded"}}))
        with pytest.raises(ProviderError, match="model overloaded"):
            await _collect(_provider(rec))

    async def test_unparseable_lines_are_skipped(self):
        rec = Recorder(sse_response("not json", _content("ok"), "[DONE]"))
        chunks = await _collect(_provider(rec))
        assert "".join(c.delta for c in chunks) == "ok"


class TestRequestBody:
    async def test_headers_and_body(self):
        rec = Recorder(sse_response("[DONE]"))
        tools = [{"name": "echo", "description": "Echo", "parameters": {"type": "object"}}]
        await _collect(
            _provider(rec),
            tools=tools,
            sampling=SamplingConfig(temperature=0.2, max_output_tokens=100),
        )

        request = rec.requests[0]
        assert str(request.url) == "https://llm.test/v1/chat/completions"
        assert request.headers["authorization"] == "Bearer sk-test"
        body = rec.body
        assert body["model"] == "test-model"
        assert body["stream"] is True
        assert body["temperature"] == 0.2
        assert body["max_completion_tokens"] == 100
        assert body["tools"][0] == {
            "type": "function",
            "function": {"name": "echo", "description": "Echo", "parameters": {"type": "object"}},
        }
        assert body["tool_choice"] == "auto"

    async def test_no_tools_omits_tool_fields(self):
        rec = Recorder(sse_response("[DONE]"))
        await _collect(_provider(rec))
        assert "tools" not in rec.body
        assert "tool_choice" not in rec.body

    async def test_message_translation(self):
        rec = Recorder(sse_response("[DONE]"))
        messages = [
            Message("system", "be nice"),
            user_message("look", image=ImagePart(b"abc", "image/jpeg")),
            Message(
                "assistant",
                [TextPart("Checking"), ToolCallPart(id="c1", name="echo", input={"message": "x"})],
            ),
            Message(
                "tool",
                [ToolResultPart(id="c1", name="echo", output=ResultEnvelope({"success": True}))],
            ),
        ]
        await _collect(_provider(rec), messages=messages)

        wire = rec.body["messages"]
        assert wire[0] == {"role": "system", "content": "be nice"}
        assert wire[1]["content"][0] == {
            "type": "image_url",
            "image_url": {"url": "data:image/jpeg;base64,YWJj"},
        }
        assert wire[1]["content"][1] == {"type": "text", "text": "look"}
        assert wire[2]["content"] == "Checking"
        assert wire[2]["tool_calls"][0]["function"] == {
            "name": "echo",
            "arguments": '{"message": "x"}',
        }
        assert wire[3] == {
            "role": "tool",
            "tool_call_id": "c1",
            "content": '{"success": true}',
        }


class TestRetries:
    async def test_retries_transient_status(self):
        rec = Recorder(partial(httpx.Response, 503), sse_response(_content("ok"), "[DONE]"))
        chunks = await _collect(_provider(rec))
        assert len(rec.requests) == 2
        assert "".join(c.delta for c in chunks) == "ok"

    async def test_gives_up_after_max_retries(self):
        rec = Recorder(partial(httpx.Response, 429))
        with pytest.raises(httpx.HTTPStatusError, match="429"):
            await _collect(_provider(rec, max_retries=2))
        assert len(rec.requests) == 3

    async def test_client_error_not_retried(self):
        rec = Recorder(partial(httpx.Response, 401, json={"error": "bad key"}))
        with pytest.raises(httpx.HTTPStatusError, match="401"):
            await _collect(_provider(rec))
        assert len(rec.requests) == 1

    async def test_no_retry_after_output(self):
        rec = Recorder(lambda: httpx.Response(200, stream=BrokenStream()))
        received = []
        with pytest.raises(httpx.ReadError):
            async for chunk in _provider(rec).chat([user_message("hi")]):
                received.append(chunk)
        assert [c.delta for c in received] == ["Hel"]
        assert len(rec.requests) == 1
