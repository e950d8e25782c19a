"""Tests for the interactive chat handler."""

import io

import pytest
from rich.console import Console

from sidekick.cli.chat import ChatHandler
from sidekick.conversation.sink import QueueSink
from sidekick.llm.errors import NOT_CONFIGURED_MESSAGE
from sidekick.llm.router import LLMRouter
from sidekick.orchestrator.core import Orchestrator
from sidekick.tools.registry import ToolRegistry
from tests.mock_providers import make_text_provider, make_tool_call_provider
from tests.mock_tools import EchoTool


@pytest.fixture
def output():
    return io.StringIO()


def _handler(output, provider=None):
    router = LLMRouter()
    if provider is not None:
        router.register_provider("mock", provider)
    registry = ToolRegistry()
    registry.register(EchoTool())
    sink = QueueSink()
    orch = Orchestrator(router, registry, sink=sink)
    console = Console(file=output, width=120, color_system=None)
    return ChatHandler(orch, sink, console=console)


class TestHandleInput:
    async def test_streams_answer(self, output):
        handler = _handler(output, make_text_provider("Hello there"))
        await handler.handle_input("hi")
        assert "Hello there" in output.getvalue()
        assert len(handler.orchestrator.get_history()) == 2

    async def test_not_configured_message_shown(self, output):
        handler = _handler(output)
        await handler.handle_input("hi")
        assert NOT_CONFIGURED_MESSAGE in output.getvalue()


class TestCommands:
    async def test_history_shows_tool_activity(self, output):
        handler = _handler(output, make_tool_call_provider("echo", {"message": "ping"}))
        handler.orchestrator.max_rounds = 1
        await handler.handle_input("go")
        assert await handler.handle_command("/history") is True

        text = output.getvalue()
        assert 'echo({"message": "ping"})' in text
        assert '<- echo: {"success": true, "message": "ping"}' in text

    async def test_clear(self, output):
        handler = _handler(output, make_text_provider("x"))
        await handler.handle_input("hi")
        assert await handler.handle_command("/clear") is True
        assert handler.orchestrator.get_history() == []
        assert "Conversation cleared." in output.getvalue()

    async def test_tools_and_help(self, output):
        handler = _handler(output)
        assert await handler.handle_command("/tools") is True
        assert await handler.handle_command("/help") is True
        text = output.getvalue()
        assert "echo" in text
        assert "/quit" in text

    async def test_quit_and_unknown(self, output):
        handler = _handler(output)
        assert await handler.handle_command("/bogus") is False
        assert await handler.handle_command("/quit") is True
        assert handler._running is False
