"""Tests for ToolInvoker."""

import asyncio

import pytest

from sidekick.cancellation import CancellationToken
from sidekick.llm.types import ToolCallPart
from sidekick.tools.invoker import ToolInvoker
from sidekick.tools.registry import ToolRegistry
from sidekick.types import ErrorCode, OperationCancelled
from tests.mock_tools import (
    BoomTool,
    DataTool,
    EchoTool,
    RaisingTool,
    SlowTool,
    StrictArgsTool,
)


@pytest.fixture
def registry():
    reg = ToolRegistry()
    for tool in (EchoTool(), BoomTool(), RaisingTool(), DataTool()):
        reg.register(tool)
    return reg


def _call(name, **kwargs):
    return ToolCallPart(id=f"call_{name}", name=name, input=kwargs)


class TestInvoke:
    async def test_success(self, registry):
        result = await ToolInvoker(registry).invoke(_call("echo", message="hi"))
        assert result.success is True
        assert result.to_output() == {"success": True, "message": "hi"}

    async def test_data_is_merged_into_output(self, registry):
        result = await ToolInvoker(registry).invoke(_call("lookup", key="k"))
        assert result.to_output() == {"success": True, "key": "k", "items": [1, 2]}

    async def test_reported_failure_passes_through(self, registry):
        result = await ToolInvoker(registry).invoke(_call("boom"))
        assert result.to_output() == {"success": False, "message": "boom"}

    async def test_unknown_tool(self, registry):
        result = await ToolInvoker(registry).invoke(_call("nope"))
        assert result.success is False
        assert result.message == "Unknown tool: nope"
        assert result.error_code == ErrorCode.UNKNOWN_TOOL

    async def test_invalid_input_never_executes(self, registry):
        echo = registry.get("echo")
        result = await ToolInvoker(registry).invoke(_call("echo"))
        assert result.success is False
        assert result.message.startswith("Invalid input for echo:")
        assert result.error_code == ErrorCode.VALIDATION_ERROR
        assert echo.calls == []

    async def test_raising_tool_becomes_failure(self, registry):
        result = await ToolInvoker(registry).invoke(_call("raiser"))
        assert result.success is False
        assert result.message == "Tool exception: kaput"
        assert result.error_code == ErrorCode.TOOL_EXCEPTION

    async def test_argument_binding_error_becomes_failure(self, registry):
        registry.register(StrictArgsTool())
        result = await ToolInvoker(registry).invoke(_call("strict"))
        assert result.success is False
        assert result.error_code == ErrorCode.TOOL_EXCEPTION
        assert result.message.startswith("Tool exception:")
        assert "x" in result.message

    async def test_timeout(self, registry):
        registry.register(SlowTool(delay=5))
        result = await ToolInvoker(registry, tool_timeout=0.05).invoke(_call("slow"))
        assert result.success is False
        assert result.error_code == ErrorCode.TIMEOUT
        assert "timed out" in result.message


class TestCancellation:
    async def test_already_cancelled_token(self, registry):
        token = CancellationToken()
        token.cancel()
        echo = registry.get("echo")
        with pytest.raises(OperationCancelled):
            await ToolInvoker(registry).invoke(_call("echo", message="x"), token)
        assert echo.calls == []

    async def test_cancel_during_execution(self, registry):
        slow = SlowTool(delay=30)
        registry.register(slow)
        token = CancellationToken()

        task = asyncio.create_task(ToolInvoker(registry).invoke(_call("slow"), token))
        await asyncio.wait_for(slow.started.wait(), timeout=2)
        token.cancel("user stop")

        with pytest.raises(OperationCancelled, match="user stop"):
            await asyncio.wait_for(task, timeout=2)
