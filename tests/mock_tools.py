"""Mock tool implementations for testing."""

import asyncio

from sidekick.tools.base import Tool
from sidekick.types import ToolResult


class EchoTool(Tool):
    def __init__(self) -> None:
        self.calls: list[dict] = []

    @property
    def name(self) -> str:
        return "echo"

    @property
    def description(self) -> str:
        return "Echoes the input message back."

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "message": {"type": "string", "description": "Message to echo"},
            },
            "required": ["message"],
        }

    async def execute(self, **kwargs) -> ToolResult:
        self.calls.append(kwargs)
        return ToolResult(success=True, message=kwargs.get("message", ""))


class BoomTool(Tool):
    """Always reports failure the way a well-behaved tool does."""

    @property
    def name(self) -> str:
        return "boom"

    @property
    def description(self) -> str:
        return "Fails without raising."

    @property
    def parameters(self) -> dict:
        return {"type": "object", "properties": {}}

    async def execute(self, **kwargs) -> ToolResult:
        return ToolResult(success=False, message="boom")


class RaisingTool(Tool):
    """Breaks the contract and raises."""

    @property
    def name(self) -> str:
        return "raiser"

    @property
    def description(self) -> str:
        return "Raises from execute."

    @property
    def parameters(self) -> dict:
        return {"type": "object", "properties": {}}

    async def execute(self, **kwargs) -> ToolResult:
        raise RuntimeError("kaput")


class SlowTool(Tool):
    def __init__(self, delay: float = 10.0) -> None:
        self.delay = delay
        self.started = asyncio.Event()

    @property
    def name(self) -> str:
        return "slow"

    @property
    def description(self) -> str:
        return "Sleeps before answering."

    @property
    def parameters(self) -> dict:
        return {"type": "object", "properties": {}}

    async def execute(self, **kwargs) -> ToolResult:
        self.started.set()
        await asyncio.sleep(self.delay)
        return ToolResult(success=True, message="done")


class DataTool(Tool):
    @property
    def name(self) -> str:
        return "lookup"

    @property
    def description(self) -> str:
        return "Returns structured data."

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {"key": {"type": "string"}},
            "required": ["key"],
        }

    async def execute(self, **kwargs) -> ToolResult:
        return ToolResult(success=True, data={"key": kwargs["key"], "items": [1, 2]})


class ExtraKeysTool(Tool):
    @property
    def name(self) -> str:
        return "extra_keys"

    @property
    def description(self) -> str:
        return "Accepts arbitrary extra keys."

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "base_param": {"type": "string"},
            },
            "required": ["base_param"],
            "additionalProperties": True,
        }

    async def execute(self, **kwargs) -> ToolResult:
        return ToolResult(success=True, data=dict(kwargs))


class StrictArgsTool(Tool):
    """Declares its argument explicitly while the schema leaves it optional."""

    @property
    def name(self) -> str:
        return "strict"

    @property
    def description(self) -> str:
        return "Takes a positional argument."

    @property
    def parameters(self) -> dict:
        return {"type": "object", "properties": {"x": {"type": "string"}}}

    async def execute(self, x) -> ToolResult:
        return ToolResult(success=True, message=x)
