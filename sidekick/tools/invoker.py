"""
Tool invocation.

``ToolInvoker.invoke`` runs one announced tool call and always comes back
with a ``ToolResult``: unknown tools, schema violations, timeouts and
exceptions escaping a tool's ``execute`` all become failed results that are
fed back to the model.  Only cancellation propagates.
"""

from __future__ import annotations

import asyncio
import logging
import time

from sidekick.cancellation import CancellationToken
from sidekick.llm.types import ToolCallPart
from sidekick.tools.registry import ToolRegistry
from sidekick.tools.validation import ToolValidator
from sidekick.types import ErrorCode, OperationCancelled, ToolResult

logger = logging.getLogger(__name__)


class ToolInvoker:
    def __init__(self, registry: ToolRegistry, tool_timeout: float = 60.0) -> None:
        self.registry = registry
        self.tool_timeout = tool_timeout

    async def invoke(
        self,
        call: ToolCallPart,
        cancel: CancellationToken | None = None,
    ) -> ToolResult:
        if cancel is not None:
            cancel.raise_if_cancelled()

        tool = self.registry.get(call.name)
        if tool is None:
            logger.warning("Model requested unknown tool %r", call.name)
            return ToolResult.failure(f"Unknown tool: {call.name}", ErrorCode.UNKNOWN_TOOL)

        valid, error_msg = ToolValidator.validate(tool, call.input)
        if not valid:
            logger.info("Rejected %s call %s: %s", call.name, call.id, error_msg)
            return ToolResult.failure(
                f"Invalid input for {call.name}: {error_msg}", ErrorCode.VALIDATION_ERROR
            )

        logger.info("Executing tool %s (call %s)", call.name, call.id)
        start = time.monotonic()
        try:
            execution = asyncio.wait_for(
                tool.execute(**call.input), timeout=self.tool_timeout
            )
            if cancel is not None:
                result = await cancel.run(execution)
            else:
                result = await execution
        except OperationCancelled:
            raise
        except asyncio.TimeoutError:
            logger.warning("Tool %s timed out after %ss", call.name, self.tool_timeout)
            return ToolResult.failure(
                f"Tool timed out after {self.tool_timeout}s", ErrorCode.TIMEOUT
            )
        except Exception as e:
            logger.exception("Tool %s raised", call.name)
            return ToolResult.failure(f"Tool exception: {e}", ErrorCode.TOOL_EXCEPTION)

        duration_ms = int((time.monotonic() - start) * 1000)
        if not isinstance(result, ToolResult):
            logger.error("Tool %s returned %r instead of a ToolResult", call.name, result)
            return ToolResult.failure(
                f"Tool {call.name} returned an invalid result", ErrorCode.TOOL_EXCEPTION
            )

        logger.info(
            "Tool %s finished in %dms success=%s", call.name, duration_ms, result.success
        )
        return result
