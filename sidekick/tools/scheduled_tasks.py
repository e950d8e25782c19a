"""
Scheduled-task tools.

These let the model manage recurring browser-agent tasks on the task server:
- create_scheduled_task
- list_scheduled_tasks
- delete_scheduled_task

Every server or network failure is reported as a failed ``ToolResult``.
"""

from __future__ import annotations

import logging

from sidekick.backends.task_server import BackendError, TaskServerClient
from sidekick.tools.base import Tool
from sidekick.types import ErrorCode, ToolResult

logger = logging.getLogger(__name__)


class CreateScheduledTaskTool(Tool):
    """Schedule a recurring instruction for the browser agent."""

    def __init__(self, client: TaskServerClient) -> None:
        self._client = client

    @property
    def name(self) -> str:
        return "create_scheduled_task"

    @property
    def description(self) -> str:
        return (
            "Create a scheduled task that runs on a regular interval defined by cron syntax. "
            "The browser agent will execute the given prompt at each scheduled time. "
            "Ask follow-up questions if you cannot construct an adequate prompt."
        )

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "cron": {
                    "type": "string",
                    "description": (
                        'Cron syntax string defining when the task should run (e.g., "0 0 9 * * *" '
                        'for 9am daily, "0 */30 * * * *" for every 30 minutes, "0 0 0 * * 0" for '
                        "weekly on Sunday). The format is [second] [minute] [hour] [day of month] "
                        "[month] [day of week]"
                    ),
                },
                "instruction": {
                    "type": "string",
                    "description": (
                        "The exact instruction that the agent should execute at each scheduled "
                        "interval. Do not include the interval in the instruction."
                    ),
                },
            },
            "required": ["cron", "instruction"],
        }

    async def execute(self, **kwargs) -> ToolResult:
        cron = kwargs["cron"]
        try:
            await self._client.schedule_task(cron, kwargs["instruction"])
        except BackendError as e:
            logger.error("Failed to schedule task: %s", e)
            return ToolResult.failure(f"Failed to schedule task: {e}", ErrorCode.BACKEND_ERROR)
        return ToolResult(success=True, message=f'Task scheduled with cron "{cron}"')


class ListScheduledTasksTool(Tool):
    """List the user's scheduled tasks."""

    def __init__(self, client: TaskServerClient) -> None:
        self._client = client

    @property
    def name(self) -> str:
        return "list_scheduled_tasks"

    @property
    def description(self) -> str:
        return (
            "List all scheduled tasks for the user. "
            "Shows task ID, cron schedule, and instruction."
        )

    @property
    def parameters(self) -> dict:
        return {"type": "object", "properties": {}}

    async def execute(self, **kwargs) -> ToolResult:
        try:
            tasks = await self._client.list_tasks()
        except BackendError as e:
            logger.error("Failed to list tasks: %s", e)
            return ToolResult.failure(f"Failed to list tasks: {e}", ErrorCode.BACKEND_ERROR)
        logger.info("Retrieved %d tasks", len(tasks))
        return ToolResult(success=True, data={"tasks": tasks})


class DeleteScheduledTaskTool(Tool):
    """Delete one scheduled task by id."""

    def __init__(self, client: TaskServerClient) -> None:
        self._client = client

    @property
    def name(self) -> str:
        return "delete_scheduled_task"

    @property
    def description(self) -> str:
        return (
            "Delete a scheduled task by its ID. "
            "Use list_scheduled_tasks first to get the task IDs."
        )

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "taskId": {"type": "number", "description": "The ID of the task to delete"},
            },
            "required": ["taskId"],
        }

    async def execute(self, **kwargs) -> ToolResult:
        task_id = kwargs["taskId"]
        if isinstance(task_id, float) and task_id.is_integer():
            task_id = int(task_id)
        try:
            await self._client.delete_task(task_id)
        except BackendError as e:
            logger.error("Failed to delete task %s: %s", task_id, e)
            return ToolResult.failure(f"Failed to delete task: {e}", ErrorCode.BACKEND_ERROR)
        return ToolResult(success=True, message=f"Task {task_id} deleted successfully")


def scheduled_task_tools(client: TaskServerClient) -> list[Tool]:
    return [
        CreateScheduledTaskTool(client),
        ListScheduledTasksTool(client),
        DeleteScheduledTaskTool(client),
    ]
