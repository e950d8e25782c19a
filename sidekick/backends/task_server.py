"""
Client for the task server that stores and runs scheduled browser tasks.

Endpoints (all scoped by the ``X-User-Id`` header)::

    POST   /tasks/schedule   {"cron": ..., "instruction": ...}
    GET    /tasks            -> {"tasks": [...]}
    DELETE /tasks/{id}
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class BackendError(Exception):
    """Structured error from a backend operation."""

    def __init__(self, message: str, code: str = ""):
        super().__init__(message)
        self.code = code


class TaskServerClient:
    """
    Thin async client for the task server.

    Parameters
    ----------
    base_url:
        Server root, e.g. ``"http://localhost:3000"``.
    user_id:
        Sent as ``X-User-Id`` on every request.
    timeout:
        Per-request timeout in seconds.
    transport:
        Optional httpx transport, mainly for tests.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:3000",
        user_id: str = "",
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.user_id = user_id
        self._timeout = timeout
        self._transport = transport

    async def _request(
        self, method: str, endpoint: str, body: dict | None = None
    ) -> dict[str, Any]:
        headers = {"X-User-Id": self.user_id}
        url = f"{self.base_url}{endpoint}"
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.request(method, url, json=body, headers=headers)
        except httpx.HTTPError as e:
            raise BackendError(str(e) or type(e).__name__, code="transport") from e

        if response.is_error:
            raise BackendError(response.text or f"HTTP {response.status_code}", code=str(response.status_code))

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise BackendError(f"Invalid JSON from task server: {e}", code="protocol") from e

    async def schedule_task(self, cron: str, instruction: str) -> dict[str, Any]:
        logger.info("Scheduling task cron=%r", cron)
        return await self._request(
            "POST", "/tasks/schedule", {"cron": cron, "instruction": instruction}
        )

    async def list_tasks(self) -> list[dict[str, Any]]:
        data = await self._request("GET", "/tasks")
        return data.get("tasks") or []

    async def delete_task(self, task_id: int) -> dict[str, Any]:
        logger.info("Deleting task %s", task_id)
        return await self._request("DELETE", f"/tasks/{task_id}")
