from __future__ import annotations

import inspect
import logging
from importlib.metadata import entry_points

from sidekick.tools.base import Tool

logger = logging.getLogger(__name__)


class ToolRegistry:
    def __init__(self):
        self._tools: dict[str, Tool] = {}

    def __len__(self) -> int:
        return len(self._tools)

    def register(self, tool: Tool, *, overwrite: bool = False) -> None:
        if tool.name in self._tools and not overwrite:
            raise ValueError(f"Tool already registered: {tool.name}")
        self._tools[tool.name] = tool

    def unregister(self, name: str) -> None:
        self._tools.pop(name, None)

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def require(self, name: str) -> Tool:
        t = self.get(name)
        if not t:
            raise KeyError(name)
        return t

    def list(self) -> list[Tool]:
        return sorted(self._tools.values(), key=lambda t: t.name)

    def to_schema(self) -> list[dict]:
        return [t.to_schema() for t in self.list()]

    def load_plugins(
        self,
        *,
        enabled: bool,
        group: str = "sidekick.tools",
        allow_distributions: set[str] | None = None,
        allow_tools: set[str] | None = None,
        client: object | None = None,
    ) -> int:
        """Load tools from entry points, optionally injecting dependencies.

        If a tool class's __init__ accepts a ``client`` parameter and one is
        provided here, it will be injected automatically.  Tools that don't
        declare the parameter are constructed with no arguments.
        """
        if not enabled:
            return 0
        loaded = 0
        for ep in entry_points(group=group):
            dist = getattr(ep, "dist", None)
            dist_name = getattr(dist, "name", None)
            if allow_distributions and dist_name and dist_name not in allow_distributions:
                continue
            if allow_tools and ep.name not in allow_tools:
                continue
            tool_cls = ep.load()
            kwargs: dict = {}
            if client is not None:
                sig = inspect.signature(tool_cls)
                if "client" in sig.parameters:
                    kwargs["client"] = client
            self.register(tool_cls(**kwargs))
            logger.info("Loaded plugin tool %s from %s", ep.name, dist_name)
            loaded += 1
        return loaded
