"""Output formatting utilities for the CLI."""

from __future__ import annotations

import json
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from sidekick.llm.types import ImagePart, Message, TextPart, ToolCallPart, ToolResultPart
from sidekick.tools.base import Tool

ROLE_COLORS = {
    "system": "magenta",
    "user": "cyan",
    "assistant": "green",
    "tool": "yellow",
}


class OutputFormatter:
    """Rich-based output formatting for the sidekick CLI."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def format_tool_list(self, tools: list[Tool]) -> None:
        table = Table(title="Registered Tools", show_lines=True)
        table.add_column("Name", style="cyan", no_wrap=True)
        table.add_column("Description")

        for t in tools:
            table.add_row(t.name, t.description)

        self.console.print(table)

    def format_tool_info(self, tool: Tool) -> None:
        self.console.print(Panel(
            f"[bold]{tool.name}[/bold]\n\n{tool.description}",
            title=f"Tool: {tool.name}",
        ))
        schema_json = json.dumps(tool.to_schema()["parameters"], indent=2)
        self.console.print(Syntax(schema_json, "json", theme="monokai"))

    def format_history(self, messages: list[Message]) -> None:
        if not messages:
            self.console.print("[dim]No messages yet.[/dim]")
            return
        for msg in messages:
            color = ROLE_COLORS.get(msg.role, "white")
            self.console.print(f"[{color}]{msg.role}>[/{color}] {escape(self._summarize(msg))}")

    def format_config(self, config: dict[str, Any]) -> None:
        self.console.print(Syntax(json.dumps(config, indent=2), "json", theme="monokai"))

    def history_json(self, messages: list[Message]) -> str:
        return json.dumps([m.to_dict() for m in messages], indent=2)

    @staticmethod
    def _summarize(msg: Message) -> str:
        pieces: list[str] = []
        for part in msg.parts:
            if isinstance(part, TextPart):
                pieces.append(part.text)
            elif isinstance(part, ImagePart):
                pieces.append(f"[image {part.media_type}, {len(part.data)} bytes]")
            elif isinstance(part, ToolCallPart):
                pieces.append(f"-> {part.name}({json.dumps(part.input)})")
            elif isinstance(part, ToolResultPart):
                pieces.append(f"<- {part.name}: {json.dumps(part.output.value)[:200]}")
        return " ".join(pieces)
