"""Interactive chat session handler."""

from __future__ import annotations

import asyncio
import contextlib
import signal
import uuid
from typing import Iterator

from rich.console import Console

from sidekick.cancellation import CancellationToken
from sidekick.cli.output import OutputFormatter
from sidekick.conversation.sink import ContentDelta, QueueSink
from sidekick.llm.types import ImagePart
from sidekick.orchestrator.core import Orchestrator
from sidekick.types import InvalidState


class ChatHandler:
    """
    Manages the interactive chat loop.

    Streams content deltas from a ``QueueSink`` to the console and handles
    inline commands.  Ctrl+C while a response is streaming cancels it.
    """

    def __init__(
        self,
        orchestrator: Orchestrator,
        sink: QueueSink,
        console: Console | None = None,
    ) -> None:
        self.orchestrator = orchestrator
        self.sink = sink
        self.console = console or Console()
        self.formatter = OutputFormatter(self.console)
        self._running = True

    async def handle_command(self, command: str) -> bool:
        """
        Handle inline commands. Returns True if the command was handled.
        """
        cmd = command.strip().split(None, 1)[0].lower()

        if cmd == "/quit":
            self._running = False
            self.console.print("[dim]Goodbye.[/dim]")
            return True

        if cmd == "/history":
            self.formatter.format_history(self.orchestrator.get_history())
            return True

        if cmd == "/clear":
            try:
                self.orchestrator.clear()
            except InvalidState as e:
                self.console.print(f"  [red]Error:[/red] {e}")
            else:
                self.console.print("  [dim]Conversation cleared.[/dim]")
            return True

        if cmd == "/tools":
            self.formatter.format_tool_list(self.orchestrator.registry.list())
            return True

        if cmd == "/help":
            self.console.print(
                "  [bold]Commands:[/bold]\n"
                "  /quit     - Exit the chat\n"
                "  /history  - Show the conversation\n"
                "  /clear    - Start a new conversation\n"
                "  /tools    - List available tools\n"
                "  /help     - Show this help\n"
            )
            return True

        return False

    @contextlib.contextmanager
    def _interrupt_cancels(self, token: CancellationToken) -> Iterator[None]:
        loop = asyncio.get_running_loop()
        try:
            loop.add_signal_handler(signal.SIGINT, token.cancel, "interrupted")
        except (NotImplementedError, RuntimeError, ValueError):
            # No signal handlers on this platform/loop; Ctrl+C exits instead.
            yield
            return
        try:
            yield
        finally:
            loop.remove_signal_handler(signal.SIGINT)

    async def handle_input(self, user_input: str, image: ImagePart | None = None) -> None:
        """Submit user input and stream the response until completion."""
        token = CancellationToken()
        message_id = uuid.uuid4().hex
        task = asyncio.create_task(
            self.orchestrator.submit(user_input, image, cancel=token, message_id=message_id)
        )

        with self._interrupt_cancels(token):
            while True:
                event = await self.sink.queue.get()
                if not isinstance(event, ContentDelta) or event.message_id != message_id:
                    continue
                if event.is_complete:
                    if event.text:
                        self.console.print(f"[red]{event.text}[/red]", end="")
                    break
                self.console.print(event.text, end="", markup=False, highlight=False)

        await task
        if token.cancelled:
            self.console.print(" [dim](cancelled)[/dim]", end="")
        self.console.print()

    async def run_loop(self) -> None:
        """Main interactive loop."""
        self.console.print(
            "[bold]Sidekick[/bold] - Browser Assistant\n"
            "[dim]Type /help for commands, /quit to exit.[/dim]\n"
        )

        loop = asyncio.get_running_loop()
        while self._running:
            try:
                user_input = await loop.run_in_executor(
                    None, lambda: input("you> ").strip()
                )
            except (EOFError, KeyboardInterrupt):
                self.console.print("\n[dim]Goodbye.[/dim]")
                break

            if not user_input:
                continue

            if user_input.startswith("/"):
                handled = await self.handle_command(user_input)
                if handled:
                    continue

            self.console.print("[dim]assistant>[/dim] ", end="")
            await self.handle_input(user_input)
