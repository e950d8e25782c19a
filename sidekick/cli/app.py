"""
Main CLI application for sidekick.

Usage:
    sidekick chat [--url URL] [--page FILE] [--profile NAME]
    sidekick ask PROMPT [--image FILE] [--url URL] [--page FILE] [--json]
    sidekick tools list|info
    sidekick config show|validate
    sidekick version
"""

from __future__ import annotations

import asyncio
import logging
import mimetypes
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from sidekick.config import SidekickConfig, load_config

app = typer.Typer(name="sidekick", help="Sidekick - browser assistant CLI")
tools_app = typer.Typer(help="Tool management")
config_app = typer.Typer(help="Configuration management")

app.add_typer(tools_app, name="tools")
app.add_typer(config_app, name="config")

console = Console()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _get_config_path() -> Path | None:
    """Find config file in standard locations."""
    candidates = [
        Path.cwd() / "sidekick.yaml",
        Path.cwd() / "sidekick.yml",
        Path.home() / ".config" / "sidekick" / "config.yaml",
        Path.home() / ".sidekick" / "config.yaml",
    ]
    for p in candidates:
        if p.is_file():
            return p
    return None


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(name)s: %(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _load_image(path: Path):
    from sidekick.llm.types import ImagePart

    media_type = mimetypes.guess_type(path.name)[0] or "image/png"
    return ImagePart(data=path.read_bytes(), media_type=media_type)


def _build_registry(cfg: SidekickConfig):
    from sidekick.backends.task_server import TaskServerClient
    from sidekick.tools.registry import ToolRegistry
    from sidekick.tools.scheduled_tasks import scheduled_task_tools

    registry = ToolRegistry()
    client = TaskServerClient(
        base_url=cfg.tasks.server_url,
        user_id=cfg.tasks.user_id,
        timeout=float(cfg.tasks.timeout_seconds),
    )
    if cfg.tasks.enabled:
        for tool in scheduled_task_tools(client):
            registry.register(tool)

    registry.load_plugins(
        enabled=cfg.plugins.enabled,
        allow_distributions=set(cfg.plugins.allow_distributions) or None,
        allow_tools=set(cfg.plugins.allow_tools) or None,
        client=client,
    )

    for name in cfg.tools.disabled:
        registry.unregister(name)
    return registry


def _setup_stack(
    cfg: SidekickConfig,
    url: str | None = None,
    page: Path | None = None,
):
    """Wire up the conversation engine for the CLI."""
    from sidekick.conversation.sink import QueueSink
    from sidekick.llm.factory import build_router
    from sidekick.llm.types import SamplingConfig
    from sidekick.orchestrator.context import StaticContextProvider
    from sidekick.orchestrator.core import Orchestrator

    page_text = page.read_text(encoding="utf-8") if page else None
    sink = QueueSink()
    orchestrator = Orchestrator(
        router=build_router(cfg.llm),
        registry=_build_registry(cfg),
        sink=sink,
        context_provider=StaticContextProvider(url=url, text=page_text),
        sampling=SamplingConfig(
            temperature=cfg.llm.temperature,
            max_output_tokens=cfg.llm.max_output_tokens,
        ),
        max_rounds=cfg.chat.max_rounds,
        tool_timeout=float(cfg.chat.tool_timeout_seconds),
        max_context_chars=cfg.chat.max_context_chars,
    )
    return orchestrator, sink


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@app.command()
def chat(
    url: Optional[str] = typer.Option(None, help="URL of the page being discussed"),
    page: Optional[Path] = typer.Option(None, help="File holding the page's text"),
    provider: Optional[str] = typer.Option(None, help="LLM provider: openai or anthropic"),
    profile: Optional[str] = typer.Option(None, help="Config profile name"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Start an interactive chat session."""
    from sidekick.cli.chat import ChatHandler

    _setup_logging(verbose)
    overrides = {"llm.name": provider} if provider else None
    cfg = load_config(_get_config_path(), profile=profile, cli_overrides=overrides)

    async def _run():
        orchestrator, sink = _setup_stack(cfg, url, page)
        await ChatHandler(orchestrator, sink, console=console).run_loop()

    asyncio.run(_run())


@app.command()
def ask(
    prompt: str = typer.Argument(..., help="What to ask"),
    image: Optional[Path] = typer.Option(None, help="Image (e.g. a screenshot) to attach"),
    url: Optional[str] = typer.Option(None, help="URL of the page being discussed"),
    page: Optional[Path] = typer.Option(None, help="File holding the page's text"),
    provider: Optional[str] = typer.Option(None, help="LLM provider: openai or anthropic"),
    profile: Optional[str] = typer.Option(None, help="Config profile name"),
    as_json: bool = typer.Option(False, "--json", help="Print the final conversation as JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Ask a single question and stream the answer."""
    from sidekick.cli.chat import ChatHandler
    from sidekick.cli.output import OutputFormatter

    _setup_logging(verbose)
    overrides = {"llm.name": provider} if provider else None
    cfg = load_config(_get_config_path(), profile=profile, cli_overrides=overrides)
    attachment = _load_image(image) if image else None

    async def _run():
        orchestrator, sink = _setup_stack(cfg, url, page)
        out = Console(quiet=True) if as_json else console
        await ChatHandler(orchestrator, sink, console=out).handle_input(prompt, attachment)
        if as_json:
            console.print_json(OutputFormatter(console).history_json(orchestrator.get_history()))

    asyncio.run(_run())


@tools_app.command("list")
def tools_list():
    """List registered tools."""
    from sidekick.cli.output import OutputFormatter

    registry = _build_registry(load_config(_get_config_path()))
    OutputFormatter(console).format_tool_list(registry.list())


@tools_app.command("info")
def tools_info(tool_name: str = typer.Argument(..., help="Tool name")):
    """Show tool details and schema."""
    from sidekick.cli.output import OutputFormatter

    registry = _build_registry(load_config(_get_config_path()))
    tool = registry.get(tool_name)
    if not tool:
        console.print(f"[red]Tool not found:[/red] {tool_name}")
        raise typer.Exit(1)

    OutputFormatter(console).format_tool_info(tool)


@config_app.command("show")
def config_show():
    """Show effective config."""
    from sidekick.cli.output import OutputFormatter

    cfg = load_config(_get_config_path())
    OutputFormatter(console).format_config(cfg.to_dict())


@config_app.command("validate")
def config_validate():
    """Validate config and report what is missing."""
    config_path = _get_config_path()
    try:
        cfg = load_config(config_path)
    except Exception as e:
        console.print(f"[red]Config validation failed:[/red] {e}")
        raise typer.Exit(1)

    console.print("[green]Config is valid.[/green]")
    if config_path:
        console.print(f"  Loaded from: {config_path}")
    else:
        console.print("  [dim]No config file found, using defaults.[/dim]")
    console.print(f"  LLM provider: {cfg.llm.name} ({cfg.llm.effective_model})")
    if cfg.llm.api_key():
        console.print(f"  API key: found in {cfg.llm.effective_api_key_env}")
    else:
        console.print(f"  [yellow]API key: {cfg.llm.effective_api_key_env} is not set[/yellow]")
    console.print(f"  Max rounds: {cfg.chat.max_rounds}")
    console.print(f"  Task server: {cfg.tasks.server_url} (enabled: {cfg.tasks.enabled})")


@app.command()
def version():
    """Show version."""
    console.print("sidekick v0.1.0")


def main():
    app()


if __name__ == "__main__":
    main()
