"""
LLM Router -- manages providers and turns their output into stream events.

The router is the model-invocation entry point for the orchestrator.  It:

  1. Streams ``StreamChunk`` objects from the active provider.
  2. Feeds tool-call deltas into a ``ToolCallAssembler``.
  3. Yields ``TextFragment`` / ``ToolCallAnnounced`` events in stream order.

Tool calls whose arguments fail to parse are dropped and logged; the rest
of the round proceeds.
"""

from __future__ import annotations

import logging
from typing import AsyncIterator

from sidekick.llm.providers.base import Provider
from sidekick.llm.tool_call_assembler import ToolCallAssembler
from sidekick.llm.types import (
    Message,
    SamplingConfig,
    StreamEvent,
    TextFragment,
)

logger = logging.getLogger(__name__)


class LLMRouter:
    """
    Routes chat requests to a named provider.
    """

    def __init__(self) -> None:
        self._providers: dict[str, Provider] = {}
        self._active: str | None = None

    # ------------------------------------------------------------------
    # Provider management
    # ------------------------------------------------------------------

    def register_provider(self, name: str, provider: Provider) -> None:
        """Register a provider under *name*.  Overwrites any existing entry."""
        self._providers[name] = provider
        if self._active is None:
            self._active = name

    def set_active(self, name: str) -> None:
        """
        Switch the active provider.

        Raises ``KeyError`` if *name* has not been registered.
        """
        if name not in self._providers:
            raise KeyError(
                f"Unknown provider {name!r}. "
                f"Registered: {list(self._providers)}"
            )
        self._active = name

    @property
    def is_configured(self) -> bool:
        return self._active is not None and self._active in self._providers

    @property
    def active_name(self) -> str | None:
        """Return the name of the currently active provider (or ``None``)."""
        return self._active

    @property
    def active_provider(self) -> Provider:
        """
        Return the active ``Provider`` instance.

        Raises ``RuntimeError`` if no provider is active.
        """
        if not self.is_configured:
            raise RuntimeError("No active LLM provider")
        return self._providers[self._active]

    @property
    def provider_names(self) -> list[str]:
        return list(self._providers)

    # ------------------------------------------------------------------
    # Streaming events
    # ------------------------------------------------------------------

    async def stream_events(
        self,
        messages: list[Message],
        tools: list[dict] | None = None,
        sampling: SamplingConfig | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """
        Invoke the active provider and yield reconciler events.

        Text fragments are forwarded as they arrive; a tool call is announced
        as soon as its arguments are complete, and any still-open calls are
        flushed in index order when the stream ends.
        """
        provider = self.active_provider
        assembler = ToolCallAssembler()

        async for chunk in provider.chat(messages, tools=tools, sampling=sampling):
            if chunk.delta:
                yield TextFragment(chunk.delta)
            if chunk.tool_deltas:
                for td in chunk.tool_deltas:
                    for call in assembler.feed(td):
                        yield call

        for call in assembler.flush():
            yield call

        if assembler.errors:
            logger.warning(
                "Dropped malformed tool calls from %s: %s",
                self._active,
                assembler.errors,
            )
