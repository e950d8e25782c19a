"""
Event reconciliation.

Folds a round's stream events into conversation mutations:

``TextFragment``
    Grows the round's in-progress assistant message (created on the first
    fragment, replaced in place afterwards) and forwards the fragment itself
    to the sink as a content delta.

``ToolCallAnnounced``
    Rebuilds the in-progress assistant message as
    ``[Text(accumulated)?, ToolCall, ToolCall, ...]`` in announcement order.

``ToolResultReady``
    Wraps the output in a ``ResultEnvelope`` and appends a ``tool`` message
    holding exactly that result.  Accumulated text is reset, so later text
    in the same round opens a fresh assistant message.

Events are applied strictly in stream order.  A result for a call that was
never announced is rejected rather than reordered.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sidekick.conversation.sink import NullSink, OutputSink
from sidekick.conversation.store import ConversationStore
from sidekick.llm.types import (
    ROLE_ASSISTANT,
    ROLE_TOOL,
    ContentPart,
    Message,
    ResultEnvelope,
    StreamEvent,
    TextFragment,
    TextPart,
    ToolCallAnnounced,
    ToolCallPart,
    ToolResultPart,
    ToolResultReady,
)
from sidekick.types import InvalidState

logger = logging.getLogger(__name__)


@dataclass
class RoundState:
    """Transient bookkeeping for one round."""

    text: str = ""
    # Calls belonging to the currently open assistant message.
    open_calls: list[ToolCallPart] = field(default_factory=list)
    # Every call announced this round, in announcement order.
    announced: list[ToolCallPart] = field(default_factory=list)
    resolved: set[str] = field(default_factory=set)
    has_tool_calls: bool = False
    assistant_open: bool = False
    # Messages this round contributes to the next round's outbound request.
    outbound: list[Message] = field(default_factory=list)
    _outbound_index: int | None = None

    @property
    def pending_calls(self) -> list[ToolCallPart]:
        """Announced calls that have no result yet, in announcement order."""
        return [c for c in self.announced if c.id not in self.resolved]


class EventReconciler:
    """
    Applies stream events for one round to a ``ConversationStore``.

    Parameters
    ----------
    store:
        The conversation being written.  The reconciler writes as *writer*.
    sink:
        Receives text fragments as content deltas for *message_id*.
    message_id:
        Identifier of the submission the deltas belong to.
    writer:
        The round's writer token for ``store.replace_last``.
    """

    def __init__(
        self,
        store: ConversationStore,
        sink: OutputSink | None = None,
        message_id: str = "",
        writer: str | None = None,
    ) -> None:
        self.store = store
        self.sink = sink or NullSink()
        self.message_id = message_id
        self.writer = writer
        self.state = RoundState()

    def apply(self, event: StreamEvent) -> None:
        if isinstance(event, TextFragment):
            self._on_text(event)
        elif isinstance(event, ToolCallAnnounced):
            self._on_tool_call(event)
        elif isinstance(event, ToolResultReady):
            self._on_tool_result(event)
        else:
            raise TypeError(f"Unknown stream event: {event!r}")

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _on_text(self, event: TextFragment) -> None:
        if not event.text:
            return
        self.state.text += event.text
        self._write_assistant()
        self.sink.content_delta(self.message_id, event.text, False)

    def _on_tool_call(self, event: ToolCallAnnounced) -> None:
        state = self.state
        call = ToolCallPart(id=event.id, name=event.name, input=event.input)
        state.has_tool_calls = True
        state.open_calls.append(call)
        state.announced.append(call)
        self._write_assistant()

    def _on_tool_result(self, event: ToolResultReady) -> None:
        state = self.state
        if not any(c.id == event.id for c in state.announced):
            raise InvalidState(f"Tool result for unannounced call {event.id!r}")
        if event.id in state.resolved:
            raise InvalidState(f"Duplicate tool result for call {event.id!r}")

        part = ToolResultPart(
            id=event.id,
            name=event.name,
            output=ResultEnvelope(value=event.output),
        )
        message = Message(role=ROLE_TOOL, content=[part])
        self.store.append(message, writer=self.writer)
        state.outbound.append(message)
        state.resolved.add(event.id)

        state.text = ""
        state.open_calls = []
        state.assistant_open = False
        state._outbound_index = None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _assistant_message(self) -> Message:
        state = self.state
        if not state.open_calls:
            return Message(role=ROLE_ASSISTANT, content=state.text)
        parts: list[ContentPart] = []
        if state.text:
            parts.append(TextPart(state.text))
        parts.extend(state.open_calls)
        return Message(role=ROLE_ASSISTANT, content=parts)

    def _write_assistant(self) -> None:
        state = self.state
        message = self._assistant_message()

        if state.assistant_open:
            self.store.replace_last(message, writer=self.writer)
        else:
            self.store.append(message, writer=self.writer)
            state.assistant_open = True

        if state._outbound_index is not None:
            state.outbound[state._outbound_index] = message
        else:
            state.outbound.append(message)
            state._outbound_index = len(state.outbound) - 1
