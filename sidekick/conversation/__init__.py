"""Conversation state -- the message store, sinks and event reconciliation."""

from sidekick.conversation.reconciler import EventReconciler, RoundState
from sidekick.conversation.sink import (
    CallbackSink,
    ContentDelta,
    HistorySnapshot,
    NullSink,
    OutputSink,
    QueueSink,
    SinkEvent,
)
from sidekick.conversation.store import ConversationStore

__all__ = [
    "CallbackSink",
    "ContentDelta",
    "ConversationStore",
    "EventReconciler",
    "HistorySnapshot",
    "NullSink",
    "OutputSink",
    "QueueSink",
    "RoundState",
    "SinkEvent",
]
