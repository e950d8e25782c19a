"""
Output sinks.

The orchestrator pushes two kinds of notifications to its consumer:

* ``history_snapshot`` -- the full ordered message list, after every
  conversation mutation.
* ``content_delta`` -- one text fragment as it streams in, and exactly one
  ``is_complete=True`` delta per submission.

Delivery is fire-and-forget: sinks must not block the caller.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Union

from sidekick.llm.types import Message


@dataclass
class HistorySnapshot:
    messages: list[Message]


@dataclass
class ContentDelta:
    message_id: str
    text: str
    is_complete: bool = False


SinkEvent = Union[HistorySnapshot, ContentDelta]


class OutputSink(ABC):
    @abstractmethod
    def history_snapshot(self, messages: list[Message]) -> None: ...

    @abstractmethod
    def content_delta(self, message_id: str, text: str, is_complete: bool) -> None: ...


class NullSink(OutputSink):
    def history_snapshot(self, messages: list[Message]) -> None:
        pass

    def content_delta(self, message_id: str, text: str, is_complete: bool) -> None:
        pass


class CallbackSink(OutputSink):
    """Forwards every notification as a ``SinkEvent`` to a plain callable."""

    def __init__(self, callback: Callable[[SinkEvent], None]) -> None:
        self._callback = callback

    def history_snapshot(self, messages: list[Message]) -> None:
        self._callback(HistorySnapshot(messages))

    def content_delta(self, message_id: str, text: str, is_complete: bool) -> None:
        self._callback(ContentDelta(message_id, text, is_complete))


class QueueSink(OutputSink):
    """
    Puts ``SinkEvent`` objects on an unbounded ``asyncio.Queue``.

    Consumers ``await sink.queue.get()``; producers never wait.
    """

    def __init__(self) -> None:
        self.queue: asyncio.Queue[SinkEvent] = asyncio.Queue()

    def history_snapshot(self, messages: list[Message]) -> None:
        self.queue.put_nowait(HistorySnapshot(messages))

    def content_delta(self, message_id: str, text: str, is_complete: bool) -> None:
        self.queue.put_nowait(ContentDelta(message_id, text, is_complete))
