"""
In-memory conversation store.

Holds the ordered message history of one conversation.  The history is
append-only, except that the most recent message may be replaced while it is
still streaming.  Every mutation synchronously pushes the full snapshot to
the output sink.

Writes during a round are guarded by a single-writer token: while a round
holds the store (``store.writer(round_id)``), only that round may append or
replace, and the store cannot be cleared.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sidekick.conversation.sink import NullSink, OutputSink
from sidekick.llm.types import Message
from sidekick.types import InvalidState


class ConversationStore:
    def __init__(self, sink: OutputSink | None = None) -> None:
        self._messages: list[Message] = []
        self._sink = sink or NullSink()
        self._writer: str | None = None

    def __len__(self) -> int:
        return len(self._messages)

    # ------------------------------------------------------------------
    # Writer discipline
    # ------------------------------------------------------------------

    @property
    def active_writer(self) -> str | None:
        return self._writer

    @contextmanager
    def writer(self, writer_id: str) -> Iterator[None]:
        """Hold exclusive write access for the duration of a round."""
        if self._writer is not None:
            raise InvalidState(
                f"Conversation is held by {self._writer!r}; {writer_id!r} cannot write"
            )
        self._writer = writer_id
        try:
            yield
        finally:
            self._writer = None

    def _check_writer(self, writer_id: str | None) -> None:
        if self._writer is not None and writer_id != self._writer:
            raise InvalidState(
                f"Conversation is held by {self._writer!r}; {writer_id!r} cannot write"
            )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def append(self, message: Message, *, writer: str | None = None) -> None:
        self._check_writer(writer)
        self._messages.append(message)
        self._notify()

    def replace_last(self, message: Message, *, writer: str | None = None) -> None:
        if not self._messages:
            raise InvalidState("Cannot replace the last message of an empty conversation")
        if self._writer is None or writer != self._writer:
            raise InvalidState(
                f"Only the active round may replace the last message (caller {writer!r})"
            )
        self._messages[-1] = message
        self._notify()

    def clear(self) -> None:
        if self._writer is not None:
            raise InvalidState(f"Cannot clear while {self._writer!r} is writing")
        self._messages = []
        self._notify()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def snapshot(self) -> list[Message]:
        return list(self._messages)

    @property
    def last(self) -> Message | None:
        return self._messages[-1] if self._messages else None

    def _notify(self) -> None:
        self._sink.history_snapshot(self.snapshot())
