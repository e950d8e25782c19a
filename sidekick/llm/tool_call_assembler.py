"""
Assembles streaming tool-call deltas into announced tool calls.

  - Accumulate ``RawToolDelta`` fragments keyed by ``call_index``.
  - On ``done=True`` (or an explicit ``flush()``), attempt to JSON-parse the
    accumulated argument string.
  - If parsing fails the call is *dropped* and an error is recorded -- the
    caller can inspect ``self.errors`` and log or surface the failure.
"""

from __future__ import annotations

import json

from sidekick.llm.types import RawToolDelta, ToolCallAnnounced


class ToolCallAssembler:
    """Buffers raw tool-call deltas and emits ``ToolCallAnnounced`` events."""

    def __init__(self) -> None:
        self._buf: dict[int, dict] = {}
        self.errors: list[str] = []

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def feed(self, delta: RawToolDelta) -> list[ToolCallAnnounced]:
        """
        Feed a single ``RawToolDelta`` into the assembler.

        Returns a (possibly empty) list of completed calls.  A call is
        finalized when its delta has ``done=True``.
        """
        buf = self._buf.setdefault(
            delta.call_index, {"id": None, "name": "", "args": ""}
        )

        if delta.id and not buf["id"]:
            buf["id"] = delta.id

        if delta.name_delta:
            buf["name"] += delta.name_delta

        if delta.args_delta:
            buf["args"] += delta.args_delta

        if delta.done:
            return self._finalize(delta.call_index)

        return []

    def flush(self) -> list[ToolCallAnnounced]:
        """
        Finalize *all* remaining buffers, in index order, regardless of
        whether a ``done`` delta was received.  Used at stream end.
        """
        calls: list[ToolCallAnnounced] = []
        for idx in sorted(self._buf.keys()):
            calls.extend(self._finalize(idx))
        return calls

    def reset(self) -> None:
        """Discard all accumulated state."""
        self._buf.clear()
        self.errors.clear()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _finalize(self, idx: int) -> list[ToolCallAnnounced]:
        buf = self._buf.pop(idx, None)
        if buf is None:
            return []

        raw_args = buf["args"] or "{}"
        try:
            args = json.loads(raw_args)
        except (json.JSONDecodeError, ValueError) as exc:
            self.errors.append(f"tool_call_json_parse_failed idx={idx} err={exc}")
            return []

        if not isinstance(args, dict):
            self.errors.append(
                f"tool_call_args_not_object idx={idx} type={type(args).__name__}"
            )
            return []

        name = buf["name"].strip()
        call_id = buf["id"] or f"call_{idx}"
        return [ToolCallAnnounced(id=call_id, name=name, input=args)]
