"""Core types for the LLM subsystem."""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from typing import Any, Union

ROLE_SYSTEM = "system"
ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"
ROLE_TOOL = "tool"


# ---------------------------------------------------------------------------
# Content parts
# ---------------------------------------------------------------------------


@dataclass
class TextPart:
    text: str
    type: str = field(default="text", init=False)


@dataclass
class ImagePart:
    data: bytes
    media_type: str = "image/png"
    type: str = field(default="image", init=False)

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def to_data_url(self) -> str:
        return f"data:{self.media_type};base64,{self.to_base64()}"


@dataclass
class ToolCallPart:
    id: str
    name: str
    input: dict[str, Any]
    type: str = field(default="tool-call", init=False)


@dataclass
class ResultEnvelope:
    """Fixed wrapper so the model always receives uniformly shaped tool output."""

    value: Any
    type: str = "json"


@dataclass
class ToolResultPart:
    id: str
    name: str
    output: ResultEnvelope
    type: str = field(default="tool-result", init=False)


ContentPart = Union[TextPart, ImagePart, ToolCallPart, ToolResultPart]


@dataclass
class Message:
    """A single message in a conversation.

    ``content`` is either a plain string or an ordered list of content parts.
    A ``tool`` message carries exactly one ``ToolResultPart``.
    """

    role: str  # "system", "user", "assistant", "tool"
    content: str | list[ContentPart]

    @property
    def parts(self) -> list[ContentPart]:
        if isinstance(self.content, str):
            return [TextPart(self.content)] if self.content else []
        return list(self.content)

    @property
    def text(self) -> str:
        return "".join(p.text for p in self.parts if isinstance(p, TextPart))

    @property
    def tool_calls(self) -> list[ToolCallPart]:
        return [p for p in self.parts if isinstance(p, ToolCallPart)]

    @property
    def tool_result(self) -> ToolResultPart | None:
        for p in self.parts:
            if isinstance(p, ToolResultPart):
                return p
        return None

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly form; image bytes are rendered as a data URL."""
        if isinstance(self.content, str):
            return {"role": self.role, "content": self.content}
        parts: list[dict[str, Any]] = []
        for p in self.content:
            if isinstance(p, TextPart):
                parts.append({"type": p.type, "text": p.text})
            elif isinstance(p, ImagePart):
                parts.append({"type": p.type, "image": p.to_data_url()})
            elif isinstance(p, ToolCallPart):
                parts.append(
                    {"type": p.type, "toolCallId": p.id, "toolName": p.name, "input": p.input}
                )
            elif isinstance(p, ToolResultPart):
                parts.append(
                    {
                        "type": p.type,
                        "toolCallId": p.id,
                        "toolName": p.name,
                        "output": {"type": p.output.type, "value": p.output.value},
                    }
                )
        return {"role": self.role, "content": parts}


def user_message(text: str, image: ImagePart | None = None) -> Message:
    """Build a user turn: ``[Image, Text]`` with an image, a bare string without."""
    if image is None:
        return Message(role=ROLE_USER, content=text)
    return Message(role=ROLE_USER, content=[image, TextPart(text)])


# ---------------------------------------------------------------------------
# Reconciler events
# ---------------------------------------------------------------------------


@dataclass
class TextFragment:
    text: str
    kind: str = field(default="text-fragment", init=False)


@dataclass
class ToolCallAnnounced:
    id: str
    name: str
    input: dict[str, Any]
    kind: str = field(default="tool-call-announced", init=False)


@dataclass
class ToolResultReady:
    id: str
    name: str
    output: Any
    kind: str = field(default="tool-result-ready", init=False)


StreamEvent = Union[TextFragment, ToolCallAnnounced, ToolResultReady]


# ---------------------------------------------------------------------------
# Provider wire chunks
# ---------------------------------------------------------------------------


@dataclass
class RawToolDelta:
    """
    An incremental delta for a streaming tool call.

    Providers emit these as tool-call fragments arrive.  The ToolCallAssembler
    accumulates them and produces finished ``ToolCallAnnounced`` events.
    """

    call_index: int
    id: str | None = None
    name_delta: str = ""
    args_delta: str = ""
    done: bool = False


@dataclass
class StreamChunk:
    """
    A single chunk yielded by a provider while streaming a completion.

    *delta* carries new text content.
    *tool_deltas* carries incremental tool-call fragments.
    *done* is ``True`` on the final chunk.
    """

    delta: str = ""
    tool_deltas: list[RawToolDelta] | None = None
    done: bool = False


@dataclass
class SamplingConfig:
    temperature: float = 0.7
    max_output_tokens: int = 4096
