"""LLM subsystem -- providers, routing, and streaming tool-call assembly."""

from sidekick.llm.errors import ErrorCategory, ProviderError, classify_error
from sidekick.llm.router import LLMRouter
from sidekick.llm.tool_call_assembler import ToolCallAssembler
from sidekick.llm.types import (
    ImagePart,
    Message,
    RawToolDelta,
    ResultEnvelope,
    SamplingConfig,
    StreamChunk,
    StreamEvent,
    TextFragment,
    TextPart,
    ToolCallAnnounced,
    ToolCallPart,
    ToolResultPart,
    ToolResultReady,
)

__all__ = [
    "ErrorCategory",
    "ImagePart",
    "LLMRouter",
    "Message",
    "ProviderError",
    "RawToolDelta",
    "ResultEnvelope",
    "SamplingConfig",
    "StreamChunk",
    "StreamEvent",
    "TextFragment",
    "TextPart",
    "ToolCallAnnounced",
    "ToolCallAssembler",
    "ToolCallPart",
    "ToolResultPart",
    "ToolResultReady",
    "classify_error",
]
