"""Abstract base class for LLM providers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncIterator

from sidekick.llm.types import Message, SamplingConfig, StreamChunk

RETRYABLE_STATUS = {408, 409, 429}


def is_retryable_status(status_code: int) -> bool:
    return status_code in RETRYABLE_STATUS or status_code >= 500


class Provider(ABC):
    """
    A provider encapsulates access to a single LLM endpoint.

    Implementations stream chat completions (``chat``) and translate the
    conversation's content parts into their own wire format.  Retries on
    transient failures are the provider's responsibility.
    """

    @abstractmethod
    async def chat(
        self,
        messages: list[Message],
        tools: list[dict] | None = None,
        sampling: SamplingConfig | None = None,
    ) -> AsyncIterator[StreamChunk]:
        """
        Start a streaming chat completion.

        *tools* are neutral schemas (``{"name", "description", "parameters"}``).
        Yields ``StreamChunk`` objects.  The last chunk has ``done=True``.
        """
        ...
        # Make the method an async generator so sub-classes can ``yield``.
        if False:  # pragma: no cover
            yield StreamChunk()  # type: ignore[misc]

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable provider name (e.g. ``"openai"``)."""
        ...

    @property
    def model(self) -> str | None:
        return None
