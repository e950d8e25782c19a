"""Page context supplied by the host application."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass
class PageContext:
    url: str | None = None
    text: str | None = None


class ContextProvider(Protocol):
    """Whatever the host shell knows about the page the user is looking at."""

    async def page_context(self) -> PageContext: ...


class StaticContextProvider:
    """Returns a fixed page context (or none at all)."""

    def __init__(self, url: str | None = None, text: str | None = None) -> None:
        self._context = PageContext(url=url, text=text)

    def update(self, url: str | None = None, text: str | None = None) -> None:
        self._context = PageContext(url=url, text=text)

    async def page_context(self) -> PageContext:
        return self._context
