"""System prompt builder."""

from __future__ import annotations

from sidekick.tools.base import Tool

DEFAULT_MAX_CONTEXT_CHARS = 4000


def truncate_text(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


def build_system_prompt(
    url: str | None = None,
    page_text: str | None = None,
    tools: list[Tool] | None = None,
    max_context_chars: int = DEFAULT_MAX_CONTEXT_CHARS,
) -> str:
    """
    Build the system prompt for one submission.

    Describes the browser-assistant role and embeds whatever page context is
    available: the current URL and the page text, truncated to
    *max_context_chars*.
    """
    parts: list[str] = [
        "You are a helpful AI assistant integrated into a web browser.",
        "You can analyze and discuss web pages with the user.",
        "The user's messages may include screenshots of the current page as the first image.",
    ]

    if url:
        parts.append(f"\nCurrent page URL: {url}")

    if page_text:
        parts.append(f"\nPage content (text):\n{truncate_text(page_text, max_context_chars)}")

    if tools:
        tool_lines = [f"- {t.name}: {t.description}" for t in tools]
        parts.append("\nAvailable tools:\n" + "\n".join(tool_lines))

    parts.append(
        "\nPlease provide helpful, accurate, and contextual responses about the current webpage."
    )
    parts.append(
        "If the user asks about specific content, refer to the page content and/or screenshot provided."
    )

    return "\n".join(parts)
