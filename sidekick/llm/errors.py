"""
Provider fault classification.

Raw provider failures are mapped onto a small set of user-facing categories
by case-insensitive substring matching on the fault text.  Categories are
checked in a fixed priority order and the first match wins.
"""

from __future__ import annotations

from enum import Enum


class ProviderError(Exception):
    """A non-retryable failure reported by (or while talking to) a provider."""


class ErrorCategory(Enum):
    UNAUTHORIZED = "unauthorized"
    RATE_LIMITED = "rate_limited"
    NETWORK_UNAVAILABLE = "network_unavailable"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


# Priority order matters: an "HTTP 401 ... timeout" fault is Unauthorized.
_PATTERNS: list[tuple[ErrorCategory, tuple[str, ...]]] = [
    (ErrorCategory.UNAUTHORIZED, ("401", "unauthorized")),
    (ErrorCategory.RATE_LIMITED, ("429", "rate limit")),
    (
        ErrorCategory.NETWORK_UNAVAILABLE,
        ("network", "fetch", "econnrefused", "connection refused", "connecterror"),
    ),
    (ErrorCategory.TIMEOUT, ("timeout", "timed out")),
]

USER_MESSAGES: dict[ErrorCategory, str] = {
    ErrorCategory.UNAUTHORIZED: (
        "Authentication error: Please check your API key configuration."
    ),
    ErrorCategory.RATE_LIMITED: (
        "Rate limit exceeded. Please try again in a few moments."
    ),
    ErrorCategory.NETWORK_UNAVAILABLE: (
        "Network error: Please check your internet connection."
    ),
    ErrorCategory.TIMEOUT: (
        "Request timeout: The service took too long to respond. Please try again."
    ),
    ErrorCategory.UNKNOWN: (
        "Sorry, I encountered an error while processing your request. Please try again."
    ),
}

NOT_CONFIGURED_MESSAGE = (
    "LLM service is not configured. Please add your API key to the environment."
)


def _fault_text(fault: BaseException) -> str:
    # httpx timeouts often carry an empty message; the class name still says
    # what happened (ReadTimeout, ConnectError, ...).
    return f"{type(fault).__name__}: {fault}".lower()


def classify_error(fault: BaseException) -> ErrorCategory:
    text = _fault_text(fault)
    for category, needles in _PATTERNS:
        if any(n in text for n in needles):
            return category
    return ErrorCategory.UNKNOWN


def user_facing_message(category: ErrorCategory) -> str:
    return USER_MESSAGES[category]


def describe_error(fault: BaseException) -> str:
    """Classify *fault* and return its fixed user-facing message."""
    return user_facing_message(classify_error(fault))
