from dataclasses import dataclass, field
from typing import Any


@dataclass
class ToolResult:
    success: bool
    message: str | None = None
    data: dict[str, Any] = field(default_factory=dict)
    error_code: str | None = None

    def to_output(self) -> dict[str, Any]:
        """The shape the model sees: ``{success, message?, ...data}``."""
        out: dict[str, Any] = {"success": self.success}
        if self.message is not None:
            out["message"] = self.message
        out.update(self.data)
        return out

    @classmethod
    def failure(cls, message: str, error_code: str) -> "ToolResult":
        return cls(success=False, message=message, error_code=error_code)


class ErrorCode:
    VALIDATION_ERROR = "validation_error"
    TIMEOUT = "timeout"
    TOOL_EXCEPTION = "tool_exception"
    UNKNOWN_TOOL = "unknown_tool"
    BACKEND_ERROR = "backend_error"


class InvalidState(RuntimeError):
    """A conversation mutation was attempted outside its allowed window."""


class OperationCancelled(Exception):
    """Raised when a cancellation token fires during a submission."""
