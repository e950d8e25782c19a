"""External services the assistant's tools talk to."""

from sidekick.backends.task_server import BackendError, TaskServerClient

__all__ = ["BackendError", "TaskServerClient"]
