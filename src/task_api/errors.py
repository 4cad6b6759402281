from __future__ import annotations


class TaskError(Exception):
    """Base class for errors raised by the task service and its stores."""


# PUBLIC_INTERFACE
class TaskValidationError(TaskError):
    """
    A client payload or query parameter failed validation.

    Attributes:
        field: Name of the first offending field, as the client spelled it.
        message: Human-readable description returned to the client.
    """

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.message = message


# PUBLIC_INTERFACE
class TaskNotFoundError(TaskError):
    """No task exists with the requested id."""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task {task_id} not found")
        self.task_id = task_id


# PUBLIC_INTERFACE
class StoreError(TaskError):
    """The persistence backend failed (connectivity, constraint violation, ...)."""
