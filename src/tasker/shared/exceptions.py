from typing import Any

from tasker.types import TaskEvent


class TaskerError(Exception):
    """Base exception for Tasker client errors."""


class TaskNotActivatedError(TaskerError):
    """Raised when terminate is requested before the task identifier is known.

    No command is sent to the server in this case.
    """

    def __init__(self, message: str = "Task not activated"):
        super().__init__(message)


class _TaskEventError(TaskerError):
    default_message = "Task event"

    event: TaskEvent

    def __init__(self, event: TaskEvent):
        super().__init__(_describe(event.data) or self.default_message)
        self.event = event

    @property
    def task_id(self) -> str:
        return self.event.task_id

    @property
    def data(self) -> Any:
        return self.event.data


class TaskFailedError(_TaskEventError):
    """Exception raised when the server reports that a task failed.

    Attributes:
        event: The error event received on the subscription, including the
               task identifier and whatever data the server attached
    """

    default_message = "Task failed"


class TaskTerminatedError(_TaskEventError):
    """Raised for a termination event when the client is set to settle on termination."""

    default_message = "Task terminated"


class SessionClosedError(TaskerError):
    """Raised when a task session stops observing the task before it settled."""


def _describe(data: Any) -> str | None:
    if isinstance(data, str):
        return data
    if isinstance(data, dict) and isinstance(data.get("message"), str):
        return data["message"]
    return None
