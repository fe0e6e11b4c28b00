from collections.abc import Awaitable
from dataclasses import dataclass, field
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict

TaskId = str


class TaskEvent(BaseModel):
    """Payload of a task lifecycle event pushed by the server."""

    model_config = ConfigDict(extra="allow")

    task_id: TaskId
    data: Any = None


@dataclass(frozen=True)
class ChannelEvent:
    """A named event as delivered by an event channel, before validation."""

    name: str
    payload: dict[str, Any] = field(default_factory=dict)


class TaskEventFnT(Protocol):
    """Protocol for progress, success and termination observers.

    Both plain functions and coroutine functions are accepted.
    """

    def __call__(self, event: TaskEvent) -> Awaitable[None] | None: ...


class TaskErrorFnT(Protocol):
    """Protocol for error observers."""

    def __call__(self, error: Exception) -> Awaitable[None] | None: ...


@dataclass(frozen=True)
class TaskObservers:
    on_progress: TaskEventFnT | None = None
    on_success: TaskEventFnT | None = None
    on_error: TaskErrorFnT | None = None
    on_terminate: TaskEventFnT | None = None
