"""
Task session state machine.

A session follows one task on the server. It subscribes to the task's events,
dispatches the task input once the server activates the task, and folds the
remaining events into a single outcome:

    PENDING --activate--> ACTIVATED --success--> SUCCEEDED
       |                      |
       +-------error / dispatch failure--------> FAILED
       +-------terminate notice----------------> TERMINATED

A termination notice only settles the outcome when the client is configured
with ``settle_on_terminate``; otherwise a later success or error still does.
"""

import inspect
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping
from enum import Enum
from typing import Any

import anyio
from anyio.abc import TaskGroup, TaskStatus
from pydantic import ValidationError

from tasker.client.channels import CommandChannel, EventChannel
from tasker.settings import TaskerSettings
from tasker.shared.exceptions import (
    SessionClosedError,
    TaskFailedError,
    TaskNotActivatedError,
    TaskTerminatedError,
)
from tasker.shared.outcome import TaskOutcome
from tasker.types import ChannelEvent, TaskEvent, TaskId, TaskObservers

logger = logging.getLogger(__name__)

EventHandler = Callable[[TaskEvent], Awaitable[None]]


class TaskState(str, Enum):
    PENDING = "pending"
    ACTIVATED = "activated"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TERMINATED = "terminated"


class TaskSession:
    """Client-side state machine for a single task.

    Use ``run`` inside a task group (``await tg.start(session.run)``); it
    returns control once the event subscription is open and keeps following
    the task until the outcome settles or the session is closed.

    All state changes happen on the task running ``run`` or on the dispatch
    task it spawns. The session is marked settled before any observer is
    awaited, so only the first terminal signal settles the outcome or reaches
    an observer.
    """

    def __init__(
        self,
        settings: TaskerSettings,
        command_channel: CommandChannel,
        event_channel: EventChannel,
        *,
        task_id: TaskId | None = None,
        data: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        observers: TaskObservers | None = None,
        dispatch: bool = True,
    ) -> None:
        self._settings = settings
        self._command_channel = command_channel
        self._event_channel = event_channel
        self._task_id = task_id
        self._data = dict(data or {})
        self._headers = dict(headers) if headers is not None else None
        self._observers = observers or TaskObservers()
        self._dispatch_on_activate = dispatch

        self._state = TaskState.PENDING
        self._settled = False
        self._outcome: TaskOutcome[Any] = TaskOutcome()
        self._task_group: TaskGroup | None = None
        self._handlers: dict[str, EventHandler] = {
            settings.activate_event: self._on_activate,
            settings.progress_event: self._on_progress,
            settings.success_event: self._on_success,
            settings.error_event: self._on_error,
            settings.terminate_event: self._on_terminate,
        }

    @property
    def task_id(self) -> TaskId | None:
        """The task identifier, or None until the server activates the task."""
        return self._task_id

    @property
    def state(self) -> TaskState:
        return self._state

    @property
    def outcome(self) -> TaskOutcome[Any]:
        return self._outcome

    async def terminate(self) -> Any:
        """Ask the server to cancel the task.

        The request is advisory: the session keeps observing, and the server is
        expected to follow up with an error or termination event.

        Raises:
            TaskNotActivatedError: If the task identifier is not known yet. No
                command is sent in that case.
        """
        if self._task_id is None:
            raise TaskNotActivatedError()

        logger.info(f"Requesting termination of task {self._task_id}")
        return await self._command_channel.send(self._settings.terminate_url, {"task_id": self._task_id})

    def close(self) -> None:
        """Stop observing the task locally. The server is not contacted."""
        if self._task_group is not None:
            self._task_group.cancel_scope.cancel()

    async def run(self, *, task_status: TaskStatus[None] = anyio.TASK_STATUS_IGNORED) -> None:
        query = {"task_id": self._task_id} if self._task_id is not None else {}
        try:
            async with self._event_channel.subscribe(self._settings.subscription_url, query) as events:
                logger.info(f"Subscribed to task events at {self._settings.subscription_url}")
                task_status.started()
                async with anyio.create_task_group() as tg:
                    self._task_group = tg
                    try:
                        await self._consume(events)
                    except Exception as exc:
                        logger.warning(f"Event subscription failed: {exc!r}")
                        await self._reject(exc)
                    finally:
                        # Stops an in-flight dispatch once the outcome is known.
                        tg.cancel_scope.cancel()
        finally:
            self._task_group = None
            if self._outcome.set_error(SessionClosedError("Task session closed before the task settled")):
                self._settled = True
                self._state = TaskState.FAILED
            logger.debug(f"Task session for {self._task_id} finished in state {self._state.value}")

    async def _consume(self, events: AsyncIterator[ChannelEvent]) -> None:
        async for event in events:
            await self._handle(event)
            if self._settled:
                return
        await self._reject(SessionClosedError("Event subscription closed before the task settled"))

    async def _handle(self, event: ChannelEvent) -> None:
        handler = self._handlers.get(event.name)
        if handler is None:
            logger.debug(f"Ignoring unknown event {event.name!r}")
            return

        try:
            task_event = TaskEvent.model_validate(event.payload)
        except ValidationError as exc:
            logger.warning(f"Skipping malformed {event.name!r} event: {exc}")
            return

        if self._task_id is not None and task_event.task_id != self._task_id:
            logger.warning(f"Ignoring {event.name!r} event for task {task_event.task_id}, following {self._task_id}")
            return
        if self._settled:
            logger.debug(f"Ignoring {event.name!r} event, task {self._task_id} already settled")
            return

        logger.debug(f"Handling {event.name!r} event for task {task_event.task_id}")
        await handler(task_event)

    async def _on_activate(self, event: TaskEvent) -> None:
        if self._state is not TaskState.PENDING:
            logger.warning(f"Ignoring repeated activation of task {event.task_id}")
            return

        self._task_id = event.task_id
        self._state = TaskState.ACTIVATED
        logger.info(f"Task {event.task_id} activated")

        if self._dispatch_on_activate and self._task_group is not None:
            self._task_group.start_soon(self._dispatch, event.task_id)

    async def _on_progress(self, event: TaskEvent) -> None:
        await self._notify(self._observers.on_progress, event)

    async def _on_success(self, event: TaskEvent) -> None:
        await self._settle(TaskState.SUCCEEDED, self._observers.on_success, event, result=event.data)

    async def _on_error(self, event: TaskEvent) -> None:
        await self._reject(TaskFailedError(event))

    async def _on_terminate(self, event: TaskEvent) -> None:
        logger.info(f"Task {event.task_id} terminated")
        if self._settings.settle_on_terminate:
            await self._settle(
                TaskState.TERMINATED, self._observers.on_terminate, event, error=TaskTerminatedError(event)
            )
            return

        self._state = TaskState.TERMINATED
        await self._notify(self._observers.on_terminate, event)

    async def _dispatch(self, task_id: TaskId) -> None:
        payload = {"task_id": task_id, **self._data}
        try:
            await self._command_channel.send(self._settings.dispose_url, payload, self._headers)
        except Exception as exc:
            logger.warning(f"Dispatch of task {task_id} failed: {exc!r}")
            if await self._reject(exc):
                self.close()
            return
        logger.debug(f"Task {task_id} dispatched")

    async def _reject(self, error: Exception) -> bool:
        return await self._settle(TaskState.FAILED, self._observers.on_error, error, error=error)

    async def _settle(
        self,
        state: TaskState,
        observer: Callable[[Any], Any] | None,
        observed: Any,
        *,
        result: Any = None,
        error: Exception | None = None,
    ) -> bool:
        if self._settled:
            return False
        self._settled = True
        self._state = state

        # A cancelled observer still leaves the outcome recorded.
        try:
            await self._notify(observer, observed)
        finally:
            if error is not None:
                self._outcome.set_error(error)
            else:
                self._outcome.set_result(result)
            logger.debug(f"Task {self._task_id} settled as {state.value}")
        return True

    async def _notify(self, observer: Callable[[Any], Any] | None, value: Any) -> None:
        if observer is None:
            return
        try:
            result = observer(value)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Task observer raised")
