"""
Tasker client.

Entry points for handing work to a task server and following it:

    async with Tasker(base_url="http://localhost:8000") as tasker:
        handle = await tasker.dispose({"video": "cat.mp4"}, on_progress=show_progress)
        result = await handle.outcome

``dispose`` starts a new task; ``join`` attaches to a task that is already
running, for instance after a reconnect or from a second client.
"""

import logging
from collections.abc import Mapping
from contextlib import AsyncExitStack
from dataclasses import dataclass
from types import TracebackType
from typing import Any

import anyio
import httpx
from anyio.abc import TaskGroup
from typing_extensions import Self

from tasker.client.channels import CommandChannel, EventChannel
from tasker.client.http import HttpCommandChannel
from tasker.client.session import TaskSession, TaskState
from tasker.client.sse import SseEventChannel
from tasker.settings import TaskerSettings
from tasker.shared._httpx_utils import TaskerHttpClientFactory, create_tasker_http_client
from tasker.shared.outcome import TaskOutcome
from tasker.types import TaskErrorFnT, TaskEventFnT, TaskId, TaskObservers

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaskHandle:
    """Caller's view of one task: a terminate operation and the outcome."""

    session: TaskSession

    @property
    def outcome(self) -> TaskOutcome[Any]:
        """Resolves with the success data, or raises the task's error."""
        return self.session.outcome

    @property
    def task_id(self) -> TaskId | None:
        return self.session.task_id

    @property
    def state(self) -> TaskState:
        return self.session.state

    async def terminate(self) -> Any:
        """Ask the server to cancel the task. See ``TaskSession.terminate``."""
        return await self.session.terminate()

    def detach(self) -> None:
        """Stop following the task without cancelling it on the server.

        An unsettled outcome is rejected with ``SessionClosedError``.
        """
        self.session.close()


class Tasker:
    """Client for a task server.

    Configuration comes from ``settings`` or, when it is omitted, from
    keyword arguments and ``TASKER_*`` environment variables (see
    ``TaskerSettings``).

    This class is an async context manager. Entering it opens the HTTP
    client and the task group that hosts every task session; leaving it stops
    all sessions that are still running. Channels and the HTTP client can be
    injected, in which case the caller owns their lifetime.
    """

    def __init__(
        self,
        settings: TaskerSettings | None = None,
        *,
        command_channel: CommandChannel | None = None,
        event_channel: EventChannel | None = None,
        http_client: httpx.AsyncClient | None = None,
        httpx_client_factory: TaskerHttpClientFactory = create_tasker_http_client,
        **config: Any,
    ) -> None:
        if settings is not None and config:
            raise ValueError("Pass either settings or configuration keywords, not both")

        self.settings = settings or TaskerSettings(**config)
        self._command_channel = command_channel
        self._event_channel = event_channel
        self._http_client = http_client
        self._httpx_client_factory = httpx_client_factory
        self._exit_stack = AsyncExitStack()
        self._task_group: TaskGroup | None = None

    async def __aenter__(self) -> Self:
        if self._command_channel is None or self._event_channel is None:
            client = self._http_client
            if client is None:
                client = await self._exit_stack.enter_async_context(
                    self._httpx_client_factory(self.settings)
                )
            if self._command_channel is None:
                self._command_channel = HttpCommandChannel(client)
            if self._event_channel is None:
                self._event_channel = SseEventChannel(
                    client,
                    timeout=self.settings.timeout,
                    sse_read_timeout=self.settings.sse_read_timeout,
                )

        self._task_group = anyio.create_task_group()
        await self._task_group.__aenter__()
        logger.debug(f"Tasker client started for {self.settings.base_url}")
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> bool | None:
        assert self._task_group is not None
        task_group, self._task_group = self._task_group, None
        # Leaving the client should not wait for tasks that may never settle.
        task_group.cancel_scope.cancel()
        try:
            return await task_group.__aexit__(exc_type, exc_val, exc_tb)
        finally:
            await self._exit_stack.aclose()
            logger.debug(f"Tasker client for {self.settings.base_url} closed")

    async def dispose(
        self,
        data: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        *,
        on_progress: TaskEventFnT | None = None,
        on_success: TaskEventFnT | None = None,
        on_error: TaskErrorFnT | None = None,
        on_terminate: TaskEventFnT | None = None,
    ) -> TaskHandle:
        """Start a new task.

        The server assigns the task identifier and announces it with the
        activation event; the task data is dispatched then. Until that happens
        ``terminate`` raises ``TaskNotActivatedError``.

        Args:
            data: Task input, merged into the dispatch payload next to ``task_id``
            headers: Request headers sent with the dispatch command only
            on_progress: Called with each progress event
            on_success: Called with the success event before the outcome resolves
            on_error: Called with the error before the outcome rejects
            on_terminate: Called with each termination notice

        Returns:
            A handle returned as soon as the event subscription is open.
        """
        session = self._new_session(
            data=data,
            headers=headers,
            observers=TaskObservers(on_progress, on_success, on_error, on_terminate),
            dispatch=True,
        )
        return await self._start(session)

    async def join(
        self,
        task_id: TaskId,
        headers: Mapping[str, str] | None = None,
        *,
        on_progress: TaskEventFnT | None = None,
        on_success: TaskEventFnT | None = None,
        on_error: TaskErrorFnT | None = None,
        on_terminate: TaskEventFnT | None = None,
    ) -> TaskHandle:
        """Attach to a task that is already running.

        No task data is dispatched, and ``terminate`` can be used right away.
        ``headers`` is accepted for symmetry with ``dispose``; join sends no
        dispatch command, so they are never sent.
        """
        if not task_id:
            raise ValueError("task_id is required to join a task")

        session = self._new_session(
            task_id=task_id,
            headers=headers,
            observers=TaskObservers(on_progress, on_success, on_error, on_terminate),
            dispatch=False,
        )
        return await self._start(session)

    def _new_session(self, **kwargs: Any) -> TaskSession:
        if self._task_group is None or self._command_channel is None or self._event_channel is None:
            raise RuntimeError("Tasker must be used as an async context manager")
        return TaskSession(self.settings, self._command_channel, self._event_channel, **kwargs)

    async def _start(self, session: TaskSession) -> TaskHandle:
        assert self._task_group is not None
        await self._task_group.start(session.run)
        return TaskHandle(session)
