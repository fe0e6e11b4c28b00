"""
Channel contracts the task session is built on.

A command channel performs one-shot requests (dispatch, terminate). An event
channel opens a subscription that pushes named lifecycle events. Anything
implementing these protocols can back a Tasker; see ``tasker.client.http``,
``tasker.client.sse`` and ``tasker.shared.memory`` for the bundled ones.
"""

from collections.abc import AsyncIterator, Mapping
from contextlib import AbstractAsyncContextManager
from typing import Any, Protocol

from tasker.types import ChannelEvent


class CommandChannel(Protocol):
    async def send(
        self,
        url: str,
        payload: Mapping[str, Any],
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """Send a single command and return the decoded response.

        At most one attempt is made. Failures are raised to the caller.
        """
        ...


class EventChannel(Protocol):
    def subscribe(
        self,
        url: str,
        query: Mapping[str, str],
    ) -> AbstractAsyncContextManager[AsyncIterator[ChannelEvent]]:
        """Open a subscription.

        Entering the returned context opens the subscription and raises if it
        cannot be opened. Iterating it yields events until the server closes
        the stream. Leaving the context closes the subscription.
        """
        ...
