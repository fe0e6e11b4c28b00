"""
In-memory channels for testing and for wiring a Tasker to an in-process server.
"""

from collections.abc import AsyncGenerator, AsyncIterator, Awaitable, Callable, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

import anyio
from anyio.streams.memory import MemoryObjectSendStream

from tasker.types import ChannelEvent


@dataclass
class SentCommand:
    url: str
    payload: dict[str, Any]
    headers: dict[str, str] | None = None


CommandHandler = Callable[[SentCommand], Awaitable[Any]]


class MemoryCommandChannel:
    """Command channel that records every command it is asked to send.

    An optional handler produces the response, or raises to simulate a
    transport failure.
    """

    def __init__(self, handler: CommandHandler | None = None) -> None:
        self.sent: list[SentCommand] = []
        self._handler = handler

    async def send(
        self,
        url: str,
        payload: Mapping[str, Any],
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        command = SentCommand(url, dict(payload), dict(headers) if headers is not None else None)
        self.sent.append(command)
        if self._handler is None:
            return None
        return await self._handler(command)

    def sent_to(self, url: str) -> list[SentCommand]:
        return [command for command in self.sent if command.url == url]


@dataclass
class MemorySubscription:
    url: str
    query: dict[str, str]
    _writer: MemoryObjectSendStream[ChannelEvent] = field(repr=False)
    closed: bool = False


class MemoryEventChannel:
    """Event channel whose events are published by the test (or an in-process server)."""

    def __init__(self, max_buffer_size: float = 100) -> None:
        self.subscriptions: list[MemorySubscription] = []
        self._max_buffer_size = max_buffer_size

    @property
    def open_subscriptions(self) -> list[MemorySubscription]:
        return [subscription for subscription in self.subscriptions if not subscription.closed]

    @asynccontextmanager
    async def subscribe(
        self,
        url: str,
        query: Mapping[str, str],
    ) -> AsyncGenerator[AsyncIterator[ChannelEvent], None]:
        writer, reader = anyio.create_memory_object_stream[ChannelEvent](self._max_buffer_size)
        subscription = MemorySubscription(url, dict(query), writer)
        self.subscriptions.append(subscription)
        try:
            async with reader:
                yield reader
        finally:
            subscription.closed = True
            await writer.aclose()

    async def publish(self, name: str, payload: Mapping[str, Any] | None = None) -> int:
        """Push an event to every open subscription.

        Returns:
            The number of subscriptions the event was delivered to.
        """
        delivered = 0
        for subscription in self.open_subscriptions:
            try:
                await subscription._writer.send(ChannelEvent(name, dict(payload or {})))
                delivered += 1
            except (anyio.BrokenResourceError, anyio.ClosedResourceError):
                subscription.closed = True
        return delivered

    async def close(self) -> None:
        """End every open subscription from the server side."""
        for subscription in self.open_subscriptions:
            await subscription._writer.aclose()
