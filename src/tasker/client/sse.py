"""
SSE Event Channel

Subscribes to task lifecycle events over Server-Sent Events. The SSE ``event``
field carries the event name and ``data`` carries a JSON payload.
"""

import json
import logging
from collections.abc import AsyncGenerator, AsyncIterator, Mapping
from contextlib import asynccontextmanager
from typing import Any

import httpx
from httpx_sse import EventSource, aconnect_sse

from tasker.types import ChannelEvent

logger = logging.getLogger(__name__)


class SseEventChannel:
    """Event channel over an httpx SSE stream.

    `sse_read_timeout` determines how long (in seconds) the subscription waits
    for a new event before failing. With the default of None it waits
    indefinitely. Connecting is bounded by `timeout`.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        timeout: float = 30,
        sse_read_timeout: float | None = None,
    ) -> None:
        self._client = client
        self.timeout = timeout
        self.sse_read_timeout = sse_read_timeout

    @asynccontextmanager
    async def subscribe(
        self,
        url: str,
        query: Mapping[str, str],
    ) -> AsyncGenerator[AsyncIterator[ChannelEvent], None]:
        logger.info(f"Connecting to SSE endpoint: {url}")
        async with aconnect_sse(
            self._client,
            "GET",
            url,
            params=dict(query),
            timeout=httpx.Timeout(self.timeout, read=self.sse_read_timeout),
        ) as event_source:
            event_source.response.raise_for_status()
            logger.debug("SSE connection established")
            try:
                yield self._iter_events(event_source)
            finally:
                logger.debug(f"Closing SSE connection to {url}")

    async def _iter_events(self, event_source: EventSource) -> AsyncIterator[ChannelEvent]:
        async for sse in event_source.aiter_sse():
            logger.debug(f"Received SSE event: {sse.event}")
            try:
                payload: Any = sse.json() if sse.data else {}
            except json.JSONDecodeError as exc:
                logger.warning(f"Skipping SSE event {sse.event!r} with undecodable data: {exc}")
                continue
            if not isinstance(payload, dict):
                payload = {"data": payload}
            yield ChannelEvent(sse.event, payload)
