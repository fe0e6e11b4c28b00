"""HTTP client construction for Tasker instances that own their client."""

from typing import Any, Protocol

import httpx

from tasker.settings import TaskerSettings

__all__ = ["TaskerHttpClientFactory", "create_tasker_http_client"]


class TaskerHttpClientFactory(Protocol):
    def __call__(self, settings: TaskerSettings, **kwargs: Any) -> httpx.AsyncClient: ...


def create_tasker_http_client(settings: TaskerSettings, **kwargs: Any) -> httpx.AsyncClient:
    """Create the httpx AsyncClient used to talk to the task server.

    The client is rooted at ``settings.base_url`` and bounds every request by
    ``settings.timeout``. Commands use that bound as is; the event
    subscription widens its read timeout per request, so the client-wide
    value never cuts a quiet subscription short.

    Args:
        settings: Settings of the Tasker that owns the client.
        **kwargs: Passed to httpx.AsyncClient, overriding the values derived
            from ``settings`` (e.g. ``transport``, ``auth``, ``verify``).

    Returns:
        An unopened httpx.AsyncClient; the caller enters and closes it.
    """
    client_kwargs: dict[str, Any] = {
        "base_url": settings.base_url,
        "follow_redirects": True,
        "timeout": httpx.Timeout(settings.timeout),
    }
    client_kwargs.update(kwargs)
    return httpx.AsyncClient(**client_kwargs)
