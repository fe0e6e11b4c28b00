import logging
from collections.abc import Mapping
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class HttpCommandChannel:
    """Command channel that POSTs JSON payloads with httpx."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def send(
        self,
        url: str,
        payload: Mapping[str, Any],
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        logger.debug(f"Sending command to {url}")
        response = await self._client.post(url, json=dict(payload), headers=headers)
        response.raise_for_status()
        logger.debug(f"Command to {url} completed: {response.status_code}")

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text
