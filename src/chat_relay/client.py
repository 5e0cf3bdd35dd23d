"""Client-side transport: one HTTP call per user turn."""
from __future__ import annotations

import logging
from typing import Optional

import httpx

from .errors import TransportError

logger = logging.getLogger(__name__)

CHAT_PATH = "/api/chat"


class ChatAPIClient:
    """Send one message, get one reply.

    Stateless: only ``{"message": text}`` goes over the wire, never prior
    turns or a conversation id. Nothing is retried.
    """

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:5000",
        *,
        timeout: float = 60.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def send(self, text: str) -> str:
        url = f"{self.base_url}{CHAT_PATH}"
        try:
            r = await self._client.post(url, json={"message": text})
            r.raise_for_status()
        except httpx.HTTPError as e:
            raise TransportError(f"chat request failed: {e}") from e

        try:
            data = r.json()
        except ValueError as e:
            raise TransportError("chat endpoint returned invalid JSON") from e

        reply = data.get("reply") if isinstance(data, dict) else None
        if not isinstance(reply, str):
            raise TransportError("chat endpoint response has no 'reply' string")
        return reply

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "ChatAPIClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()
