"""Completion provider: one input string in, one reply string out.

Talks to an OpenAI-compatible ``/chat/completions`` endpoint with a fixed
model. No conversation history is ever sent; the only message besides the
user's text is an optional fixed system prompt.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from .config import get_api_key
from .errors import ProviderError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-3.5-turbo"


def make_timeout(read_seconds: float = 30.0) -> httpx.Timeout:
    # Bounded on every phase; nothing is retried.
    return httpx.Timeout(connect=5.0, read=float(read_seconds), write=10.0, pool=5.0)


class CompletionProvider:
    """Adapter to the external completion API.

    Parameters
    ----------
    api_key : str | None
        Bearer token. ``complete`` fails with :class:`ProviderError` when unset.
    model : str
        Fixed model identifier sent with every request.
    base_url : str
        API root, e.g. ``https://api.openai.com/v1``.
    system_prompt : str | None
        Optional fixed instruction prepended to every request.
    client : httpx.AsyncClient | None
        Injected client (tests). When omitted one is created and owned.
    """

    def __init__(
        self,
        api_key: Optional[str],
        *,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        system_prompt: Optional[str] = None,
        timeout: Optional[httpx.Timeout] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.system_prompt = system_prompt
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout or make_timeout())

    async def complete(self, text: str) -> str:
        if not self.api_key:
            raise ProviderError("completion API key is not configured")
        if not isinstance(text, str):
            raise ProviderError(f"completion input must be a string, got {type(text).__name__}")

        url = f"{self.base_url}/chat/completions"
        headers = {"Authorization": f"Bearer {self.api_key}"}
        payload = {"model": self.model, "messages": self._build_messages(text)}

        logger.debug("Requesting completion model=%s chars=%d", self.model, len(text))
        try:
            r = await self._client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise ProviderError(f"completion request failed: {e}") from e

        if r.status_code // 100 != 2:
            raise ProviderError(
                f"completion API returned HTTP {r.status_code}: {r.text[:200]}",
                status_code=r.status_code,
            )

        try:
            data = r.json()
        except ValueError as e:
            raise ProviderError("completion API returned invalid JSON") from e
        return _extract_reply(data)

    def _build_messages(self, text: str) -> List[Dict[str, str]]:
        msgs: List[Dict[str, str]] = []
        if self.system_prompt:
            msgs.append({"role": "system", "content": self.system_prompt})
        msgs.append({"role": "user", "content": text})
        return msgs

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def _extract_reply(data: Any) -> str:
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as e:
        raise ProviderError(f"malformed completion response: missing {e}") from e
    if not isinstance(content, str):
        raise ProviderError("malformed completion response: content is not a string")
    return content


def create_from_config(cfg: Dict[str, Any]) -> CompletionProvider:
    """Create a CompletionProvider from a config dict (see config.DEFAULTS)."""
    c = (cfg or {}).get("completion", {}) if isinstance(cfg, dict) else {}
    return CompletionProvider(
        get_api_key(cfg),
        model=str(c.get("model") or DEFAULT_MODEL),
        base_url=str(c.get("base_url") or DEFAULT_BASE_URL),
        system_prompt=c.get("system_prompt") or None,
        timeout=make_timeout(float(c.get("timeout_seconds", 30))),
    )
