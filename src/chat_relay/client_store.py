"""Client-side message list and its update rules.

The list is what the user sees. It only ever grows:

* ``submit`` appends the user's entry immediately (optimistic) and starts
  one request.
* A successful request appends the bot entry to whatever the list holds
  *at that moment*, so replies land in completion order and never clobber
  entries added by other in-flight submissions.
* A failed request changes nothing. The user's entry stays without a
  reply and no error entry is injected; the failure is only logged.

Everything runs on one event loop, so updates never interleave mid-way.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Callable, List, Optional, Protocol, Set, Tuple

from .models import ChatEntry

logger = logging.getLogger(__name__)

Entries = Tuple[ChatEntry, ...]
Listener = Callable[[Entries], None]


class SupportsSend(Protocol):
    async def send(self, text: str) -> str:
        ...


class ClientMessageStore:
    def __init__(self, client: SupportsSend) -> None:
        self._client = client
        self._entries: Entries = ()
        self._pending: Set["asyncio.Task[None]"] = set()
        self._listeners: List[Listener] = []

    # ----- reads -----
    @property
    def messages(self) -> Entries:
        return self._entries

    @property
    def pending(self) -> int:
        return len(self._pending)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener(entries)`` after every change; returns an unsubscribe."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ----- writes -----
    def submit(self, text: str) -> Optional["asyncio.Task[None]"]:
        """Show ``text`` as a user entry and request a reply for it.

        Blank input is ignored: no entry, no request, returns ``None``.
        Must be called from a running event loop.
        """
        if not text or not text.strip():
            return None

        self._update(lambda current: current + (ChatEntry("user", text),))

        task = asyncio.get_running_loop().create_task(self._exchange(text))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self) -> None:
        """Wait until every in-flight request has settled."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # ----- internals -----
    async def _exchange(self, text: str) -> None:
        try:
            reply = await self._client.send(text)
        except Exception as e:
            logger.warning("No reply for submitted message (chars=%d): %s", len(text), e)
            return
        self._update(lambda current: current + (ChatEntry("bot", reply),))

    def _update(self, fn: Callable[[Entries], Entries]) -> None:
        self._entries = fn(self._entries)
        for listener in list(self._listeners):
            # A broken listener must not block the request or the other listeners.
            try:
                listener(self._entries)
            except Exception:
                logger.exception("Message list listener %r failed", listener)
