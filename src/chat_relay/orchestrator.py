"""Server-side pipeline for one chat turn.

    persist user message -> complete -> persist bot reply -> return reply

The steps run strictly in order and nothing spans them: a failure at
step 2 or 3 leaves the step-1 record in place, and a client retry will
persist the user message again (there is no idempotency key).
"""
from __future__ import annotations

import logging
from typing import Callable, Optional

from fastapi.concurrency import run_in_threadpool

from .errors import PipelineError, PipelineStep
from .models import Message, Sender, utc_now_iso
from .provider import CompletionProvider
from .store import MessageStore

logger = logging.getLogger(__name__)


class ChatOrchestrator:
    def __init__(
        self,
        store: MessageStore,
        provider: CompletionProvider,
        *,
        clock: Optional[Callable[[], str]] = None,
    ) -> None:
        self.store = store
        self.provider = provider
        self._clock = clock or utc_now_iso

    async def handle(self, message: Optional[str]) -> str:
        """Run one turn and return the bot reply.

        Raises :class:`PipelineError` carrying the step that failed. A missing
        message (None) is still persisted and then rejected by the provider.
        """
        size = len(message) if isinstance(message, str) else -1
        logger.info("Chat turn started: chars=%d", size)

        await self._persist(PipelineStep.PERSIST_USER, "user", message)

        try:
            reply = await self.provider.complete(message)
        except Exception as e:
            logger.warning("Completion failed; user message stays persisted: %s", e)
            raise PipelineError(PipelineStep.COMPLETE, e) from e

        # If this fails the reply is discarded and the request fails.
        await self._persist(PipelineStep.PERSIST_BOT, "bot", reply)

        logger.info("Chat turn completed: reply_chars=%d", len(reply))
        return reply

    async def _persist(self, step: PipelineStep, sender: Sender, text: Optional[str]) -> Message:
        record = Message(sender=sender, text=text, timestamp=self._clock())
        try:
            # Store I/O is blocking; keep it off the event loop.
            return await run_in_threadpool(self.store.append, record)
        except Exception as e:
            logger.warning("Persisting %s message failed at %s: %s", sender, step.value, e)
            raise PipelineError(step, e) from e
