"""Error taxonomy shared by the server pipeline and the client transport."""
from __future__ import annotations

from enum import Enum
from typing import Optional


class ChatRelayError(Exception):
    """Base class for every error raised by this package."""


class StorageError(ChatRelayError):
    """The persistence store could not append or read a record."""


class ProviderError(ChatRelayError):
    """The completion provider failed (network, auth, or malformed response)."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PipelineStep(str, Enum):
    PERSIST_USER = "persist_user"
    COMPLETE = "complete"
    PERSIST_BOT = "persist_bot"


class PipelineError(ChatRelayError):
    """One step of the chat pipeline failed.

    ``step`` tells which one. The HTTP layer deliberately ignores it and
    answers every pipeline failure with the same generic body.
    """

    def __init__(self, step: PipelineStep, cause: BaseException) -> None:
        super().__init__(f"chat pipeline failed at {step.value}: {cause}")
        self.step = step
        self.cause = cause


class TransportError(ChatRelayError):
    """The client could not obtain a reply from the chat endpoint."""
