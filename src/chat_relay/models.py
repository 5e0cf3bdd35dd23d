"""Value types for persisted messages, client list entries and the wire schema."""
from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field

Sender = Literal["user", "bot"]
SENDERS = ("user", "bot")


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


# -----------------------------
# Server-side record
# -----------------------------
@dataclass(frozen=True)
class Message:
    """One persisted turn half. Never updated once created."""

    sender: Sender
    text: Optional[str]  # None when the request carried no message
    timestamp: str  # ISO-8601, assigned by the server

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Message":
        return cls(sender=data["sender"], text=data["text"], timestamp=data["timestamp"])


# -----------------------------
# Client-side list entry
# -----------------------------
@dataclass(frozen=True)
class ChatEntry:
    sender: Sender
    text: str


# -----------------------------
# Pydantic request/response
# -----------------------------
class ChatRequest(BaseModel):
    # Only presence matters; a missing message fails inside the pipeline.
    message: Optional[str] = Field(default=None, description="The user's message text.")


class ChatResponse(BaseModel):
    reply: str


class ErrorResponse(BaseModel):
    error: str
