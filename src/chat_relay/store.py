"""Append-only message log.

There is exactly one log shared by every client and every request; records
carry no conversation id and are ordered only by insertion.

Two backends:
    JsonlMessageStore   one JSON object per line on disk
    InMemoryMessageStore list arena, for tests and ``memory://``
"""
from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, Iterator, List, Union

from .errors import StorageError
from .models import SENDERS, Message

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _check_schema(message: Message) -> None:
    """Field-type checks only; empty or unset (None) text is allowed."""
    if message.sender not in SENDERS:
        raise StorageError(f"invalid sender {message.sender!r}; expected one of {SENDERS}")
    if message.text is not None and not isinstance(message.text, str):
        raise StorageError(f"text must be a string, got {type(message.text).__name__}")
    if not isinstance(message.timestamp, str):
        raise StorageError(f"timestamp must be an ISO-8601 string, got {type(message.timestamp).__name__}")


class MessageStore:
    """Common interface: ``append`` plus insertion-ordered reads."""

    def append(self, message: Message) -> Message:
        _check_schema(message)
        return self._append(message)

    def _append(self, message: Message) -> Message:
        raise NotImplementedError

    def all(self) -> List[Message]:
        raise NotImplementedError

    def __len__(self) -> int:
        return len(self.all())

    def __iter__(self) -> Iterator[Message]:
        return iter(self.all())


# -----------------------------
# In-memory arena
# -----------------------------
class InMemoryMessageStore(MessageStore):
    def __init__(self) -> None:
        self._rows: List[Message] = []
        self._lock = threading.Lock()

    def _append(self, message: Message) -> Message:
        with self._lock:
            self._rows.append(message)
        return message

    def all(self) -> List[Message]:
        with self._lock:
            return list(self._rows)

    def __len__(self) -> int:
        with self._lock:
            return len(self._rows)


# -----------------------------
# JSONL file
# -----------------------------
class JsonlMessageStore(MessageStore):
    """Disk-backed log: ``<path>`` holds one record per line.

    Writes are serialized through a re-entrant lock and fsync'd, so each
    ``append`` either lands as one complete line or raises ``StorageError``.
    """

    def __init__(self, path: PathLike) -> None:
        self.path = Path(path)
        self._lock = threading.RLock()
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"cannot create directory {self.path.parent}: {e}") from e

    def _append(self, message: Message) -> Message:
        try:
            line = json.dumps(message.to_dict(), ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise StorageError(f"record is not JSON-serializable: {e}") from e

        with self._lock:
            try:
                with self.path.open("a", encoding="utf-8") as f:
                    f.write(line + "\n")
                    f.flush()
                    os.fsync(f.fileno())
            except OSError as e:
                raise StorageError(f"failed to append to {self.path}: {e}") from e
        return message

    def all(self) -> List[Message]:
        with self._lock:
            if not self.path.exists():
                return []
            try:
                return list(self._read_rows())
            except OSError as e:
                raise StorageError(f"failed to read {self.path}: {e}") from e

    def _read_rows(self) -> Iterator[Message]:
        with self.path.open("r", encoding="utf-8") as f:
            for line_no, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    row: Dict[str, Any] = json.loads(line)
                    yield Message.from_dict(row)
                except (json.JSONDecodeError, KeyError, TypeError) as e:
                    logger.warning("Skipping corrupt line %d in %s: %s", line_no, self.path, e)


# -----------------------------
# Connection string
# -----------------------------
def open_store(url: str) -> MessageStore:
    """Build a store from a connection string.

    ``memory://``        in-process list (lost on restart)
    ``jsonl://<path>``   JSONL file at <path>
    ``<path>``           same as jsonl://
    """
    url = (url or "").strip()
    if not url:
        raise ValueError("storage url is empty")
    if url == "memory://":
        return InMemoryMessageStore()
    if url.startswith("jsonl://"):
        return JsonlMessageStore(url[len("jsonl://"):])
    if "://" in url:
        raise ValueError(f"unsupported storage url scheme: {url.split('://', 1)[0]!r}")
    return JsonlMessageStore(url)
