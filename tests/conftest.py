"""Pytest configuration and shared fixtures."""
from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import List, Optional

import pytest

# Ensure src/ is on the import path (for local imports without installing as package)
SRC_PATH = Path(__file__).resolve().parent.parent / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from chat_relay.errors import ProviderError, StorageError  # noqa: E402
from chat_relay.models import Message  # noqa: E402
from chat_relay.store import InMemoryMessageStore  # noqa: E402


class FakeProvider:
    """Completion provider double: fixed reply or a raised error."""

    def __init__(self, reply: str = "hi there", error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.calls: List[str] = []

    async def complete(self, text: str) -> str:
        self.calls.append(text)
        if not isinstance(text, str):
            raise ProviderError(f"completion input must be a string, got {type(text).__name__}")
        if self.error is not None:
            raise self.error
        return self.reply


class FlakyStore(InMemoryMessageStore):
    """In-memory store whose N-th append (1-based) raises StorageError."""

    def __init__(self, fail_on: int):
        super().__init__()
        self.fail_on = fail_on
        self.attempts = 0

    def append(self, message: Message) -> Message:
        self.attempts += 1
        if self.attempts == self.fail_on:
            raise StorageError("database unavailable")
        return super().append(message)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch):
    """Ensure tests run with a clean environment (no leftover vars)."""
    for var in list(os.environ):
        if var.startswith("CHAT_RELAY__"):
            monkeypatch.delenv(var, raising=False)
    for var in ["CHAT_RELAY_CONFIG", "OPENAI_API_KEY"]:
        monkeypatch.delenv(var, raising=False)
    yield


@pytest.fixture
def store() -> InMemoryMessageStore:
    return InMemoryMessageStore()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider(reply="Hello! How can I help?")


@pytest.fixture
def failing_provider() -> FakeProvider:
    return FakeProvider(error=ProviderError("upstream 503", status_code=503))


@pytest.fixture
def missing_config(tmp_path: Path) -> str:
    """Path to a config file that does not exist (forces built-in defaults)."""
    return str(tmp_path / "absent.yaml")


@pytest.fixture
def memory_config(tmp_path: Path) -> str:
    """Config whose default store lives in memory, so no test writes to the cwd."""
    path = tmp_path / "memory.yaml"
    path.write_text("storage:\n  url: memory://\n", encoding="utf-8")
    return str(path)


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Run each test from a scratch directory so relative data paths never hit the checkout."""
    monkeypatch.chdir(tmp_path)
    yield
