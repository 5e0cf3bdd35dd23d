from __future__ import annotations

import asyncio
import json
from typing import List

import httpx
import pytest

from chat_relay.client import ChatAPIClient
from chat_relay.errors import TransportError
from chat_relay.server import create_app

from conftest import FakeProvider


def _client(handler) -> ChatAPIClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ChatAPIClient("http://chat.local/", client=http)


def test_send_posts_only_the_message():
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"reply": "pong"})

    assert asyncio.run(_client(handler).send("ping")) == "pong"
    assert seen[0].method == "POST"
    assert str(seen[0].url) == "http://chat.local/api/chat"
    assert json.loads(seen[0].content) == {"message": "ping"}


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"error": "Failed"}),
        httpx.Response(200, content=b"<!doctype html>"),
        httpx.Response(200, json={"answer": "wrong key"}),
        httpx.Response(200, json=["not", "an", "object"]),
    ],
)
def test_bad_responses_raise_transport_error(response: httpx.Response):
    with pytest.raises(TransportError):
        asyncio.run(_client(lambda r: response).send("ping"))


def test_network_error_raises_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(TransportError) as info:
        asyncio.run(_client(handler).send("ping"))
    assert isinstance(info.value.__cause__, httpx.ConnectError)


def test_end_to_end_against_app(store, memory_config):
    """Client -> app -> store: two records, reply returned."""
    provider = FakeProvider(reply="Hi from the model")
    app = create_app(memory_config, store=store, provider=provider)

    async def scenario():
        http = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")
        async with ChatAPIClient("http://testserver", client=http) as client:
            try:
                return await client.send("hello")
            finally:
                await http.aclose()

    assert asyncio.run(scenario()) == "Hi from the model"
    assert [(m.sender, m.text) for m in store.all()] == [("user", "hello"), ("bot", "Hi from the model")]


def test_end_to_end_provider_failure(store, failing_provider, memory_config):
    app = create_app(memory_config, store=store, provider=failing_provider)

    async def scenario():
        http = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")
        try:
            await ChatAPIClient("http://testserver", client=http).send("hello")
        finally:
            await http.aclose()

    with pytest.raises(TransportError):
        asyncio.run(scenario())
    assert [(m.sender, m.text) for m in store.all()] == [("user", "hello")]
