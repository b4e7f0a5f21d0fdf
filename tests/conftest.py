"""Shared test fixtures for claude-webchat."""

import asyncio

import httpx
import pytest

from claude_webchat.client import ConversationClient
from claude_webchat.display import CollectingSink
from claude_webchat.store import MemorySessionStore
from claude_webchat.transport import TransportClient

BASE_URL = "https://claude.test"

HELLO_STREAM = [
    b'data: {"type":"content_block_delta","delta":{"type":"text_delta","text":"Hel"}}\n',
    b'data: {"type":"content_block_delta","delta":{"type":"text_delta","text":"lo"}}\n',
    b"data: [DONE]\n",
]


async def _aiter(chunks):
    for chunk in chunks:
        yield chunk


class FakeService:
    """Stands in for claude.ai behind an httpx.MockTransport.

    Each endpoint's reply is configurable; every request is recorded.
    """

    def __init__(self):
        self.org_status = 200
        self.orgs = [{"uuid": "org-1", "name": "Personal"}]
        self.org_error: Exception | None = None

        self.conversation_status = 200
        self.conversation = {"uuid": "conv-1", "name": ""}

        self.stream_status = 200
        self.stream_chunks = list(HELLO_STREAM)
        self.stream_body = None  # callable returning an async iterator of bytes

        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == "/api/organizations":
            if self.org_error is not None:
                raise self.org_error
            return httpx.Response(self.org_status, json=self.orgs)

        if path.endswith("/chat_conversations"):
            return httpx.Response(self.conversation_status, json=self.conversation)

        if path.endswith("/completion"):
            body = self.stream_body() if self.stream_body else _aiter(self.stream_chunks)
            return httpx.Response(
                self.stream_status,
                headers={"content-type": "text/event-stream"},
                content=body,
            )

        return httpx.Response(404, text="not found")

    def count(self, suffix: str) -> int:
        return sum(1 for r in self.requests if r.url.path.endswith(suffix))


@pytest.fixture
def service():
    return FakeService()


@pytest.fixture
def transport(service):
    return TransportClient(
        base_url=BASE_URL,
        timeout=5.0,
        transport=httpx.MockTransport(service.handler),
    )


@pytest.fixture
def store():
    return MemorySessionStore("sk-ant-sid01-test")


@pytest.fixture
def sink():
    return CollectingSink()


@pytest.fixture
def client(store, sink, transport):
    return ConversationClient(store, sink, transport=transport, timezone="Europe/Berlin")


async def wait_for_event(sink: CollectingSink, event_type: str, timeout: float = 2.0):
    """Yield to the loop until the sink has seen an event of the given type."""

    async def poll():
        while event_type not in sink.types:
            await asyncio.sleep(0.001)

    await asyncio.wait_for(poll(), timeout)


@pytest.fixture
def wait_for():
    return wait_for_event
