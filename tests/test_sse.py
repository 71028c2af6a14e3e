"""
Tests for the event-stream binding: session table, /messages dispatch and
stream lifecycle
"""
import re

import anyio
import pytest
from starlette.requests import Request

from conftest import MCP_HEADERS, StubEngine, rpc
from demo_mcp.http_app import create_app
from demo_mcp.sse import EventStreamTransport, SessionTable
from error_handling import SessionNotFoundError
from mcp.shared.message import SessionMessage


class FakeStreamClient:
    """Drives GET /sse directly at the ASGI level and records what is sent."""

    def __init__(self):
        self.scope = {
            "type": "http",
            "asgi": {"version": "3.0"},
            "http_version": "1.1",
            "method": "GET",
            "scheme": "http",
            "path": "/sse",
            "root_path": "",
            "query_string": b"",
            "headers": [],
        }
        self.messages = []
        self._disconnected = anyio.Event()

    async def receive(self):
        await self._disconnected.wait()
        return {"type": "http.disconnect"}

    async def send(self, message):
        self.messages.append(message)

    def disconnect(self):
        self._disconnected.set()

    async def session_id(self) -> str:
        with anyio.fail_after(5):
            while True:
                for message in self.messages:
                    match = re.search(rb"sessionId=(\w+)", message.get("body", b""))
                    if match:
                        return match.group(1).decode()
                await anyio.sleep(0.01)


def post_request(session_id: str, body: bytes) -> Request:
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/messages",
        "root_path": "",
        "query_string": f"sessionId={session_id}".encode(),
        "headers": [(b"content-type", b"application/json")],
    }

    async def receive():
        return {"type": "http.request", "body": body, "more_body": False}

    return Request(scope, receive)


async def wait_until(predicate):
    with anyio.fail_after(5):
        while not predicate():
            await anyio.sleep(0.01)


class TestSessionTable:

    def test_open_returns_unique_ids(self):
        table = SessionTable()
        writer, _ = anyio.create_memory_object_stream(1)

        first = table.open(writer)
        second = table.open(writer)

        assert first != second
        assert first in table and second in table
        assert len(table) == 2

    def test_open_skips_ids_already_in_use(self):
        ids = iter(["a", "a", "b"])
        table = SessionTable(id_factory=lambda: next(ids))
        writer, _ = anyio.create_memory_object_stream(1)

        assert table.open(writer) == "a"
        assert table.open(writer) == "b"

    def test_get_unknown_session(self):
        with pytest.raises(SessionNotFoundError):
            SessionTable().get("missing")

    def test_get_without_session_id(self):
        with pytest.raises(SessionNotFoundError):
            SessionTable().get(None)

    def test_closed_session_is_not_found(self):
        table = SessionTable()
        writer, _ = anyio.create_memory_object_stream(1)
        session_id = table.open(writer)

        table.close(session_id)
        table.close(session_id)

        assert session_id not in table
        with pytest.raises(SessionNotFoundError):
            table.get(session_id)


class TestMessagesEndpoint:

    @pytest.mark.asyncio
    async def test_unknown_session(self, config, stub_engine, asgi_client):
        client = asgi_client(create_app(config, engine=stub_engine))

        response = await client.post("/messages?sessionId=never-opened", json=rpc("ping"), headers=MCP_HEADERS)

        assert response.status_code == 400
        assert response.text == "No transport found for sessionId"
        assert response.headers["content-type"].startswith("text/plain")

    @pytest.mark.asyncio
    async def test_missing_session_id(self, config, stub_engine, asgi_client):
        client = asgi_client(create_app(config, engine=stub_engine))

        response = await client.post("/messages", json=rpc("ping"), headers=MCP_HEADERS)

        assert response.status_code == 400
        assert response.text == "No transport found for sessionId"

    @pytest.mark.asyncio
    async def test_message_is_forwarded_to_open_session(self, config, stub_engine, asgi_client):
        sessions = SessionTable()
        writer, reader = anyio.create_memory_object_stream(1)
        session_id = sessions.open(writer)
        client = asgi_client(create_app(config, engine=stub_engine, sessions=sessions))

        response = await client.post(f"/messages?sessionId={session_id}", json=rpc("ping"), headers=MCP_HEADERS)

        assert response.status_code == 202
        item = reader.receive_nowait()
        assert isinstance(item, SessionMessage)
        assert item.message.root.method == "ping"

    @pytest.mark.asyncio
    async def test_unparsable_message(self, config, stub_engine, asgi_client):
        sessions = SessionTable()
        writer, reader = anyio.create_memory_object_stream(1)
        session_id = sessions.open(writer)
        client = asgi_client(create_app(config, engine=stub_engine, sessions=sessions))

        response = await client.post(
            f"/messages?sessionId={session_id}",
            content=b'{"not": "json-rpc"}',
            headers={**MCP_HEADERS, "content-type": "application/json"},
        )

        assert response.status_code == 400
        assert response.text == "Could not parse message"
        assert isinstance(reader.receive_nowait(), Exception)

    @pytest.mark.asyncio
    async def test_closed_session(self, config, stub_engine, asgi_client):
        sessions = SessionTable()
        writer, reader = anyio.create_memory_object_stream(1)
        session_id = sessions.open(writer)
        sessions.close(session_id)
        client = asgi_client(create_app(config, engine=stub_engine, sessions=sessions))

        response = await client.post(f"/messages?sessionId={session_id}", json=rpc("ping"), headers=MCP_HEADERS)

        assert response.status_code == 400
        assert response.text == "No transport found for sessionId"

    @pytest.mark.asyncio
    async def test_session_whose_engine_went_away(self, config, stub_engine, asgi_client):
        sessions = SessionTable()
        writer, reader = anyio.create_memory_object_stream(1)
        session_id = sessions.open(writer)
        reader.close()
        client = asgi_client(create_app(config, engine=stub_engine, sessions=sessions))

        response = await client.post(f"/messages?sessionId={session_id}", json=rpc("ping"), headers=MCP_HEADERS)

        assert response.status_code == 400
        assert response.text == "No transport found for sessionId"


@pytest.mark.asyncio
async def test_concurrent_streams_are_independent():
    engine = StubEngine()
    transport = EventStreamTransport(engine)
    first, second = FakeStreamClient(), FakeStreamClient()

    async with anyio.create_task_group() as tg:
        tg.start_soon(transport, first.scope, first.receive, first.send)
        tg.start_soon(transport, second.scope, second.receive, second.send)

        first_id = await first.session_id()
        second_id = await second.session_id()
        assert first_id != second_id
        assert first.messages[0]["type"] == "http.response.start"

        first.disconnect()
        await wait_until(lambda: first_id not in transport.sessions)
        assert second_id in transport.sessions

        with pytest.raises(SessionNotFoundError):
            await transport.handle_post_message(post_request(first_id, b'{"jsonrpc": "2.0", "id": 1, "method": "ping"}'))

        response = await transport.handle_post_message(
            post_request(second_id, b'{"jsonrpc": "2.0", "id": 2, "method": "ping"}')
        )
        assert response.status_code == 202
        await wait_until(lambda: len(engine.received) == 1)
        assert engine.received[0].message.root.id == 2

        second.disconnect()

    assert len(transport.sessions) == 0
    assert engine.runs == 2
