"""
Legacy event-stream binding (``GET /sse`` + ``POST /messages``).

A client opens a long-lived stream and receives an ``endpoint`` event naming
the URL it must post its messages to. Posted messages are routed to the
stream's engine connection through the session table.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional
from uuid import uuid4

import anyio
from anyio.streams.memory import MemoryObjectSendStream
from mcp import types
from mcp.shared.message import ServerMessageMetadata, SessionMessage
from pydantic import ValidationError
from sse_starlette import EventSourceResponse
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import Receive, Scope, Send

from demo_mcp.base import ProtocolEngine, ReadStream, WriteStream
from error_handling import SessionNotFoundError

logger = logging.getLogger("demo_mcp.sse")

SESSION_ID_PARAM = "sessionId"

SessionWriter = MemoryObjectSendStream[SessionMessage | Exception]


@dataclass(frozen=True)
class SseSession:
    session_id: str
    writer: SessionWriter


class SessionTable:
    """
    Open event-stream sessions keyed by session id.

    Every operation completes without awaiting, so on the event loop an
    insert, lookup or removal is never observed half done.
    """

    def __init__(self, id_factory: Callable[[], str] = lambda: uuid4().hex):
        self._sessions: Dict[str, SseSession] = {}
        self._id_factory = id_factory

    def open(self, writer: SessionWriter) -> str:
        session_id = self._id_factory()
        while session_id in self._sessions:
            session_id = self._id_factory()
        self._sessions[session_id] = SseSession(session_id, writer)
        return session_id

    def get(self, session_id: Optional[str]) -> SseSession:
        session = self._sessions.get(session_id) if session_id else None
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def close(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)


class EventStreamTransport:
    """
    ASGI app for ``GET /sse``; ``handle_post_message`` serves ``POST /messages``.
    """

    def __init__(self, engine: ProtocolEngine, sessions: Optional[SessionTable] = None, message_path: str = "/messages"):
        self.engine = engine
        self.sessions = sessions if sessions is not None else SessionTable()
        self.message_path = message_path

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        read_stream_writer, read_stream = anyio.create_memory_object_stream[SessionMessage | Exception](0)
        write_stream, write_stream_reader = anyio.create_memory_object_stream[SessionMessage](0)
        sse_stream_writer, sse_stream_reader = anyio.create_memory_object_stream[Dict[str, Any]](0)

        session_id = self.sessions.open(read_stream_writer)
        endpoint = f"{scope.get('root_path', '')}{self.message_path}?{SESSION_ID_PARAM}={session_id}"
        logger.info(f"Event stream opened: {session_id}")

        async def sse_writer() -> None:
            async with sse_stream_writer, write_stream_reader:
                await sse_stream_writer.send({"event": "endpoint", "data": endpoint})
                async for session_message in write_stream_reader:
                    await sse_stream_writer.send({
                        "event": "message",
                        "data": session_message.message.model_dump_json(by_alias=True, exclude_none=True),
                    })

        try:
            async with anyio.create_task_group() as tg:
                tg.start_soon(self._serve, session_id, read_stream, write_stream)
                response = EventSourceResponse(content=sse_stream_reader, data_sender_callable=sse_writer)
                await response(scope, receive, send)
                tg.cancel_scope.cancel()
        finally:
            # Drop the entry before closing its streams so later posts see "not found"
            self.sessions.close(session_id)
            await read_stream_writer.aclose()
            logger.info(f"Event stream closed: {session_id}")

    async def _serve(self, session_id: str, read_stream: ReadStream, write_stream: WriteStream) -> None:
        try:
            await self.engine.run(read_stream, write_stream)
        except Exception:
            logger.exception(f"Session {session_id} crashed")

    async def handle_post_message(self, request: Request) -> Response:
        session = self.sessions.get(request.query_params.get(SESSION_ID_PARAM))

        body = await request.body()
        try:
            message = types.JSONRPCMessage.model_validate_json(body)
        except ValidationError as err:
            logger.warning(f"Could not parse message for session {session.session_id}: {err}")
            await self._forward(session, err)
            return Response("Could not parse message", status_code=400)

        await self._forward(session, SessionMessage(message, metadata=ServerMessageMetadata(request_context=request)))
        return Response("Accepted", status_code=202)

    async def _forward(self, session: SseSession, item: SessionMessage | Exception) -> None:
        try:
            await session.writer.send(item)
        except (anyio.ClosedResourceError, anyio.BrokenResourceError):
            raise SessionNotFoundError(session.session_id) from None
