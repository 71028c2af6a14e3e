"""
Streamable HTTP binding (``POST /mcp``).

Every call gets its own transport with no session id, so concurrent calls
can never collide on a request id. The transport is torn down when the
client's connection closes, whether or not the call's handler has finished,
and is never reused.
"""

import logging
from typing import Callable, Optional

import anyio
from mcp.server.streamable_http import StreamableHTTPServerTransport
from starlette.types import Message, Receive, Scope, Send

from demo_mcp.base import ProtocolEngine, ReadStream, WriteStream

logger = logging.getLogger("demo_mcp.streamable")

TransportFactory = Callable[[], StreamableHTTPServerTransport]


def new_stateless_transport() -> StreamableHTTPServerTransport:
    return StreamableHTTPServerTransport(
        mcp_session_id=None,
        is_json_response_enabled=True,
    )


class StreamableHTTPAdapter:
    """ASGI app serving each request on a fresh, unshared transport."""

    def __init__(self, engine: ProtocolEngine, transport_factory: Optional[TransportFactory] = None):
        self.engine = engine
        self.transport_factory = transport_factory or new_stateless_transport

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        transport = self.transport_factory()
        body_consumed = anyio.Event()

        async def receive_request() -> Message:
            message = await receive()
            if message["type"] != "http.request" or not message.get("more_body", False):
                body_consumed.set()
            return message

        async with transport.connect() as (read_stream, write_stream):
            async with anyio.create_task_group() as tg:
                tg.start_soon(self._serve, read_stream, write_stream)
                tg.start_soon(self._watch_disconnect, receive, body_consumed, tg.cancel_scope)
                try:
                    await transport.handle_request(scope, receive_request, send)
                finally:
                    with anyio.CancelScope(shield=True):
                        await transport.terminate()
                    tg.cancel_scope.cancel()

    async def _serve(self, read_stream: ReadStream, write_stream: WriteStream) -> None:
        try:
            await self.engine.run(read_stream, write_stream, stateless=True)
        except Exception:
            logger.exception("Stateless call crashed")

    @staticmethod
    async def _watch_disconnect(receive: Receive, body_consumed: anyio.Event, call_scope: anyio.CancelScope) -> None:
        """Cancel the call as soon as the client goes away."""
        # The transport owns receive() until the request body is read
        await body_consumed.wait()
        while True:
            message = await receive()
            if message["type"] == "http.disconnect":
                logger.debug("Client disconnected, tearing down call transport")
                call_scope.cancel()
                return
