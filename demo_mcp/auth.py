"""
Shared-secret gate in front of every endpoint.

Callers present the secret in the ``x-mcp-key`` header. The comparison is
exact string equality; a missing header, or a server started without a
secret, never matches.
"""

import hmac
from typing import Optional

from starlette.datastructures import Headers
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Receive, Scope, Send
from starlette.websockets import WebSocketClose

from error_handling import UnauthorizedError

MCP_KEY_HEADER = "x-mcp-key"


def is_authorized(supplied: Optional[str], secret: Optional[str]) -> bool:
    if supplied is None or secret is None:
        return False
    return hmac.compare_digest(supplied.encode("utf-8"), secret.encode("utf-8"))


class AuthGate:
    """ASGI middleware that rejects requests without the configured key."""

    def __init__(self, app: ASGIApp, secret: Optional[str], header_name: str = MCP_KEY_HEADER):
        self.app = app
        self.secret = secret
        self.header_name = header_name

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "lifespan":
            await self.app(scope, receive, send)
            return

        supplied = Headers(scope=scope).get(self.header_name)
        if is_authorized(supplied, self.secret):
            await self.app(scope, receive, send)
            return

        if scope["type"] == "websocket":
            await WebSocketClose(code=1008)(scope, receive, send)
            return

        error = UnauthorizedError()
        response = JSONResponse({"error": error.message}, status_code=error.status_code)
        await response(scope, receive, send)
