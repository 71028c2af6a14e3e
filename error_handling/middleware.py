"""
Error handling middleware for the demo server's FastAPI application.

This module provides middleware to correlate requests and exception handlers
that turn server errors into consistent responses.
"""
import logging
import uuid
from fastapi import Request, status
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger("demo_mcp.error_handling")

REQUEST_ID_HEADER = "x-request-id"


class RequestContextMiddleware:
    """
    Assigns a request ID to every HTTP request and echoes it on the response.

    Implemented as a plain ASGI middleware so long-lived event streams are
    passed through untouched.
    """

    def __init__(self, app: ASGIApp, service_name: str = "demo-server"):
        self.app = app
        self.service_name = service_name

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = _header(scope, REQUEST_ID_HEADER) or str(uuid.uuid4())
        scope.setdefault("state", {})["request_id"] = request_id

        async def send_with_request_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                headers["X-Request-ID"] = request_id
                logger.debug(
                    f"{scope['method']} {scope['path']} -> {message['status']}",
                    extra={"request_id": request_id, "service": self.service_name}
                )
            await send(message)

        await self.app(scope, receive, send_with_request_id)


def _header(scope: Scope, name: str) -> str:
    raw_name = name.encode("latin-1")
    for key, value in scope.get("headers", []):
        if key.lower() == raw_name:
            return value.decode("latin-1")
    return ""


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "") or request.headers.get(REQUEST_ID_HEADER, "")


def setup_error_handling(app) -> None:
    """Register exception handlers for server errors on a FastAPI application."""
    from error_handling import DemoServerError, ErrorCode, ErrorResponse, SessionNotFoundError, log_error

    @app.exception_handler(SessionNotFoundError)
    async def session_not_found_handler(request: Request, exc: SessionNotFoundError) -> PlainTextResponse:
        """Unknown sessions are reported as plain text; the caller must reopen a stream."""
        log_error(
            exc,
            logger,
            request_id=_request_id(request),
            level=logging.INFO,
            extra={"path": request.url.path, "method": request.method}
        )
        return PlainTextResponse(exc.message, status_code=exc.status_code)

    @app.exception_handler(DemoServerError)
    async def demo_server_error_handler(request: Request, exc: DemoServerError) -> JSONResponse:
        """Handle DemoServerError exceptions."""
        request_id = _request_id(request)

        log_error(
            exc,
            logger,
            request_id=request_id,
            level=logging.WARNING if exc.status_code < 500 else logging.ERROR,
            extra={"path": request.url.path, "method": request.method}
        )

        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(error=exc.to_dict(request_id=request_id)).model_dump(),
            headers={"Cache-Control": "no-store"}
        )

    @app.exception_handler(Exception)
    async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions."""
        request_id = _request_id(request)

        logger.error(
            f"Unhandled exception: {str(exc)}",
            exc_info=exc,
            extra={
                "request_id": request_id,
                "path": request.url.path,
                "method": request.method,
            }
        )

        error = DemoServerError(
            code=ErrorCode.UNKNOWN_ERROR,
            message="An unexpected error occurred",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details={"exception_type": exc.__class__.__name__}
        )

        return JSONResponse(
            status_code=error.status_code,
            content=ErrorResponse(error=error.to_dict(request_id=request_id)).model_dump(),
            headers={"Cache-Control": "no-store"}
        )
