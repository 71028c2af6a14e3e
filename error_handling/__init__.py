"""
Error handling module for the demo MCP server.

This module provides a structured way to handle and report errors across the server.
"""
from enum import Enum
from typing import Optional, Dict, Any, Union
import logging
from fastapi import status
from pydantic import BaseModel, ConfigDict

# Re-export all error-related classes and functions
__all__ = [
    # Error codes and base classes
    'ErrorCode',
    'ErrorResponse',
    'DemoServerError',

    # Error types
    'UnauthorizedError',
    'SessionNotFoundError',
    'UpstreamServiceError',
    'BindError',

    # Utility functions
    'log_error',
    'setup_error_handling',
    'RequestContextMiddleware',

    # Tracing
    'setup_tracing',
    'get_tracer',
    'instrument_app',

    # Utils
    'ErrorHandlingConfig',
    'setup_app',
    'trace_function',
]


class ErrorCode(str, Enum):
    """Standard error codes for the server."""
    # Infrastructure Errors
    BIND_ERROR = "bind_error"

    # Protocol Errors
    SESSION_NOT_FOUND = "session_not_found"
    VALIDATION_ERROR = "validation_error"

    # Integration Errors
    UPSTREAM_ERROR = "upstream_error"
    INVALID_RESPONSE = "invalid_response"

    # Security Errors
    UNAUTHORIZED = "unauthorized"

    # Unknown Error
    UNKNOWN_ERROR = "unknown_error"


class ErrorResponse(BaseModel):
    """Standard error response format for API responses."""
    error: Dict[str, Any]

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": {
                    "code": "upstream_error",
                    "message": "geocoding service is currently unavailable",
                    "details": {"service": "geocoding"},
                    "request_id": "req_12345",
                    "retryable": True,
                }
            }
        }
    )


class DemoServerError(Exception):
    """Base exception class for all demo server errors."""

    def __init__(
        self,
        code: Union[ErrorCode, str],
        message: str,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        retryable: bool = False
    ):
        self.code = ErrorCode(code) if isinstance(code, str) else code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.cause = cause
        self.retryable = retryable
        super().__init__(message)

    def to_dict(self, request_id: str = "") -> Dict[str, Any]:
        """Convert the error to a dictionary for JSON serialization."""
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
            "request_id": request_id,
            "retryable": self.retryable
        }

    @classmethod
    def from_exception(cls, exc: Exception) -> 'DemoServerError':
        """Create a DemoServerError from a generic exception."""
        if isinstance(exc, DemoServerError):
            return exc
        return cls(
            code=ErrorCode.UNKNOWN_ERROR,
            message=str(exc) or "An unknown error occurred",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details={"exception_type": exc.__class__.__name__},
            cause=exc
        )


class UnauthorizedError(DemoServerError):
    def __init__(self, message: str = "Unauthorized"):
        super().__init__(
            code=ErrorCode.UNAUTHORIZED,
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED
        )


class SessionNotFoundError(DemoServerError):
    """A posted message names an event-stream session that is not open."""

    def __init__(self, session_id: Optional[str]):
        super().__init__(
            code=ErrorCode.SESSION_NOT_FOUND,
            message="No transport found for sessionId",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"session_id": session_id}
        )


class UpstreamServiceError(DemoServerError):
    """An outbound dependency failed or answered with an unexpected payload."""

    def __init__(
        self,
        service: str,
        message: Optional[str] = None,
        cause: Optional[Exception] = None,
        code: ErrorCode = ErrorCode.UPSTREAM_ERROR
    ):
        super().__init__(
            code=code,
            message=message or f"{service} service is currently unavailable",
            status_code=status.HTTP_502_BAD_GATEWAY,
            details={"service": service},
            cause=cause,
            retryable=True
        )


class BindError(DemoServerError):
    def __init__(self, host: str, port: int, cause: Optional[Exception] = None):
        super().__init__(
            code=ErrorCode.BIND_ERROR,
            message=f"Could not bind to {host}:{port}" + (f": {cause}" if cause else ""),
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details={"host": host, "port": port},
            cause=cause
        )


def log_error(
    error: Exception,
    logger: logging.Logger,
    request_id: str = "",
    level: int = logging.ERROR,
    extra: Optional[Dict[str, Any]] = None
) -> None:
    """
    Helper function to log errors with structured context.

    Args:
        error: The exception to log
        logger: Logger instance to use
        request_id: Optional request ID for correlation
        level: Log level (default: ERROR)
        extra: Additional context to include in the log
    """
    extra = extra or {}
    if request_id:
        extra["request_id"] = request_id

    if isinstance(error, DemoServerError):
        extra.update({
            "error_code": error.code.value,
            "status_code": error.status_code,
            "retryable": error.retryable,
            **error.details
        })
        if error.cause:
            extra["cause"] = str(error.cause)
    else:
        extra.update({
            "error_type": error.__class__.__name__,
            "error_message": str(error)
        })

    logger.log(level, str(error), extra=extra, exc_info=level >= logging.ERROR)


# Submodules import the classes above, so they are pulled in last
from .tracing import setup_tracing, get_tracer, instrument_app  # noqa: E402
from .middleware import RequestContextMiddleware, setup_error_handling  # noqa: E402
from .utils import ErrorHandlingConfig, setup_app, trace_function  # noqa: E402
