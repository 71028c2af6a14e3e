"""
Utility functions for wiring error handling, logging and tracing into an app.
"""
import logging
import inspect
from typing import Optional, Dict, Any
from functools import wraps
from opentelemetry.trace import Status, StatusCode


class ErrorHandlingConfig:
    """Configuration for error handling and tracing."""

    def __init__(
        self,
        service_name: str = "demo-server",
        service_version: str = "1.0.0",
        environment: str = "development",
        otlp_endpoint: Optional[str] = None,
        enable_tracing: bool = False,
        enable_error_handling: bool = True,
        log_level: str = "INFO"
    ):
        self.service_name = service_name
        self.service_version = service_version
        self.environment = environment
        self.otlp_endpoint = otlp_endpoint
        self.enable_tracing = enable_tracing
        self.enable_error_handling = enable_error_handling
        self.log_level = log_level


def setup_app(app, config: Optional[ErrorHandlingConfig] = None):
    """
    Set up logging, error handling and tracing for a FastAPI application.

    Args:
        app: The FastAPI application
        config: Configuration for error handling and tracing

    Returns:
        The configured FastAPI application
    """
    config = config or ErrorHandlingConfig()

    logging.basicConfig(level=config.log_level)
    logging.getLogger("demo_mcp").setLevel(config.log_level)

    # Import here to avoid circular dependency
    from .tracing import setup_tracing, instrument_app
    from .middleware import RequestContextMiddleware, setup_error_handling

    if config.enable_tracing:
        setup_tracing(
            service_name=config.service_name,
            environment=config.environment,
            otlp_endpoint=config.otlp_endpoint,
            service_version=config.service_version
        )
        instrument_app(app)

    if config.enable_error_handling:
        setup_error_handling(app)

    app.add_middleware(RequestContextMiddleware, service_name=config.service_name)

    return app


def trace_function(
    name: Optional[str] = None,
    attributes: Optional[Dict[str, Any]] = None,
    record_exception: bool = True
):
    """
    Decorator to trace coroutine execution with OpenTelemetry.

    Args:
        name: Custom span name (defaults to function name)
        attributes: Additional attributes to add to the span
        record_exception: Whether to record exceptions in the span
    """
    from .tracing import get_tracer

    def decorator(func):
        if not inspect.iscoroutinefunction(func):
            raise TypeError(f"trace_function only wraps coroutine functions, got {func.__qualname__}")
        span_name = name or f"{func.__module__}.{func.__name__}"

        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            tracer = get_tracer(func.__module__)
            with tracer.start_as_current_span(
                span_name,
                attributes=attributes or {},
                record_exception=False
            ) as span:
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    if record_exception:
                        span.record_exception(e)
                        span.set_status(Status(StatusCode.ERROR, str(e)))
                    raise

        return async_wrapper

    return decorator
