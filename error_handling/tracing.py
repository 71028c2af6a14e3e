"""
OpenTelemetry configuration and utilities for distributed tracing.
"""
import os
import sys
from typing import Optional
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.sdk.resources import Resource, SERVICE_NAME, DEPLOYMENT_ENVIRONMENT


def setup_tracing(
    service_name: str = "demo-server",
    environment: str = "development",
    otlp_endpoint: Optional[str] = None,
    service_version: str = "1.0.0",
) -> trace.Tracer:
    """
    Configure OpenTelemetry tracing for the server.

    Args:
        service_name: Name of the service for tracing
        environment: Deployment environment (e.g., 'development', 'production')
        otlp_endpoint: OTLP endpoint URL (e.g., 'http://localhost:4317')
        service_version: Version of the service
    """
    otlp_endpoint = otlp_endpoint or os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")

    resource = Resource.create({
        SERVICE_NAME: service_name,
        DEPLOYMENT_ENVIRONMENT: environment,
        "service.version": service_version,
    })

    provider = TracerProvider(resource=resource)

    # Console spans are opt-in and never emitted under pytest
    is_test = 'pytest' in sys.modules
    enable_console = os.getenv("ENABLE_CONSOLE_EXPORTERS", "false").lower() == "true"
    if environment == "development" and not is_test and enable_console:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    if otlp_endpoint:
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint)))

    trace.set_tracer_provider(provider)

    return trace.get_tracer(service_name, service_version)


def instrument_app(app):
    """Instrument a FastAPI application and outbound httpx calls for tracing."""
    FastAPIInstrumentor.instrument_app(app)
    HTTPXClientInstrumentor().instrument()
    return app


def get_tracer(name: Optional[str] = None) -> trace.Tracer:
    """Get a tracer instance."""
    return trace.get_tracer(name or __name__)
