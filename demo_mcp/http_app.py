"""
MCP HTTP Application Factory

Builds the ASGI application serving the demo MCP server over both transport
bindings, behind the shared-secret gate.

Architecture:
- Registries hold the tools and resources; a ProtocolEngine exposes them
- POST /mcp hands each call to a fresh streamable HTTP transport
- GET /sse opens an event stream; POST /messages?sessionId=ID feeds it
- GET /health reports liveness
- Every path, /health included, sits behind the x-mcp-key check
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from demo_mcp.auth import AuthGate
from demo_mcp.base import ProtocolEngine, logger
from demo_mcp.config import ServerConfig
from demo_mcp.engine import FastMCPEngine
from demo_mcp.registry import ResourceRegistry, ToolRegistry, bind_registries
from demo_mcp.resources import register_resources
from demo_mcp.sse import EventStreamTransport, SessionTable
from demo_mcp.streamable import StreamableHTTPAdapter, TransportFactory
from demo_mcp.tools import register_tools
from demo_mcp.weather import WeatherClient
from error_handling import setup_app


def create_engine(config: ServerConfig, weather_client: WeatherClient) -> ProtocolEngine:
    """Create the FastMCP engine with the demo tools and resources registered."""
    tools = register_tools(ToolRegistry(), weather_client)
    resources = register_resources(ResourceRegistry())
    engine = FastMCPEngine(name=config.server_name, version=config.server_version)
    return bind_registries(engine, tools, resources)


def create_app(
    config: ServerConfig,
    engine: Optional[ProtocolEngine] = None,
    weather_client: Optional[WeatherClient] = None,
    sessions: Optional[SessionTable] = None,
    transport_factory: Optional[TransportFactory] = None,
) -> FastAPI:
    """
    Create the demo server application.

    Args:
        config: Server configuration; ``config.private_key`` guards every path
        engine: Protocol engine to serve (defaults to the FastMCP engine)
        weather_client: Client used by getWeather (defaults to Open-Meteo)
        sessions: Event-stream session table (defaults to an empty table)
        transport_factory: Builds the per-call streamable transport

    Returns:
        FastAPI application ready for uvicorn
    """
    weather_client = weather_client or WeatherClient(
        geocoding_url=config.geocoding_url,
        forecast_url=config.forecast_url,
    )
    engine = engine or create_engine(config, weather_client)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await weather_client.aclose()

    app = FastAPI(
        title=config.server_name,
        version=config.server_version,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    streamable = StreamableHTTPAdapter(engine, transport_factory)
    event_stream = EventStreamTransport(engine, sessions)
    app.state.engine = engine
    app.state.sessions = event_stream.sessions

    app.add_route("/mcp", streamable, methods=["POST"])
    app.add_route("/sse", event_stream, methods=["GET"])
    app.add_route("/messages", event_stream.handle_post_message, methods=["POST"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint for monitoring."""
        return {
            "status": "ok",
            "service": config.server_name
        }

    setup_app(app, config.error_handling_config())
    # Outermost layer; rejected requests reach nothing else
    app.add_middleware(AuthGate, secret=config.private_key)

    if config.private_key is None:
        logger.warning("MCP_PRIVATE_KEY is not set; every request will be rejected")

    logger.info(f"Created MCP HTTP app for {config.server_name}")
    return app
