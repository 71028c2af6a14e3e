"""
Pytest configuration and fixtures for the demo MCP server

Provides fixtures to:
1. Build server configurations and auth headers
2. Stand in for the protocol engine and the Open-Meteo APIs
3. Drive the ASGI app in-process with httpx
"""
import sys
from pathlib import Path
from typing import Callable, Dict, List

import httpx
import pytest
import pytest_asyncio

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from demo_mcp.base import ProtocolEngine, ResourceDescriptor, ToolDescriptor
from demo_mcp.config import ServerConfig
from demo_mcp.weather import WeatherClient

TEST_KEY = "test-secret-key"

MCP_HEADERS = {
    "x-mcp-key": TEST_KEY,
    "accept": "application/json, text/event-stream",
}


class StubEngine(ProtocolEngine):
    """Protocol engine that records what reaches it instead of answering."""

    name = "stub"

    def __init__(self):
        self.tools: List[ToolDescriptor] = []
        self.resources: List[ResourceDescriptor] = []
        self.runs = 0
        self.received: list = []
        super().__init__()

    def register_tool(self, descriptor: ToolDescriptor) -> None:
        self.tools.append(descriptor)

    def register_resource(self, descriptor: ResourceDescriptor) -> None:
        self.resources.append(descriptor)

    async def run(self, read_stream, write_stream, stateless: bool = False) -> None:
        self.runs += 1
        async with read_stream:
            async for item in read_stream:
                self.received.append(item)


def rpc(method: str, params: Dict = None, id: int = 1) -> Dict:
    """Build a JSON-RPC request body."""
    return {"jsonrpc": "2.0", "id": id, "method": method, "params": params or {}}


def open_meteo(geocoding: Dict, forecast: Dict = None, calls: List[httpx.Request] = None) -> Callable:
    """MockTransport handler answering the geocoding and forecast endpoints."""

    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        if request.url.host == "geocoding-api.open-meteo.com":
            return httpx.Response(200, json=geocoding)
        if request.url.host == "api.open-meteo.com" and forecast is not None:
            return httpx.Response(200, json=forecast)
        return httpx.Response(404, json={"error": True})

    return handler


BERLIN_GEOCODING = {
    "results": [
        {"name": "Berlin", "latitude": 52.52437, "longitude": 13.41053, "country": "Germany"},
        {"name": "Berlin", "latitude": 39.79088, "longitude": -74.92905, "country": "United States"},
    ]
}

BERLIN_FORECAST = {
    "latitude": 52.52,
    "longitude": 13.419998,
    "current": {
        "time": "2026-10-18T12:00",
        "temperature_2m": 14.2,
        "relative_humidity_2m": 71,
        "wind_speed_10m": 9.7,
        "precipitation": 0.1,
        "rain": 0.1,
        "showers": 0.0,
        "cloud_cover": 88,
        "apparent_temperature": 12.9,
    },
}


@pytest.fixture
def config() -> ServerConfig:
    return ServerConfig(private_key=TEST_KEY, host="127.0.0.1", port=0)


@pytest.fixture
def stub_engine() -> StubEngine:
    return StubEngine()


@pytest.fixture
def make_weather_client():
    """Build WeatherClients backed by an httpx MockTransport handler."""

    def factory(handler: Callable) -> WeatherClient:
        return WeatherClient(http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))

    return factory


@pytest_asyncio.fixture
async def asgi_client():
    """Create in-process httpx clients for ASGI apps."""
    clients: List[httpx.AsyncClient] = []

    def factory(app) -> httpx.AsyncClient:
        client = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")
        clients.append(client)
        return client

    yield factory

    for client in clients:
        await client.aclose()
