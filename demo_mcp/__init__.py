"""
Demo MCP Server

A small Model Context Protocol server exposing:

- Tools: ``add`` (numeric addition) and ``getWeather`` (Open-Meteo lookup)
- Resource: ``greeting://{name}``

served over streamable HTTP (``POST /mcp``) and the legacy event-stream
binding (``GET /sse`` + ``POST /messages``), behind an ``x-mcp-key`` check.
"""

from demo_mcp.base import ProtocolEngine, ResourceDescriptor, ToolDescriptor
from demo_mcp.config import ServerConfig
from demo_mcp.engine import FastMCPEngine
from demo_mcp.http_app import create_app, create_engine

__all__ = [
    "ProtocolEngine",
    "ResourceDescriptor",
    "ToolDescriptor",
    "ServerConfig",
    "FastMCPEngine",
    "create_app",
    "create_engine",
]
