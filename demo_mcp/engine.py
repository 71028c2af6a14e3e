"""
FastMCP-backed protocol engine.

Bridges the tool and resource registries to FastMCP, which performs the
JSON-RPC framing, schema generation, input/output validation and error
framing. Transports only ever see the message streams passed to ``run``.
"""

from typing import Iterable, List, Optional

from mcp import types
from mcp.server.fastmcp import FastMCP
from mcp.server.lowlevel import Server
from mcp.server.lowlevel.helper_types import ReadResourceContents

from demo_mcp.base import ProtocolEngine, ReadStream, ResourceDescriptor, ToolDescriptor, WriteStream


class FastMCPEngine(ProtocolEngine):
    """Protocol engine built on ``mcp.server.fastmcp.FastMCP``."""

    def __init__(self, name: str = "demo-server", version: str = "1.0.0", instructions: Optional[str] = None):
        self._name = name
        self._mcp = FastMCP(
            name=name,
            instructions=instructions or f"MCP server for {name}",
        )
        # FastMCP reports the SDK version unless the low-level server carries one
        self.server.version = version
        super().__init__()

    @property
    def name(self) -> str:
        return self._name

    @property
    def server(self) -> Server:
        """The low-level server FastMCP dispatches through."""
        return self._mcp._mcp_server

    def register_tool(self, descriptor: ToolDescriptor) -> None:
        self._mcp.add_tool(
            descriptor.handler,
            name=descriptor.name,
            title=descriptor.title,
            description=descriptor.description,
            structured_output=True,
        )

    def register_resource(self, descriptor: ResourceDescriptor) -> None:
        self._mcp.resource(
            descriptor.uri_template,
            name=descriptor.name,
            title=descriptor.title,
            description=descriptor.description,
            mime_type=descriptor.mime_type,
        )(descriptor.handler)

    async def run(self, read_stream: ReadStream, write_stream: WriteStream, stateless: bool = False) -> None:
        await self.server.run(
            read_stream,
            write_stream,
            self.server.create_initialization_options(),
            stateless=stateless,
        )

    async def list_tools(self) -> List[types.Tool]:
        return await self._mcp.list_tools()

    async def list_resource_templates(self) -> List[types.ResourceTemplate]:
        return await self._mcp.list_resource_templates()

    async def read_resource(self, uri: str) -> Iterable[ReadResourceContents]:
        return await self._mcp.read_resource(uri)
