"""
Base MCP Server Utilities

Provides the shared building blocks of the demo server:
- Tool and resource descriptors
- The protocol engine interface the transports feed into
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional
from abc import ABC, abstractmethod

from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream
from mcp.shared.message import SessionMessage

logger = logging.getLogger("demo_mcp")


@dataclass(frozen=True)
class ToolDescriptor:
    """
    A named tool exposed to protocol clients.

    The input and output schemas are derived from the handler's annotations:
    parameters describe the input, the return annotation describes the output.
    """
    name: str
    handler: Callable[..., Any]
    title: Optional[str] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class ResourceDescriptor:
    """A URI-templated readable resource, e.g. ``greeting://{name}``."""
    uri_template: str
    name: str
    handler: Callable[..., Any]
    title: Optional[str] = None
    description: Optional[str] = None
    mime_type: str = "text/plain"


ReadStream = MemoryObjectReceiveStream[SessionMessage | Exception]
WriteStream = MemoryObjectSendStream[SessionMessage]


class ProtocolEngine(ABC):
    """
    Frames, validates and dispatches protocol messages.

    Transports hand the engine a pair of message streams; the engine reads
    decoded requests from one, invokes the registered handlers and writes the
    framed responses to the other.
    """

    def __init__(self):
        self.logger = logging.getLogger(f"demo_mcp.{self.name}")

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the server name."""
        pass

    @abstractmethod
    def register_tool(self, descriptor: ToolDescriptor) -> None:
        """Expose a tool to clients."""
        pass

    @abstractmethod
    def register_resource(self, descriptor: ResourceDescriptor) -> None:
        """Expose a resource template to clients."""
        pass

    @abstractmethod
    async def run(self, read_stream: ReadStream, write_stream: WriteStream, stateless: bool = False) -> None:
        """
        Serve one connection until its read stream is closed.

        Args:
            read_stream: Decoded messages from the client
            write_stream: Messages to send back to the client
            stateless: Skip the initialization handshake (one call per connection)
        """
        pass
