"""
Demo MCP server entry point.

Run: python -m demo_mcp  (or the ``demo-mcp-server`` console script)

The server listens on http://localhost:$PORT/mcp (default 3000) and exits
with status 1 if the port cannot be bound.
"""
import logging
import socket
import sys
from typing import Optional

import uvicorn

from demo_mcp.config import ServerConfig
from demo_mcp.http_app import create_app
from error_handling import BindError, log_error

logger = logging.getLogger("demo_mcp.main")


def bind_socket(host: str, port: int) -> socket.socket:
    """Bind the listening socket up front so a busy port fails fast."""
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
        sock.set_inheritable(True)
    except (OSError, OverflowError) as e:
        sock.close()
        raise BindError(host, port, cause=e) from e
    return sock


def main(config: Optional[ServerConfig] = None) -> int:
    config = config or ServerConfig.from_env()
    app = create_app(config)

    try:
        sock = bind_socket(config.host, config.port)
    except BindError as e:
        log_error(e, logger)
        return 1

    server = uvicorn.Server(uvicorn.Config(app, log_level=config.log_level.lower()))
    logger.info(f"Demo MCP Server running on http://localhost:{sock.getsockname()[1]}/mcp")
    server.run(sockets=[sock])
    return 0


if __name__ == "__main__":
    sys.exit(main())
