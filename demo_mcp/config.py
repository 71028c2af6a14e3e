"""
Server configuration.

Loaded once at start-up from the environment (and a ``.env`` file when
present) and passed explicitly to the components that need it.
"""

import logging
import os
import re
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

from demo_mcp.weather import FORECAST_URL, GEOCODING_URL
from error_handling import ErrorHandlingConfig

logger = logging.getLogger("demo_mcp.config")

DEFAULT_PORT = 3000
_LEADING_INT = re.compile(r"\s*(?P<sign>[+-]?)(?:(?P<hex>0[xX])(?P<hex_digits>[0-9a-fA-F]*)|(?P<digits>\d+))")


def parse_port(raw: Optional[str], default: int = DEFAULT_PORT) -> int:
    """
    Parse a port the way ``parseInt`` does: use the leading integer and
    ignore trailing characters, reading a ``0x`` prefix as hexadecimal.
    Values with no leading integer fall back to the default.
    """
    if raw is None or raw == "":
        return default
    match = _LEADING_INT.match(raw)
    digits = ""
    if match:
        digits = match.group("hex_digits") if match.group("hex") else match.group("digits")
    if not digits:
        logger.warning(f"Ignoring unparsable PORT={raw!r}, using {default}")
        return default
    port = int(digits, 16 if match.group("hex") else 10)
    return -port if match.group("sign") == "-" else port


def _flag(value: Optional[str]) -> bool:
    return (value or "false").strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class ServerConfig:
    private_key: Optional[str] = None
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    server_name: str = "demo-server"
    server_version: str = "1.0.0"
    log_level: str = "INFO"
    environment: str = "development"
    enable_tracing: bool = False
    otlp_endpoint: Optional[str] = None
    geocoding_url: str = GEOCODING_URL
    forecast_url: str = FORECAST_URL

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ServerConfig":
        """Build the configuration from ``environ`` (defaults to ``os.environ`` plus ``.env``)."""
        if environ is None:
            load_dotenv()
            environ = os.environ

        return cls(
            private_key=environ.get("MCP_PRIVATE_KEY") or None,
            host=environ.get("HOST", "0.0.0.0"),
            port=parse_port(environ.get("PORT")),
            log_level=environ.get("LOG_LEVEL", "INFO").upper(),
            environment=environ.get("ENVIRONMENT", "development"),
            enable_tracing=_flag(environ.get("ENABLE_TRACING")),
            otlp_endpoint=environ.get("OTEL_EXPORTER_OTLP_ENDPOINT"),
            geocoding_url=environ.get("GEOCODING_API_URL", GEOCODING_URL),
            forecast_url=environ.get("WEATHER_API_URL", FORECAST_URL),
        )

    def error_handling_config(self) -> ErrorHandlingConfig:
        return ErrorHandlingConfig(
            service_name=self.server_name,
            service_version=self.server_version,
            environment=self.environment,
            otlp_endpoint=self.otlp_endpoint,
            enable_tracing=self.enable_tracing,
            log_level=self.log_level,
        )
