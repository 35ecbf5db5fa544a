"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the server.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m cohttp --service 3000                           │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── COHTTP_SERVICE=3000 python -m cohttp                      │
    │                                                                      │
    │   3. Defaults (this dataclass)                                      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The address is a host/service PAIR, not host/port: both go through
getaddrinfo(), so "localhost"/"http" works as well as "127.0.0.1"/"8080".

=============================================================================
"""

import logging
import os
import socket
from dataclasses import dataclass
from typing import Optional

from .access_log import LOG_FORMATS


@dataclass
class ServerConfig:
    """
    Configuration for the server.

    NETWORK SETTINGS
    - host, service, backlog, buffer_size, read_timeout

    RESPONSE
    - server_name, response_body

    LOGGING
    - log_level, log_format
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "localhost"
    """
    Host name or literal address to bind to.
    - "localhost" - Loopback only (development)
    - "0.0.0.0" / "::" - All interfaces (containers)
    """

    service: str = "8080"
    """
    Service name or literal port. "0" lets the OS pick a free port.
    Ports below 1024 need root on Unix.
    """

    backlog: int = socket.SOMAXCONN
    """
    Pending-connection queue length. Defaults to the platform maximum.
    """

    buffer_size: int = 1024
    """
    Maximum bytes per recv(). The parser copes with any chunk size, so
    this only trades syscalls for memory.
    """

    read_timeout: Optional[float] = None
    """
    Per-read timeout in seconds. None blocks forever: a client that never
    finishes its request holds its thread until it disconnects.
    """

    # ─────────────────────────────────────────────────────────────────────
    # RESPONSE
    # ─────────────────────────────────────────────────────────────────────

    server_name: str = "co_http"
    """Value of the Server header."""

    response_body: str = "Hello, World!"
    """Body of the static 200 response."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """DEBUG also logs every received header and sent response."""

    log_format: str = "text"
    """Access log format: 'text' or 'json'."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        COHTTP_HOST           Host (default: localhost)
        COHTTP_SERVICE        Service or port (default: 8080)
        COHTTP_BUFFER_SIZE    recv() size (default: 1024)
        COHTTP_READ_TIMEOUT   Read timeout in seconds (default: none)
        COHTTP_LOG_LEVEL      Logging level (default: INFO)
        COHTTP_LOG_FORMAT     text or json (default: text)
        COHTTP_RESPONSE_BODY  Static response body

        Raises:
            ValueError: If a numeric variable is not a number.
        """
        read_timeout = os.getenv("COHTTP_READ_TIMEOUT")
        return cls(
            host=os.getenv("COHTTP_HOST", cls.host),
            service=os.getenv("COHTTP_SERVICE", cls.service),
            buffer_size=int(os.getenv("COHTTP_BUFFER_SIZE", str(cls.buffer_size))),
            read_timeout=float(read_timeout) if read_timeout else None,
            log_level=os.getenv("COHTTP_LOG_LEVEL", cls.log_level),
            log_format=os.getenv("COHTTP_LOG_FORMAT", cls.log_format),
            response_body=os.getenv("COHTTP_RESPONSE_BODY", cls.response_body),
        )

    def validate(self) -> None:
        """
        Validate configuration values. Fails fast at startup.

        Raises:
            ValueError: On the first invalid value.
        """
        if not self.host:
            raise ValueError("host must not be empty")

        if not self.service:
            raise ValueError("service must not be empty")

        if self.backlog < 0:
            raise ValueError(f"backlog must be >= 0, got {self.backlog}")

        if self.buffer_size < 1:
            raise ValueError(f"buffer_size must be >= 1, got {self.buffer_size}")

        if self.read_timeout is not None and self.read_timeout <= 0:
            raise ValueError(f"read_timeout must be > 0, got {self.read_timeout}")

        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"Unknown log level: {self.log_level}")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {LOG_FORMATS}, got {self.log_format!r}")
