"""
=============================================================================
SERVER
=============================================================================

Wires the core components together:

    Server.run()
        │
        ├──► _setup_logging()
        │
        ├──► bind()
        │       ├──► resolve(host, service)       ResolutionError
        │       └──► bind_and_listen(first)       SocketCreateError / BindError / ListenError
        │
        └──► serve_forever(listener)
                ├──► accept_loop(...)             BLOCKS here
                │       └──► Thread(ConnectionHandler) per connection
                │
                └──► on AcceptError: join_all() in-flight connections, re-raise

Startup errors propagate to the caller (the CLI prints them and exits 1).

=============================================================================
"""

import logging
from typing import Optional

from .config import ServerConfig
from .core import (
    ConnectionHandler,
    ListeningSocket,
    ServerContext,
    accept_loop,
    bind_and_listen,
    resolve,
)
from .errors import AcceptError
from .http.response import Responder, StaticResponder


logger = logging.getLogger(__name__)


class Server:
    """
    Thread-per-connection server answering each request with `responder`.

    Usage:
        server = Server(ServerConfig(host="0.0.0.0", service="8080"))
        server.run()  # Blocks

    Or, to learn the bound port first (tests, service "0"):
        listener = server.bind()
        print(listener.port)
        server.serve_forever(listener)
    """

    def __init__(self, config: Optional[ServerConfig] = None,
                 responder: Optional[Responder] = None):
        """
        Args:
            config: Server configuration. Defaults to ServerConfig().
            responder: Turns each Request into response bytes. Defaults to a
                       StaticResponder built from the config.
        """
        self.config = config or ServerConfig()
        self.config.validate()  # Fail-fast on invalid config

        self.responder = responder or StaticResponder(
            self.config.response_body,
            server_name=self.config.server_name,
        )
        self.context = ServerContext()
        self._handler = ConnectionHandler(
            self.responder,
            server_name=self.config.server_name,
            log_format=self.config.log_format,
        )

    def bind(self) -> ListeningSocket:
        """
        Resolve the configured address and listen on the first candidate.

        Raises:
            ResolutionError, SocketCreateError, BindError, ListenError
        """
        with resolve(self.config.host, self.config.service) as addresses:
            candidate = addresses.first()
            logger.debug(f"{len(addresses)} candidate(s), using {candidate}")
            return bind_and_listen(candidate, self.config.backlog)

    def serve_forever(self, listener: ListeningSocket) -> None:
        """
        Run the accept loop on `listener` until accept() fails.

        Raises:
            AcceptError: After waiting for in-flight connections.
        """
        try:
            accept_loop(
                listener,
                self.context,
                self._handler,
                buffer_size=self.config.buffer_size,
                read_timeout=self.config.read_timeout,
            )
        except AcceptError as e:
            logger.error(f"Accept loop stopped: {e}")
            self.context.join_all()
            raise

    def run(self) -> None:
        """
        Start the server (blocking).

        Returns on Ctrl+C. Connection threads are daemons, so in-flight
        requests are dropped at that point.
        """
        self._setup_logging()

        listener = self.bind()
        logger.info(f"Server listening on {listener.host}:{listener.port}")

        try:
            with listener:
                self.serve_forever(listener)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")

    def _setup_logging(self):
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("cohttp").setLevel(level)
