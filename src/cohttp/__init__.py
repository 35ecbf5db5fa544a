"""
=============================================================================
COHTTP - Minimal Concurrent HTTP Server
=============================================================================

Accepts stream connections, reads one request per connection in whatever
chunks the network delivers, answers it and closes.

    cohttp/
    ├── __init__.py       # This file - package exports
    ├── __main__.py       # CLI entry point (python -m cohttp)
    ├── server.py         # Server: wires everything together
    ├── config.py         # ServerConfig dataclass
    ├── errors.py         # Error taxonomy
    ├── access_log.py     # Per-connection access log records
    ├── core/
    │   ├── resolver.py       # getaddrinfo() with scoped release
    │   ├── socket_server.py  # bind/listen + accept loop
    │   ├── context.py        # Connection thread registry
    │   ├── connection.py     # Client socket wrapper
    │   └── handler.py        # Read → parse → respond → close
    └── http/
        ├── parser.py         # Incremental header/body parser
        ├── response.py       # Static responder
        └── status_codes.py   # HTTPStatus

QUICK START

    from cohttp import Server, ServerConfig

    Server(ServerConfig(service="8080")).run()

    # Custom responder: any callable Request -> bytes
    def echo(request):
        return b"HTTP/1.1 200 OK\\r\\nContent-Length: %d\\r\\n\\r\\n%s" % (
            len(request.body), request.body)

    Server(responder=echo).run()

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .errors import (
    AcceptError,
    BindError,
    ListenError,
    MalformedHeaderError,
    PrematureCloseError,
    RequestError,
    ResolutionError,
    ServerError,
    SocketCreateError,
    StartupError,
)
from .http import Request, RequestParser, StaticResponder
from .server import Server

__all__ = [
    "Server",
    "ServerConfig",
    "Request",
    "RequestParser",
    "StaticResponder",
    "ServerError",
    "StartupError",
    "ResolutionError",
    "SocketCreateError",
    "BindError",
    "ListenError",
    "AcceptError",
    "RequestError",
    "PrematureCloseError",
    "MalformedHeaderError",
    "__version__",
]
