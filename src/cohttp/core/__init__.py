"""
=============================================================================
CORE NETWORKING COMPONENTS
=============================================================================

    resolve()           host/service → ResolvedAddressSet
        │ .first()
        ▼
    bind_and_listen()   socket → SO_REUSEADDR/PORT → bind → listen
        │
        ▼
    accept_loop()       accept → Connection → Thread(ConnectionHandler)
        │                                       │
        │ register(thread)                      │ RequestParser
        ▼                                       ▼
    ServerContext       join_all()          responder → sendall → close

=============================================================================
"""

from .connection import Connection, ConnectionState
from .context import ServerContext
from .handler import ConnectionHandler, read_request
from .resolver import ResolvedAddress, ResolvedAddressSet, resolve
from .socket_server import ListeningSocket, accept_loop, bind_and_listen

__all__ = [
    "Connection",
    "ConnectionState",
    "ConnectionHandler",
    "ListeningSocket",
    "ResolvedAddress",
    "ResolvedAddressSet",
    "ServerContext",
    "accept_loop",
    "bind_and_listen",
    "read_request",
    "resolve",
]
