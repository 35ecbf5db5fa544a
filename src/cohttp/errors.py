"""
=============================================================================
ERROR TAXONOMY
=============================================================================

Every failure the server can hit is one of these exceptions. The class
tells you HOW FAR the damage reaches:

    ┌──────────────────────┬──────────────────────────────────────────────┐
    │  StartupError        │  Fatal to the process. Raised before the      │
    │   ├─ ResolutionError │  first accept(); the CLI prints it and exits. │
    │   ├─ SocketCreateError                                              │
    │   ├─ BindError       │                                              │
    │   └─ ListenError     │                                              │
    ├──────────────────────┼──────────────────────────────────────────────┤
    │  AcceptError         │  Fatal to the accept loop. In-flight          │
    │                      │  connections are allowed to finish.           │
    ├──────────────────────┼──────────────────────────────────────────────┤
    │  RequestError        │  Fatal to ONE connection. Caught at the       │
    │   ├─ PrematureCloseError   handler boundary, never crosses threads. │
    │   └─ MalformedHeaderError                                           │
    └──────────────────────┴──────────────────────────────────────────────┘

Each exception carries its diagnostic as data (message, detail, errno),
so callers can inspect failures instead of parsing printed output.

=============================================================================
"""

from typing import Optional, Tuple


class ServerError(Exception):
    """
    Base class for all cohttp errors.

    Attributes:
        message: Short description of what failed.
        detail: Underlying diagnostic (e.g. the resolver's or the OS's
                error string). Empty if there is none.
        errno: OS error number when the failure came from a system call.
    """

    def __init__(self, message: str, detail: str = "", errno: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail
        self.errno = errno

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message}: {self.detail}"
        return self.message


# =============================================================================
# STARTUP ERRORS
# =============================================================================

class StartupError(ServerError):
    """Failure while preparing the listening socket. Aborts the process."""


class ResolutionError(StartupError):
    """Host/service name resolution failed or produced no addresses."""

    def __init__(self, host: str, service: str, detail: str = "", errno: Optional[int] = None):
        super().__init__(f"Cannot resolve {host!r} {service!r}", detail, errno)
        self.host = host
        self.service = service


class SocketCreateError(StartupError):
    """socket() failed for the chosen address family/type/protocol."""


class BindError(StartupError):
    """bind() failed, usually 'address in use' or 'permission denied'."""

    def __init__(self, address: Tuple, detail: str = "", errno: Optional[int] = None):
        super().__init__(f"Failed to bind to {address}", detail, errno)
        self.address = address


class ListenError(StartupError):
    """listen() failed on a bound socket."""


# =============================================================================
# ACCEPT LOOP
# =============================================================================

class AcceptError(ServerError):
    """accept() failed. The accept loop stops; there is no retry."""


# =============================================================================
# PER-CONNECTION ERRORS
# =============================================================================

class RequestError(ServerError):
    """
    A single connection could not produce a complete request.

    status_code is the HTTP status to answer with, when an answer makes
    sense at all (None means just close the connection).
    """

    status_code: Optional[int] = None


class PrematureCloseError(RequestError):
    """The peer closed the connection before the request was complete."""

    def __init__(self, bytes_received: int):
        super().__init__(
            "Peer closed connection before request was complete",
            f"{bytes_received} bytes received",
        )
        self.bytes_received = bytes_received


class MalformedHeaderError(RequestError):
    """A header field the server interprets has an unusable value."""

    status_code = 400

    def __init__(self, field: str, value: str):
        super().__init__(f"Malformed {field} header", repr(value))
        self.field = field
        self.value = value
