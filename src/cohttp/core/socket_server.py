"""
=============================================================================
LISTENING SOCKET AND ACCEPT LOOP
=============================================================================

SOCKET LIFECYCLE (Server Side):
────────────────────────────────

    1. socket()    Create a socket for the candidate's family/type/protocol
    2. setsockopt() SO_REUSEADDR, SO_REUSEPORT (best effort)
    3. bind()      Associate the socket with the resolved address
    4. listen()    Let the OS queue incoming connections (backlog)
    5. accept()    BLOCK until a client connects, get a NEW socket for it

                    ┌───────────────────────┐
                    │   Listening Socket    │ ◄── Created once at startup
                    └───────────┬───────────┘     Never sends/receives data
                                │ accept()
        ┌───────────────────────┼───────────────────────┐
        ▼                       ▼                       ▼
    ┌───────────┐         ┌───────────┐         ┌───────────┐
    │ Thread 1  │         │ Thread 2  │         │ Thread 3  │
    │ conn 1    │         │ conn 2    │         │ conn 3    │
    └───────────┘         └───────────┘         └───────────┘

Steps 1, 3 and 4 are fatal on failure (SocketCreateError, BindError,
ListenError). Step 2 only logs: a server that cannot set SO_REUSEPORT
still works, it just cannot share the port.

=============================================================================
SOCKET OPTIONS
=============================================================================

SO_REUSEADDR:
    Without it, restarting the server right after stopping it fails with
    "Address already in use" while old connections sit in TIME_WAIT.

SO_REUSEPORT:
    Lets several sockets bind the same address. Not available on every
    platform (Windows has no such constant).

=============================================================================
ONE THREAD PER CONNECTION
=============================================================================

The accept loop never waits for a connection to finish. Every accepted
socket gets its own thread, and the loop goes straight back to accept().
There is no upper bound on threads and no read timeout by default: a
client that never finishes its request pins one thread forever.

An accept() failure ends the loop (AcceptError). Transient errors such as
ECONNABORTED or EMFILE are not retried.

=============================================================================
"""

import logging
import socket
import threading
from typing import Callable, Optional, Tuple

from ..errors import AcceptError, BindError, ListenError, SocketCreateError
from .connection import Connection
from .context import ServerContext
from .resolver import ResolvedAddress


logger = logging.getLogger(__name__)

ConnectionHandler = Callable[[Connection], None]


class ListeningSocket:
    """
    A bound socket in listening state.

    Usage:
        with bind_and_listen(candidate) as listener:
            client_socket, client_address = listener.accept()
    """

    def __init__(self, sock: socket.socket, candidate: ResolvedAddress, backlog: int):
        self.socket = sock
        self.candidate = candidate
        self.backlog = backlog
        self._closed = False

    @property
    def address(self) -> Tuple:
        """The address actually bound (port 0 is replaced by the real port)."""
        return self.socket.getsockname()

    @property
    def host(self) -> str:
        return self.address[0]

    @property
    def port(self) -> int:
        return self.address[1]

    @property
    def closed(self) -> bool:
        return self._closed

    def accept(self) -> Tuple[socket.socket, Tuple]:
        """
        Block until a client connects.

        Returns:
            (client_socket, client_address)

        Raises:
            AcceptError: accept() failed, including on a closed listener.
        """
        try:
            return self.socket.accept()
        except OSError as e:
            raise AcceptError("accept() failed", e.strerror or str(e), e.errno) from e

    def close(self) -> None:
        """
        Stop listening. Only the first call does anything.

        shutdown() comes first because a bare close() does not wake a
        thread blocked in accept() on Linux.
        """
        if self._closed:
            return
        self._closed = True

        try:
            self.socket.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass  # Listening sockets are not connected on every platform
        self.socket.close()
        logger.debug(f"Listening socket on {self.candidate} closed")

    def __enter__(self) -> "ListeningSocket":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def _enable_reuse(sock: socket.socket) -> None:
    """Set SO_REUSEADDR and SO_REUSEPORT, ignoring failures."""
    for name in ("SO_REUSEADDR", "SO_REUSEPORT"):
        try:
            sock.setsockopt(socket.SOL_SOCKET, getattr(socket, name), 1)
        except AttributeError:
            logger.debug(f"{name} not available on this platform")
        except OSError as e:
            logger.debug(f"Could not set {name}: {e}")


def bind_and_listen(candidate: ResolvedAddress, backlog: int = socket.SOMAXCONN) -> ListeningSocket:
    """
    Create, bind and listen on one resolved address.

    Args:
        candidate: Address from resolve(), usually addresses.first().
        backlog: Pending-connection queue length. Defaults to the
                 platform maximum (SOMAXCONN).

    Returns:
        A ListeningSocket ready for accept().

    Raises:
        SocketCreateError: socket() failed.
        BindError: bind() failed.
        ListenError: listen() failed.
    """
    try:
        sock = socket.socket(candidate.family, candidate.type, candidate.proto)
    except OSError as e:
        raise SocketCreateError(
            f"Failed to create socket for {candidate}", e.strerror or str(e), e.errno
        ) from e

    _enable_reuse(sock)

    try:
        sock.bind(candidate.sockaddr)
    except OSError as e:
        sock.close()
        raise BindError(candidate.sockaddr, e.strerror or str(e), e.errno) from e

    try:
        sock.listen(backlog)
    except OSError as e:
        sock.close()
        raise ListenError(f"Failed to listen on {candidate}", e.strerror or str(e), e.errno) from e

    logger.debug(f"Listening on {candidate} (backlog {backlog})")
    return ListeningSocket(sock, candidate, backlog)


def accept_loop(
    listener: ListeningSocket,
    context: ServerContext,
    handler: ConnectionHandler,
    buffer_size: int = 1024,
    read_timeout: Optional[float] = None,
) -> None:
    """
    Accept connections forever, one thread per connection.

    ┌─────────────────────────────────────────────────────────────────┐
    │   while True:                                                    │
    │       accept()            BLOCKS until a connection arrives      │
    │       Connection(...)     Wrap the client socket                 │
    │       Thread(handler)     Start it, do NOT wait for it           │
    │       context.register()  Remember it for join_all()             │
    └─────────────────────────────────────────────────────────────────┘

    Args:
        listener: Socket from bind_and_listen().
        context: Receives every connection thread.
        handler: Called with each Connection in its own thread. Must close
                 the connection itself.
        buffer_size: recv() size for each connection.
        read_timeout: Per-read timeout for each connection. None = no timeout.

    Raises:
        AcceptError: The only way out of the loop.
    """
    while True:
        client_socket, client_address = listener.accept()

        try:
            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=buffer_size,
                timeout=read_timeout,
            )
        except OSError as e:
            # Peer vanished between accept() and setup; only this one is lost
            logger.warning(f"Dropping connection from {client_address}: {e}")
            client_socket.close()
            continue

        logger.debug(f"[{conn.id}] Accepted connection from {conn.client_ip}:{conn.client_port}")

        thread = threading.Thread(
            target=handler,
            args=(conn,),
            name=f"cohttp-conn-{conn.id}",
            daemon=True,
        )
        thread.start()
        context.register(thread)
