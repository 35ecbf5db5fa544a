"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

A Connection wraps one accepted client socket. It is owned by exactly one
handler thread and closed exactly once, whichever way that thread exits.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL!
=============================================================================

    Client sends:
        send(b"GET / HTTP/1.1\\r\\nHost: x\\r\\n\\r\\n")

    Server might receive ANY of these:
        recv() → b"GET / HTTP/1.1\\r\\nHost: x\\r\\n\\r\\n"   (all at once)
        recv() → b"GET / HT"                                (partial)
        recv() → b"TP/1.1\\r\\nHost: x\\r\\n\\r\\n"           (the rest)

So Connection only hands out raw chunks (recv_chunk); deciding when a
request is complete is the RequestParser's job.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    NEW ──────► READING ──────► PROCESSING ──────► WRITING
     │             │                 │                 │
     │             ▼                 ▼                 ▼
     └─────────► CLOSING ◄───────────┴─────────────────┘
                    │
                    ▼
                  CLOSED

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import uuid


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Connection lifecycle states, mostly for logging."""
    NEW = "new"                # Just accepted, nothing read yet
    READING = "reading"        # Reading request chunks
    PROCESSING = "processing"  # Request complete, responder running
    WRITING = "writing"        # Sending response bytes
    CLOSING = "closing"        # Shutdown sequence in progress
    CLOSED = "closed"          # Socket released


@dataclass
class Connection:
    """
    One accepted client connection.

    Attributes:
        socket: The client socket.
        address: Peer address as returned by accept().
        id: Short unique identifier for log lines.
        state: Current ConnectionState.
        buffer_size: Maximum bytes per recv().
        timeout: Read timeout in seconds. None blocks forever.
        bytes_received: Total bytes read so far.
        bytes_sent: Total bytes written so far.
    """

    socket: socket.socket
    address: tuple

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    buffer_size: int = 1024
    timeout: Optional[float] = None
    bytes_received: int = 0
    bytes_sent: int = 0

    def __post_init__(self):
        # settimeout(None) puts the socket in plain blocking mode
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def client_port(self) -> int:
        return self.address[1]

    @property
    def age(self) -> float:
        """Seconds since the connection was accepted."""
        return time.time() - self.created_at

    @property
    def is_closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    # =========================================================================
    # READING
    # =========================================================================

    def recv_chunk(self) -> bytes:
        """
        Block for the next chunk of at most buffer_size bytes.

        Returns:
            Received bytes. b"" means the peer closed its side, including
            an abrupt reset.

        Raises:
            TimeoutError: If a read timeout is configured and expires.
            OSError: For other socket failures.
        """
        self.state = ConnectionState.READING
        try:
            data = self.socket.recv(self.buffer_size)
        except ConnectionResetError:
            logger.debug(f"[{self.id}] Connection reset by peer")
            return b""
        self.bytes_received += len(data)
        return data

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Write all of `data` to the peer.

        sendall() keeps writing until every byte is out or an error occurs.

        Returns:
            True if sent, False if the peer went away.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False
        self.bytes_sent += len(data)
        return True

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection. Only the first call does anything.

        1. shutdown(SHUT_WR) sends FIN so the client sees end-of-response.
        2. Drain whatever the client still sends (briefly) so the kernel
           does not answer unread data with RST and truncate the response.
        3. close() releases the file descriptor.
        """
        if self.state in (ConnectionState.CLOSING, ConnectionState.CLOSED):
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass  # Timeout or reset, closing anyway

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(
            f"[{self.id}] Connection closed after {self.age * 1000:.1f}ms "
            f"({self.bytes_received} bytes in, {self.bytes_sent} bytes out)"
        )

    def __enter__(self):
        """
        Context manager entry:

            with conn:
                chunk = conn.recv_chunk()
                conn.send_response(response)
            # Connection closed here, also on exceptions
        """
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False  # Don't suppress exceptions
