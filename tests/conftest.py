"""
pytest configuration and fixtures.
"""

import dataclasses
import logging
import socket
import threading
import time
from typing import Callable, Generator, List, Optional

import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from cohttp import Server, ServerConfig
from cohttp.core import ListeningSocket
from cohttp.errors import AcceptError
from cohttp.http import Request, StaticResponder


@pytest.fixture(autouse=True)
def restore_log_level():
    """Server.run() sets the package log level; undo it between tests."""
    package_logger = logging.getLogger("cohttp")
    level = package_logger.level
    yield
    package_logger.setLevel(level)


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample GET request without a body."""
    return (
        b"GET / HTTP/1.1\r\n"
        b"Host: x\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample POST request with a JSON body."""
    body = b'{"name": "John", "email": "john@example.com"}'
    return (
        b"POST /api/users HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: application/json\r\n"
        b"Content-Length: %d\r\n" % len(body) +
        b"\r\n"
    ) + body


@pytest.fixture
def config() -> ServerConfig:
    """Test configuration: loopback, OS-assigned port."""
    return ServerConfig(
        host="127.0.0.1",
        service="0",
        log_level="WARNING",
    )


def recv_all(sock: socket.socket) -> bytes:
    """Read until the peer closes."""
    data = b""
    while True:
        chunk = sock.recv(4096)
        if not chunk:
            return data
        data += chunk


class RecordingResponder:
    """Static responder that remembers every request it answered."""

    def __init__(self, body: str = "Hello, World!"):
        self._static = StaticResponder(body)
        self._lock = threading.Lock()
        self.requests: List[Request] = []

    def __call__(self, request: Request) -> bytes:
        with self._lock:
            self.requests.append(request)
        return self._static(request)

    @property
    def calls(self) -> int:
        with self._lock:
            return len(self.requests)


class RunningServer:
    """Server running its accept loop in a background thread."""

    def __init__(self, server: Server):
        self.server = server
        self.listener: Optional[ListeningSocket] = None
        self.error: Optional[AcceptError] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.listener.port

    def start(self):
        self.listener = self.server.bind()
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def _serve(self):
        try:
            self.server.serve_forever(self.listener)
        except AcceptError as e:
            self.error = e

    def connect(self) -> socket.socket:
        return socket.create_connection(("127.0.0.1", self.port), timeout=5.0)

    def request(self, *chunks: bytes, pause: float = 0.0) -> bytes:
        """Send chunks (optionally pausing between them), return the response."""
        with self.connect() as client:
            for chunk in chunks:
                client.sendall(chunk)
                if pause:
                    time.sleep(pause)
            return recv_all(client)

    def stop(self):
        if self.listener is not None:
            self.listener.close()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    @property
    def stopped(self) -> bool:
        return self._thread is not None and not self._thread.is_alive()


@pytest.fixture
def start_server(config: ServerConfig) -> Generator[Callable[..., RunningServer], None, None]:
    """
    Factory for running servers. Keyword arguments override config fields:

        running = start_server(responder, read_timeout=0.2)
    """
    started: List[RunningServer] = []

    def _start(responder=None, **overrides) -> RunningServer:
        server = Server(dataclasses.replace(config, **overrides), responder)
        running = RunningServer(server)
        running.start()
        started.append(running)
        return running

    yield _start

    for running in started:
        running.stop()


@pytest.fixture
def responder() -> RecordingResponder:
    return RecordingResponder()


@pytest.fixture
def running_server(start_server, responder: RecordingResponder) -> RunningServer:
    """A running server answering through the `responder` fixture."""
    return start_server(responder)
