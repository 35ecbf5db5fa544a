"""
End-to-end tests against a running server on an ephemeral loopback port.
"""

import threading
import time

import pytest

from cohttp import Server, ServerConfig
from cohttp.errors import AcceptError, BindError, ResolutionError

from conftest import recv_all


def wait_for(condition, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(0.01)
    return condition()


class TestRequestResponse:

    def test_get_in_one_write(self, running_server, responder, sample_get_request: bytes):
        """The client never closes its side: completion comes from the parser alone."""
        response = running_server.request(sample_get_request)

        assert response.startswith(b"HTTP/1.1 200 OK\r\n")
        assert b"Server: co_http\r\n" in response
        assert b"Connection: close\r\n" in response
        assert response.endswith(b"\r\n\r\nHello, World!")
        assert responder.calls == 1
        assert responder.requests[0].header == b"GET / HTTP/1.1\r\nHost: x"

    def test_default_responder(self, start_server, sample_get_request: bytes):
        running = start_server(response_body="static body")

        response = running.request(sample_get_request)

        assert b"Content-Length: 11\r\n" in response
        assert response.endswith(b"static body")

    def test_body_split_across_writes(self, running_server, responder, sample_post_request: bytes):
        chunks = [sample_post_request[i:i + 10] for i in range(0, len(sample_post_request), 10)]

        response = running_server.request(*chunks, pause=0.01)

        assert response.startswith(b"HTTP/1.1 200 OK\r\n")
        assert responder.requests[0].body == b'{"name": "John", "email": "john@example.com"}'

    def test_byte_at_a_time(self, running_server, responder):
        raw = b"PUT /x HTTP/1.1\r\ncontent-length: 3\r\n\r\nabc"

        running_server.request(*[raw[i:i + 1] for i in range(len(raw))], pause=0.002)

        assert responder.calls == 1
        assert responder.requests[0].body == b"abc"
        assert responder.requests[0].content_length == 3

    def test_small_buffer_size(self, start_server, responder, sample_post_request: bytes):
        running = start_server(responder, buffer_size=1)

        response = running.request(sample_post_request)

        assert response.startswith(b"HTTP/1.1 200 OK\r\n")
        assert responder.requests[0].body.startswith(b'{"name"')


class TestConnectionIsolation:

    def test_interleaved_partial_requests(self, running_server, responder):
        with running_server.connect() as a, running_server.connect() as b:
            a.sendall(b"POST /a HTTP/1.1\r\nContent-Len")
            b.sendall(b"POST /b HTTP/1.1\r\nContent-Length: 3\r\n")
            time.sleep(0.05)
            a.sendall(b"gth: 5\r\n\r\nalp")
            b.sendall(b"\r\nbe")
            time.sleep(0.05)
            a.sendall(b"ha")
            b.sendall(b"t")

            response_a = recv_all(a)
            response_b = recv_all(b)

        assert response_a.startswith(b"HTTP/1.1 200 OK\r\n")
        assert response_b.startswith(b"HTTP/1.1 200 OK\r\n")
        bodies = {r.request_line: r.body for r in responder.requests}
        assert bodies == {"POST /a HTTP/1.1": b"alpha", "POST /b HTTP/1.1": b"bet"}

    def test_stalled_client_does_not_block_others(self, running_server, responder, sample_get_request: bytes):
        with running_server.connect() as stalled:
            stalled.sendall(b"GET /slow HTTP/1.1\r\n")

            response = running_server.request(sample_get_request)

            assert response.startswith(b"HTTP/1.1 200 OK\r\n")
            assert responder.calls == 1

    def test_many_concurrent_clients(self, running_server, responder, sample_get_request: bytes):
        responses = []
        lock = threading.Lock()

        def client():
            response = running_server.request(sample_get_request)
            with lock:
                responses.append(response)

        clients = [threading.Thread(target=client) for _ in range(20)]
        for thread in clients:
            thread.start()
        for thread in clients:
            thread.join(timeout=10.0)

        assert len(responses) == 20
        assert all(r.startswith(b"HTTP/1.1 200 OK\r\n") for r in responses)
        assert responder.calls == 20
        assert wait_for(lambda: running_server.server.context.total_registered == 20)


class TestConnectionErrors:

    def test_premature_close_does_not_affect_server(self, running_server, responder, sample_get_request: bytes):
        with running_server.connect() as client:
            client.sendall(b"POST / HTTP/1.1\r\nContent-Length: 100\r\n\r\nonly a bit")

        assert wait_for(lambda: len(running_server.server.context) == 0)

        response = running_server.request(sample_get_request)
        assert response.startswith(b"HTTP/1.1 200 OK\r\n")
        assert responder.calls == 1

    def test_malformed_content_length(self, running_server, responder, sample_get_request: bytes):
        response = running_server.request(b"POST / HTTP/1.1\r\nContent-Length: twelve\r\n\r\n")

        assert response.startswith(b"HTTP/1.1 400 Bad Request\r\n")
        assert responder.calls == 0

        assert running_server.request(sample_get_request).startswith(b"HTTP/1.1 200 OK\r\n")

    def test_read_timeout(self, start_server, responder):
        running = start_server(responder, read_timeout=0.2)

        with running.connect() as idle:
            started = time.monotonic()
            assert recv_all(idle) == b""

        assert time.monotonic() - started < 4.0
        assert responder.calls == 0


class TestServerLifecycle:

    def test_accept_error_stops_loop(self, running_server, sample_get_request: bytes):
        running_server.request(sample_get_request)

        running_server.stop()

        assert running_server.stopped
        assert isinstance(running_server.error, AcceptError)

    def test_bind_reports_ephemeral_port(self, config: ServerConfig):
        with Server(config).bind() as listener:
            assert listener.port > 0

    def test_resolution_error(self, config: ServerConfig):
        config.service = "no-such-service-cohttp"

        with pytest.raises(ResolutionError):
            Server(config).bind()

    def test_bind_error(self, config: ServerConfig):
        config.host = "192.0.2.1"

        with pytest.raises(BindError):
            Server(config).bind()

    def test_invalid_config_rejected(self):
        with pytest.raises(ValueError):
            Server(ServerConfig(buffer_size=0))
