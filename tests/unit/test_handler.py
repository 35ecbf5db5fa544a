"""
Unit tests for Connection and ConnectionHandler, over a local socket pair.
"""

import logging
import socket

import pytest

from cohttp.core import Connection, ConnectionHandler, ConnectionState, read_request
from cohttp.errors import PrematureCloseError
from cohttp.http import Request, StaticResponder

from conftest import RecordingResponder, recv_all


@pytest.fixture
def pair():
    server_side, client_side = socket.socketpair()
    conn = Connection(socket=server_side, address=("127.0.0.1", 40000), buffer_size=7)
    yield conn, client_side
    conn.close()
    client_side.close()


def send_and_finish(client: socket.socket, data: bytes) -> None:
    """Send everything, then half-close so the server sees EOF after it."""
    client.sendall(data)
    client.shutdown(socket.SHUT_WR)


class TestReadRequest:

    def test_reads_in_buffer_sized_chunks(self, pair, sample_post_request: bytes):
        conn, client = pair
        send_and_finish(client, sample_post_request)

        request = read_request(conn)

        assert request.body == b'{"name": "John", "email": "john@example.com"}'
        assert conn.bytes_received == len(sample_post_request)

    def test_premature_close(self, pair):
        conn, client = pair
        send_and_finish(client, b"POST / HTTP/1.1\r\nContent-Length: 10\r\n\r\nabc")

        with pytest.raises(PrematureCloseError) as exc_info:
            read_request(conn)

        assert exc_info.value.bytes_received == 42

    def test_close_before_anything_sent(self, pair):
        conn, client = pair
        client.shutdown(socket.SHUT_WR)

        with pytest.raises(PrematureCloseError) as exc_info:
            read_request(conn)

        assert exc_info.value.bytes_received == 0


class TestConnectionHandler:

    def test_serves_one_request(self, pair, sample_get_request: bytes):
        conn, client = pair
        responder = RecordingResponder("hi")
        send_and_finish(client, sample_get_request)

        ConnectionHandler(responder)(conn)

        response = recv_all(client)
        assert response.startswith(b"HTTP/1.1 200 OK\r\n")
        assert response.endswith(b"\r\n\r\nhi")
        assert responder.calls == 1
        assert responder.requests[0].request_line == "GET / HTTP/1.1"
        assert conn.state is ConnectionState.CLOSED

    def test_writes_responder_bytes_verbatim(self, pair, sample_get_request: bytes):
        conn, client = pair
        send_and_finish(client, sample_get_request)

        ConnectionHandler(lambda request: b"raw bytes, no framing")(conn)

        assert recv_all(client) == b"raw bytes, no framing"

    def test_malformed_content_length_gets_400(self, pair):
        conn, client = pair
        responder = RecordingResponder()
        send_and_finish(client, b"POST / HTTP/1.1\r\nContent-Length: lots\r\n\r\n")

        ConnectionHandler(responder)(conn)

        assert recv_all(client).startswith(b"HTTP/1.1 400 Bad Request\r\n")
        assert responder.calls == 0
        assert conn.is_closed

    def test_oversized_content_length_gets_400(self, pair):
        conn, client = pair
        responder = RecordingResponder()
        send_and_finish(client, b"POST / HTTP/1.1\r\nContent-Length: " + b"9" * 5000 + b"\r\n\r\n")

        ConnectionHandler(responder)(conn)

        assert recv_all(client).startswith(b"HTTP/1.1 400 Bad Request\r\n")
        assert responder.calls == 0
        assert conn.is_closed

    def test_premature_close_sends_nothing(self, pair):
        conn, client = pair
        responder = RecordingResponder()
        send_and_finish(client, b"GET / HTTP/1.1\r\nHost:")

        ConnectionHandler(responder)(conn)

        assert recv_all(client) == b""
        assert responder.calls == 0
        assert conn.is_closed

    def test_responder_error_gets_500(self, pair, sample_get_request: bytes, caplog):
        conn, client = pair

        def broken(request: Request) -> bytes:
            raise KeyError("boom")

        send_and_finish(client, sample_get_request)
        with caplog.at_level(logging.ERROR, logger="cohttp"):
            ConnectionHandler(broken)(conn)

        assert recv_all(client).startswith(b"HTTP/1.1 500 Internal Server Error\r\n")
        assert "Responder error" in caplog.text
        assert conn.is_closed

    def test_access_log_json(self, pair, sample_post_request: bytes, caplog):
        conn, client = pair
        send_and_finish(client, sample_post_request)

        with caplog.at_level(logging.INFO, logger="cohttp.access"):
            ConnectionHandler(StaticResponder(), log_format="json")(conn)

        records = [r for r in caplog.records if r.name == "cohttp.access"]
        assert len(records) == 1
        assert '"status_code": 200' in records[0].getMessage()
        assert '"content_length": 45' in records[0].getMessage()
        assert '"request_line": "POST /api/users HTTP/1.1"' in records[0].getMessage()


class TestConnection:

    def test_close_only_once(self, pair):
        conn, client = pair
        client.shutdown(socket.SHUT_WR)

        conn.close()
        conn.close()

        assert conn.state is ConnectionState.CLOSED

    def test_send_failure_returns_false(self, pair):
        conn, client = pair
        client.close()

        # First write may still be buffered; keep writing until the peer is noticed
        results = [conn.send_response(b"x" * 65536) for _ in range(10)]

        assert results[-1] is False
        assert conn.state is ConnectionState.WRITING
