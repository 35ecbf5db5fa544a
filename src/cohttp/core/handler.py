"""
=============================================================================
CONNECTION HANDLER
=============================================================================

Runs in the connection's own thread and owns it until it is closed:

    ┌─────────────────────────────────────────────────────────────────┐
    │   with conn:                              (close exactly once)   │
    │       while parser.needs_more_chunks():                          │
    │           chunk = conn.recv_chunk()       BLOCKS this thread     │
    │           b"" → PrematureCloseError                              │
    │           parser.push_chunk(chunk)                               │
    │       response = responder(request)                              │
    │       conn.send_response(response)                               │
    └─────────────────────────────────────────────────────────────────┘

Per-connection failures stop here. Nothing raised while serving one
connection reaches the accept loop or another connection's thread:

    MalformedHeaderError   → 400 Bad Request, close
    PrematureCloseError    → close (nobody to answer)
    OSError / TimeoutError → close
    responder raised       → 500 Internal Server Error, close

=============================================================================
"""

import logging
from typing import Optional

from ..access_log import RequestLog, log_request, now_timestamp
from ..errors import MalformedHeaderError, PrematureCloseError
from ..http.parser import Request, RequestParser
from ..http.response import DEFAULT_SERVER_NAME, Responder, error_response
from ..http.status_codes import HTTPStatus
from .connection import Connection, ConnectionState


logger = logging.getLogger(__name__)


def read_request(conn: Connection, parser: Optional[RequestParser] = None) -> Request:
    """
    Read chunks from `conn` until the parser has a complete request.

    Raises:
        PrematureCloseError: The peer closed before the request was complete.
        MalformedHeaderError: Content-Length could not be parsed.
        OSError: The read failed (reset handled as close, timeout if set).
    """
    parser = parser if parser is not None else RequestParser()

    while parser.needs_more_chunks():
        chunk = conn.recv_chunk()
        if not chunk:
            raise PrematureCloseError(parser.bytes_received)
        parser.push_chunk(chunk)

    return parser.to_request()


def _status_code(response: bytes) -> int:
    """Status code from a serialized response, 0 if it has none."""
    parts = response.split(b" ", 2)
    if len(parts) >= 2 and parts[1].isdigit():
        return int(parts[1])
    return 0


class ConnectionHandler:
    """
    Serves exactly one request per connection.

    Usage:
        handler = ConnectionHandler(StaticResponder())
        threading.Thread(target=handler, args=(conn,)).start()
    """

    def __init__(self, responder: Responder,
                 server_name: str = DEFAULT_SERVER_NAME,
                 log_format: str = "text"):
        self.responder = responder
        self.server_name = server_name
        self.log_format = log_format

    def __call__(self, conn: Connection) -> None:
        with conn:
            parser = RequestParser()

            try:
                request = read_request(conn, parser)
            except MalformedHeaderError as e:
                logger.warning(f"[{conn.id}] {e}")
                self._reply(conn, error_response(HTTPStatus.BAD_REQUEST, self.server_name),
                            parser.request_line, 0)
                return
            except PrematureCloseError as e:
                logger.info(f"[{conn.id}] {e}")
                return
            except OSError as e:
                logger.warning(f"[{conn.id}] Read failed: {e}")
                return

            conn.state = ConnectionState.PROCESSING
            logger.debug(f"[{conn.id}] Received header:\n{request.header_text}")

            try:
                response = self.responder(request)
            except Exception as e:
                logger.exception(f"[{conn.id}] Responder error: {e}")
                response = error_response(HTTPStatus.INTERNAL_SERVER_ERROR, self.server_name)

            self._reply(conn, response, request.request_line, request.content_length)

    def _reply(self, conn: Connection, response: bytes,
               request_line: str, content_length: int) -> None:
        logger.debug(f"[{conn.id}] Sending {len(response)} bytes:\n"
                     f"{response.decode('latin-1')}")

        if not conn.send_response(response):
            return

        log_request(RequestLog(
            connection_id=conn.id,
            client_ip=str(conn.client_ip),
            client_port=int(conn.client_port),
            request_line=request_line,
            status_code=_status_code(response),
            content_length=content_length,
            response_bytes=len(response),
            duration_ms=conn.age * 1000,
            timestamp=now_timestamp(),
        ), self.log_format)
