"""
=============================================================================
RESPONSE GENERATION
=============================================================================

The connection handler does not decide what to answer. It hands the
finished Request to a RESPONDER and writes back whatever bytes it gets:

    Request ──► responder(request) ──► bytes ──► socket.sendall()

Any callable with that shape works. The default StaticResponder answers
every request with the same small plain-text body:

    HTTP/1.1 200 OK\\r\\n
    Content-Type: text/plain; charset=utf-8\\r\\n
    Content-Length: 13\\r\\n       ← Auto-calculated
    Date: Mon, 19 Oct 2026 ...\\r\\n ← Auto-added
    Server: co_http\\r\\n           ← Auto-added
    Connection: close\\r\\n         ← One request per connection
    \\r\\n
    Hello, World!

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, Union

from .parser import Request
from .status_codes import HTTPStatus


DEFAULT_SERVER_NAME = "co_http"

Responder = Callable[[Request], bytes]


@dataclass
class HTTPResponse:
    """
    An HTTP response waiting to be serialized.

    Connection is always closed after one response, so "Connection: close"
    is added unless the caller sets the header itself.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """Status line, e.g. 'HTTP/1.1 200 OK'."""
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """Set a response header. Returns self for chaining."""
        self.headers[name] = value
        return self

    def set_body(self, body: Union[str, bytes]) -> "HTTPResponse":
        """Set the body, encoding strings as UTF-8."""
        if isinstance(body, str):
            self.body = body.encode("utf-8")
        else:
            self.body = body
        return self

    def to_bytes(self, server_name: str = DEFAULT_SERVER_NAME) -> bytes:
        """
        Serialize for socket.sendall().

        Content-Length, Date, Server and Connection are filled in when
        missing, so the body is always correctly bounded for the client.
        """
        response_headers = dict(self.headers)

        if "Content-Length" not in response_headers:
            response_headers["Content-Length"] = str(len(self.body))
        if "Date" not in response_headers:
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))
        if "Server" not in response_headers:
            response_headers["Server"] = server_name
        response_headers.setdefault("Connection", "close")

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("utf-8") + b"\r\n"
        return header_bytes + self.body


def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an IMF-fixdate (RFC 7231).

    Example: "Mon, 19 Oct 2026 08:30:00 GMT"

    strftime("%a") is locale-dependent, so names are spelled out here.
    """
    weekdays = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    dt = dt.astimezone(timezone.utc)
    return (
        f"{weekdays[dt.weekday()]}, {dt.day:02d} {months[dt.month - 1]} "
        f"{dt.year} {dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


class StaticResponder:
    """
    Answers every request with the same 200 response.

    Usage:
        responder = StaticResponder("Hello, World!")
        conn.send_response(responder(request))
    """

    def __init__(self, body: Union[str, bytes] = "Hello, World!",
                 server_name: str = DEFAULT_SERVER_NAME,
                 content_type: str = "text/plain; charset=utf-8"):
        self.server_name = server_name
        self._response = (HTTPResponse()
            .set_header("Content-Type", content_type)
            .set_body(body))

    @property
    def body(self) -> bytes:
        return self._response.body

    def __call__(self, request: Request) -> bytes:
        return self._response.to_bytes(self.server_name)


def error_response(status: HTTPStatus, server_name: str = DEFAULT_SERVER_NAME) -> bytes:
    """Serialize a short plain-text error response, e.g. '400 Bad Request'."""
    return (HTTPResponse(status=status)
        .set_header("Content-Type", "text/plain; charset=utf-8")
        .set_body(f"{int(status)} {status.phrase}\n")
        .to_bytes(server_name))
