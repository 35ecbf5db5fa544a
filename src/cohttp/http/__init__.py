"""
=============================================================================
HTTP PROTOCOL COMPONENTS
=============================================================================

    parser.py        Incremental header/body parser (one per connection)
    response.py      Response serialization and the default responder
    status_codes.py  Status codes this server sends

Only the framing part of HTTP is interpreted: the CRLFCRLF header
terminator and Content-Length. Method, URI and version are carried
through untouched in Request.request_line.

=============================================================================
"""

from .parser import (
    Request,
    RequestParser,
    ParserState,
    parse_content_length,
)
from .response import (
    HTTPResponse,
    Responder,
    StaticResponder,
    error_response,
    format_http_date,
)
from .status_codes import HTTPStatus

__all__ = [
    # Request parsing
    "Request",
    "RequestParser",
    "ParserState",
    "parse_content_length",

    # Responses
    "HTTPResponse",
    "Responder",
    "StaticResponder",
    "error_response",
    "format_http_date",

    # Status codes
    "HTTPStatus",
]
