"""
=============================================================================
INCREMENTAL REQUEST PARSER
=============================================================================

TCP is a byte stream. A request can arrive in one recv() or in fifty, and
the split points are arbitrary:

    recv() → b"GET / HTTP/1.1\\r\\nConte"
    recv() → b"nt-Length: 3\\r\\n\\r"
    recv() → b"\\nab"
    recv() → b"c"

The parser is fed those chunks one by one with push_chunk() and tells the
caller when it has seen enough. The result must not depend on where the
chunks were split.

=============================================================================
STATE MACHINE
=============================================================================

    ┌──────────────────┐  CRLFCRLF seen   ┌────────────────┐  len(body) >=   ┌──────────┐
    │ AWAITING_HEADER  │ ───────────────► │ AWAITING_BODY  │ ──────────────► │ COMPLETE │
    └──────────────────┘  fields parsed   └────────────────┘  content_length └──────────┘

AWAITING_HEADER:
    Chunks are appended to the header buffer. The first time the buffer
    contains b"\\r\\n\\r\\n", everything before it becomes the header, the
    bytes AFTER it seed the body buffer and the header fields are parsed.

AWAITING_BODY:
    Chunks are appended to the body buffer until it holds at least
    Content-Length bytes (0 when the header is absent, so a bodiless
    request completes together with its header).

COMPLETE:
    Terminal. Only queries are allowed.

=============================================================================
HEADER FIELDS
=============================================================================

    Host: localhost\\r\\n
    Content-Length: 42\\r\\n
    └────────────┘└┘└┘
        name      ": " value

Names are compared case-insensitively (ASCII lowercase). Only
Content-Length changes parser behavior; the other fields are kept in
`headers` for whoever answers the request.

=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict

from ..errors import MalformedHeaderError


HEADER_DELIMITER = b"\r\n\r\n"
LINE_TERMINATOR = b"\r\n"
FIELD_SEPARATOR = b": "

# Characters allowed around a Content-Length value
_OPTIONAL_WHITESPACE = b" \t"


class ParserState(Enum):
    """Where the parser is in the request."""
    AWAITING_HEADER = "awaiting_header"
    AWAITING_BODY = "awaiting_body"
    COMPLETE = "complete"


@dataclass(frozen=True)
class Request:
    """
    A complete, correctly-bounded request.

    Attributes:
        header: Raw header bytes, without the CRLFCRLF delimiter.
        body: Exactly content_length bytes of body.
        content_length: Declared body length (0 if absent).
        headers: Field values keyed by lowercase field name.
        request_line: First header line, e.g. "GET / HTTP/1.1".
    """
    header: bytes
    body: bytes = b""
    content_length: int = 0
    headers: Dict[str, str] = field(default_factory=dict)
    request_line: str = ""

    @property
    def header_text(self) -> str:
        """Header decoded as latin-1 (every byte maps to one character)."""
        return self.header.decode("latin-1")

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)


def parse_content_length(value: bytes) -> int:
    """
    Parse a Content-Length value as a base-10 non-negative integer.

    Surrounding spaces/tabs are tolerated. Signs, embedded spaces,
    non-ASCII digits and empty values are rejected.

    Raises:
        MalformedHeaderError: If the value is not a plain decimal number.
    """
    stripped = value.strip(_OPTIONAL_WHITESPACE)
    # bytes.isdigit() only accepts ASCII 0-9
    if not stripped or not stripped.isdigit():
        raise MalformedHeaderError("Content-Length", value.decode("latin-1"))
    try:
        return int(stripped)
    except ValueError as e:
        # int() refuses digit strings past sys.get_int_max_str_digits()
        raise MalformedHeaderError("Content-Length", value.decode("latin-1")) from e


class RequestParser:
    """
    Incremental request parser for one connection.

    Not thread-safe and not meant to be: each connection owns its parser.

    Usage:
        parser = RequestParser()
        while parser.needs_more_chunks():
            parser.push_chunk(sock.recv(1024))
        request = parser.to_request()

    After a MalformedHeaderError the parser must be discarded.
    """

    def __init__(self):
        self._header = bytearray()
        self._body = bytearray()
        self.content_length = 0
        self.headers: Dict[str, str] = {}
        self.request_line = ""
        self.state = ParserState.AWAITING_HEADER

    # =========================================================================
    # FEEDING
    # =========================================================================

    def push_chunk(self, chunk: bytes) -> None:
        """
        Feed the next chunk read from the connection.

        Args:
            chunk: Bytes in the order received. May be empty.

        Raises:
            MalformedHeaderError: If Content-Length cannot be parsed.
            RuntimeError: If the request is already complete.
        """
        if self.state is ParserState.COMPLETE:
            raise RuntimeError("push_chunk() called on a complete request")

        if self.state is ParserState.AWAITING_HEADER:
            self._push_header_chunk(chunk)
        else:
            self._body += chunk

        if self.state is ParserState.AWAITING_BODY:
            self._check_body_complete()

    def _push_header_chunk(self, chunk: bytes) -> None:
        # The delimiter may straddle the previous chunk boundary
        search_from = max(0, len(self._header) - len(HEADER_DELIMITER) + 1)
        self._header += chunk

        header_end = self._header.find(HEADER_DELIMITER, search_from)
        if header_end == -1:
            return

        self._body = self._header[header_end + len(HEADER_DELIMITER):]
        del self._header[header_end:]

        self._extract_fields()
        self.state = ParserState.AWAITING_BODY

    def _extract_fields(self) -> None:
        """Parse 'Name: value' lines of the finalized header."""
        lines = bytes(self._header).split(LINE_TERMINATOR)
        self.request_line = lines[0].decode("latin-1")

        for line in lines:
            name, separator, value = line.partition(FIELD_SEPARATOR)
            if not separator:
                continue

            # bytes.lower() only touches ASCII A-Z
            name = name.lower()
            self.headers[name.decode("latin-1")] = value.decode("latin-1")

            if name == b"content-length":
                self.content_length = parse_content_length(value)

    def _check_body_complete(self) -> None:
        if len(self._body) >= self.content_length:
            self.state = ParserState.COMPLETE

    # =========================================================================
    # QUERIES
    # =========================================================================

    def is_header_complete(self) -> bool:
        """True once the header delimiter has been seen. Never reverts."""
        return self.state is not ParserState.AWAITING_HEADER

    def needs_more_chunks(self) -> bool:
        """True until the declared body has been fully received."""
        return self.state is not ParserState.COMPLETE

    @property
    def is_complete(self) -> bool:
        return self.state is ParserState.COMPLETE

    @property
    def header(self) -> bytes:
        """Header bytes seen so far (final once is_header_complete())."""
        return bytes(self._header)

    @property
    def body(self) -> bytes:
        """Body bytes received so far, capped at content_length."""
        return bytes(self._body[:self.content_length])

    @property
    def bytes_received(self) -> int:
        """Total bytes consumed, delimiter included once the header is done."""
        if self.is_header_complete():
            return len(self._header) + len(HEADER_DELIMITER) + len(self._body)
        return len(self._header)

    def to_request(self) -> Request:
        """
        Freeze the parsed request.

        Raises:
            RuntimeError: If the request is not complete yet.
        """
        if not self.is_complete:
            raise RuntimeError(f"Request is not complete (state: {self.state.value})")

        return Request(
            header=self.header,
            body=self.body,
            content_length=self.content_length,
            headers=dict(self.headers),
            request_line=self.request_line,
        )
