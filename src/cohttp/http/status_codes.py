"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The few status codes this server ever sends:

    200 OK                     Every complete request (static response)
    400 Bad Request            Unparseable Content-Length
    500 Internal Server Error  The responder raised

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    IntEnum, so codes compare equal to plain integers:
        >>> HTTPStatus.OK == 200
        True
        >>> HTTPStatus.OK.phrase
        'OK'
    """

    OK = 200                        # Request served
    BAD_REQUEST = 400               # Malformed request syntax
    INTERNAL_SERVER_ERROR = 500     # Unexpected server error (catch-all)

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line, e.g. 'Not Found'."""
        return _STATUS_PHRASES.get(self, "Unknown")


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
}
