"""
=============================================================================
ACCESS LOGGING
=============================================================================

One log record per served connection, on the "cohttp.access" logger so it
can be routed separately from diagnostics:

    logging.getLogger("cohttp.access").addHandler(file_handler)

Two formats:

    text:  127.0.0.1:52144 - [19/Oct/2026:08:30:00 +0000] "GET / HTTP/1.1" 200 0 142 1.84ms
    json:  {"connection_id": "3f2a9c1b", "client_ip": "127.0.0.1", ...}

=============================================================================
"""

import json
import logging
import time
from dataclasses import asdict, dataclass


logger = logging.getLogger("cohttp.access")

LOG_FORMATS = ("text", "json")


@dataclass
class RequestLog:
    """
    Structured log entry for one connection.

    connection_id:   Connection.id, matches the [id] prefix of debug lines
    client_ip:       Peer IP address
    client_port:     Peer port
    request_line:    First header line, as received
    status_code:     Status of the response that was written
    content_length:  Declared request body length
    response_bytes:  Bytes written back
    duration_ms:     Accept-to-response time
    timestamp:       When the response was written
    """

    connection_id: str
    client_ip: str
    client_port: int
    request_line: str
    status_code: int
    content_length: int
    response_bytes: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        entry = asdict(self)
        entry["duration_ms"] = round(self.duration_ms, 2)
        return entry

    def to_text(self) -> str:
        """Apache-like single line."""
        return (
            f'{self.client_ip}:{self.client_port} - [{self.timestamp}] '
            f'"{self.request_line}" {self.status_code} {self.content_length} '
            f'{self.response_bytes} {self.duration_ms:.2f}ms'
        )


def log_request(entry: RequestLog, log_format: str = "text") -> None:
    """Emit `entry` on the access logger in the configured format."""
    if log_format == "json":
        logger.info(json.dumps(entry.to_dict()))
    else:
        logger.info(entry.to_text())


def now_timestamp() -> str:
    return time.strftime("%d/%b/%Y:%H:%M:%S %z")
