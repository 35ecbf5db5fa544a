"""
=============================================================================
ADDRESS RESOLUTION
=============================================================================

Before a server can bind it needs a concrete socket address. Users give
names ("localhost", "http"); getaddrinfo() turns them into candidates:

    resolve("localhost", "8080")
        │
        ▼
    ┌──────────────────────────────────────────────────────────────────┐
    │ ResolvedAddressSet (ordered, resolver-defined order preserved)   │
    │   [0] AF_INET6  SOCK_STREAM  ('::1', 8080, 0, 0)                 │
    │   [1] AF_INET   SOCK_STREAM  ('127.0.0.1', 8080)                 │
    └──────────────────────────────────────────────────────────────────┘

Each candidate carries everything socket() and bind() need: family,
socket type, protocol and the raw address tuple.

=============================================================================
SCOPED RELEASE
=============================================================================

The result set is a context manager. release() runs exactly once, on the
normal path or when an exception leaves the `with` block:

    with resolve(host, service) as addresses:
        listener = bind_and_listen(addresses.first())
    # addresses released here, even if bind_and_listen() raised

=============================================================================
"""

import logging
import socket
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

from ..errors import ResolutionError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedAddress:
    """
    One candidate address from getaddrinfo().

    Attributes:
        family: Address family (AF_INET, AF_INET6, ...).
        type: Socket type (SOCK_STREAM).
        proto: Protocol number (usually IPPROTO_TCP).
        canonname: Canonical host name, if the resolver returned one.
        sockaddr: Raw address tuple for bind()/connect().
    """
    family: socket.AddressFamily
    type: socket.SocketKind
    proto: int
    canonname: str
    sockaddr: Tuple

    @property
    def host(self) -> str:
        return self.sockaddr[0]

    @property
    def port(self) -> int:
        return self.sockaddr[1]

    def __str__(self) -> str:
        if self.family == socket.AF_INET6:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"


class ResolvedAddressSet:
    """
    Ordered, non-empty set of candidate addresses.

    Owns the resolver result until release(). Reading it after release
    raises RuntimeError.
    """

    def __init__(self, host: str, service: str, addresses: List[ResolvedAddress]):
        self.host = host
        self.service = service
        self._addresses: Optional[List[ResolvedAddress]] = addresses

    @property
    def released(self) -> bool:
        return self._addresses is None

    def _entries(self) -> List[ResolvedAddress]:
        if self._addresses is None:
            raise RuntimeError(f"Addresses for {self.host} {self.service} already released")
        return self._addresses

    def first(self) -> ResolvedAddress:
        """The first candidate (resolver order)."""
        return self._entries()[0]

    def __iter__(self) -> Iterator[ResolvedAddress]:
        return iter(list(self._entries()))

    def __len__(self) -> int:
        return len(self._entries())

    def __getitem__(self, index: int) -> ResolvedAddress:
        return self._entries()[index]

    def release(self) -> None:
        """Drop the resolver result. Safe to call more than once."""
        if self._addresses is None:
            return
        logger.debug(f"Releasing {len(self._addresses)} address(es) for {self.host} {self.service}")
        self._addresses = None

    def __enter__(self) -> "ResolvedAddressSet":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False  # Don't suppress exceptions


def resolve(host: str, service: str) -> ResolvedAddressSet:
    """
    Resolve a host/service pair into stream-socket candidates.

    Args:
        host: Host name or literal address ("localhost", "0.0.0.0", "::1").
        service: Service name or literal port ("http", "8080").

    Returns:
        A non-empty ResolvedAddressSet in resolver order.

    Raises:
        ResolutionError: Empty input, unknown host/service, or no addresses.
    """
    if not host or not service:
        raise ResolutionError(host, service, "host and service must be non-empty")

    try:
        infos = socket.getaddrinfo(
            host, service,
            type=socket.SOCK_STREAM,
            flags=socket.AI_PASSIVE,
        )
    except socket.gaierror as e:
        raise ResolutionError(host, service, e.strerror or str(e), e.errno) from e
    except UnicodeError as e:
        # IDNA encoding of the host name failed
        raise ResolutionError(host, service, str(e)) from e

    if not infos:
        raise ResolutionError(host, service, "no addresses returned")

    addresses = [
        ResolvedAddress(family, type_, proto, canonname, sockaddr)
        for family, type_, proto, canonname, sockaddr in infos
    ]
    logger.debug(f"Resolved {host} {service} to {', '.join(str(a) for a in addresses)}")

    return ResolvedAddressSet(host, service, addresses)
