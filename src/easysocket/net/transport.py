"""
EasySocket — Transport (Abstract I/O Layer)

Goal:
  Give EasySocket one surface for every backend so the socket and the
  server loops never touch raw sockets or websocket objects directly.

Notes:
  - Connection.recv_chunk() blocks and returns the next chunk of bytes
    (stream transports) or the next whole message (datagram transports),
    or None at end of stream / after a local close().
  - Connection.datagram tells the reader whether a chunk boundary also
    terminates a frame (UDP datagrams, WebSocket messages) or not (TCP).
  - Backends raise easysocket.errors types only.

This module is pure structure: no sockets here.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable
from urllib.parse import urlsplit


# ---------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------

class TransportKind(str, enum.Enum):
    TCP = "tcp"
    UDP = "udp"
    WS = "ws"
    HTTP = "http"
    MEMORY = "memory"


@dataclass(frozen=True, slots=True)
class Address:
    """
    Parsed endpoint.

    Accepted spellings:
      - "127.0.0.1:7000"             (scheme comes from the caller)
      - "tcp://127.0.0.1:7000"
      - "ws://example.com:8080/chat"
      - "http://[::1]:8080"
    """
    scheme: str
    host: str
    port: int
    path: str = ""

    @property
    def hostport(self) -> tuple[str, int]:
        return self.host, self.port

    @property
    def uri(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{self.scheme}://{host}:{self.port}{self.path}"


def parse_address(address: str, *, default_scheme: str) -> Address:
    if not isinstance(address, str) or not address.strip():
        raise ValueError("address must be a non-empty string")

    raw = address.strip()
    if "://" not in raw:
        raw = f"{default_scheme}://{raw}"

    parts = urlsplit(raw)
    scheme = (parts.scheme or default_scheme).lower()
    host = parts.hostname or ""
    try:
        port = parts.port
    except ValueError as e:
        raise ValueError(f"invalid port in address: {address}") from e

    if not host:
        raise ValueError(f"missing host in address: {address}")
    if port is None:
        raise ValueError(f"missing port in address: {address}")

    path = parts.path or ""
    if parts.query:
        path = f"{path}?{parts.query}"
    return Address(scheme=scheme, host=host, port=int(port), path=path)


def format_peer(scheme: str, sockaddr: tuple) -> str:
    host, port = sockaddr[0], sockaddr[1]
    if ":" in str(host):
        return f"{scheme}://[{host}]:{int(port)}"
    return f"{scheme}://{host}:{int(port)}"


# ---------------------------------------------------------------------
# Connection interface
# ---------------------------------------------------------------------

@runtime_checkable
class Connection(Protocol):
    """
    A live link to a single peer.
    """

    @property
    def kind(self) -> TransportKind: ...

    @property
    def peer(self) -> str: ...

    @property
    def datagram(self) -> bool: ...

    @property
    def closed(self) -> bool: ...

    def recv_chunk(self) -> Optional[bytes]: ...
    def send_bytes(self, data: bytes) -> None: ...
    def close(self) -> None: ...
