# src/easysocket/net/transport_tcp.py
"""
EasySocket — TCP Transport (blocking sockets)

  - dial_tcp():  blocking connect, then reads block with no timeout
  - bind_listener(): bound + listening socket for the TCP and WS accept loops
  - TcpConnection: one accepted or dialed stream

close() shuts the socket down before closing it so a recv() blocked on
another thread wakes up and sees end of stream.
"""

from __future__ import annotations

import socket
from typing import Optional

from easysocket.errors import BindError, ConnectError, ReadError, WriteError
from easysocket.net.transport import Address, TransportKind, format_peer, parse_address


def family_for(host: str) -> int:
    return socket.AF_INET6 if ":" in host else socket.AF_INET


def shutdown_quietly(sock: socket.socket) -> None:
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError:
        pass
    try:
        sock.close()
    except OSError:
        pass


# ---------------------------------------------------------------------
# Connection implementation
# ---------------------------------------------------------------------

class TcpConnection:
    def __init__(self, sock: socket.socket, *, peer: str, recv_bytes: int = 65536) -> None:
        self._sock = sock
        self._peer = peer
        self._recv_bytes = int(recv_bytes)
        self._closed = False

    @property
    def kind(self) -> TransportKind:
        return TransportKind.TCP

    @property
    def peer(self) -> str:
        return self._peer

    @property
    def datagram(self) -> bool:
        return False

    @property
    def closed(self) -> bool:
        return self._closed

    def recv_chunk(self) -> Optional[bytes]:
        if self._closed:
            return None
        try:
            chunk = self._sock.recv(self._recv_bytes)
        except OSError as e:
            if self._closed:
                return None
            raise ReadError("recv_failed", f"tcp read from {self._peer} failed: {e}") from e
        if not chunk:
            return None
        return chunk

    def send_bytes(self, data: bytes) -> None:
        if self._closed:
            raise WriteError("closed", f"tcp connection to {self._peer} is closed")
        try:
            self._sock.sendall(data)
        except OSError as e:
            raise WriteError("send_failed", f"tcp write to {self._peer} failed: {e}") from e

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        shutdown_quietly(self._sock)


# ---------------------------------------------------------------------
# Dial / bind
# ---------------------------------------------------------------------

def dial_tcp(address: str, *, timeout: float = 10.0, recv_bytes: int = 65536) -> TcpConnection:
    try:
        addr = parse_address(address, default_scheme="tcp")
    except ValueError as e:
        raise ConnectError("invalid_address", str(e)) from e

    try:
        sock = socket.create_connection(addr.hostport, timeout=timeout or None)
    except OSError as e:
        raise ConnectError("dial_failed", f"connect to {addr.uri} failed: {e}") from e

    # No read timeouts once connected.
    sock.settimeout(None)
    return TcpConnection(sock, peer=format_peer("tcp", sock.getpeername()), recv_bytes=recv_bytes)


def bind_listener(address: str, *, scheme: str = "tcp", backlog: int = 128) -> tuple[socket.socket, Address]:
    """Bind + listen. Returns the socket and the address actually bound."""
    try:
        addr = parse_address(address, default_scheme=scheme)
    except ValueError as e:
        raise BindError("invalid_address", str(e)) from e

    s = socket.socket(family_for(addr.host), socket.SOCK_STREAM)
    try:
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        s.bind(addr.hostport)
        s.listen(int(backlog))
    except OSError as e:
        s.close()
        raise BindError("bind_failed", f"bind {addr.uri} failed: {e}") from e

    host, port = s.getsockname()[:2]
    return s, Address(scheme=addr.scheme, host=str(host), port=int(port), path=addr.path)
