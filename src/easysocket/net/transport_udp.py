# src/easysocket/net/transport_udp.py
"""
EasySocket — UDP Transport

UDP "connections" are logical:
  - UdpConnection: a client socket connect()ed to one peer, so the kernel
    filters inbound datagrams to that peer and send() needs no address.
  - UdpPeerConnection: the server-side view of one source address. It
    shares the server's bound socket; the server loop reads datagrams and
    drives dispatch, so recv_chunk() always reports end of stream.

Every datagram is self-contained: its end terminates any trailing frame.
"""

from __future__ import annotations

import socket
from typing import Optional

from easysocket.errors import BindError, ConnectError, ReadError, WriteError
from easysocket.net.transport import Address, TransportKind, format_peer, parse_address
from easysocket.net.transport_tcp import family_for, shutdown_quietly


class UdpConnection:
    def __init__(self, sock: socket.socket, *, peer: str, max_datagram: int = 65535) -> None:
        self._sock = sock
        self._peer = peer
        self._max_datagram = int(max_datagram)
        self._closed = False

    @property
    def kind(self) -> TransportKind:
        return TransportKind.UDP

    @property
    def peer(self) -> str:
        return self._peer

    @property
    def datagram(self) -> bool:
        return True

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def local_address(self) -> tuple:
        return self._sock.getsockname()

    def recv_chunk(self) -> Optional[bytes]:
        if self._closed:
            return None
        try:
            data = self._sock.recv(self._max_datagram)
        except OSError as e:
            if self._closed:
                return None
            raise ReadError("recv_failed", f"udp read from {self._peer} failed: {e}") from e
        if self._closed:
            return None
        return data

    def send_bytes(self, data: bytes) -> None:
        if self._closed:
            raise WriteError("closed", f"udp socket for {self._peer} is closed")
        try:
            self._sock.send(data)
        except OSError as e:
            raise WriteError("send_failed", f"udp write to {self._peer} failed: {e}") from e

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        shutdown_quietly(self._sock)


class UdpPeerConnection:
    def __init__(self, sock: socket.socket, *, sockaddr: tuple) -> None:
        self._sock = sock
        self._sockaddr = sockaddr
        self._peer = format_peer("udp", sockaddr)
        self._closed = False

    @property
    def kind(self) -> TransportKind:
        return TransportKind.UDP

    @property
    def peer(self) -> str:
        return self._peer

    @property
    def sockaddr(self) -> tuple:
        return self._sockaddr

    @property
    def datagram(self) -> bool:
        return True

    @property
    def closed(self) -> bool:
        return self._closed

    def recv_chunk(self) -> Optional[bytes]:
        return None

    def send_bytes(self, data: bytes) -> None:
        if self._closed:
            raise WriteError("closed", f"udp peer {self._peer} is closed")
        try:
            self._sock.sendto(data, self._sockaddr)
        except OSError as e:
            raise WriteError("send_failed", f"udp write to {self._peer} failed: {e}") from e

    def close(self) -> None:
        # The bound socket belongs to the server.
        self._closed = True


def dial_udp(peer: str, *, bind: Optional[str] = None, max_datagram: int = 65535) -> UdpConnection:
    try:
        addr = parse_address(peer, default_scheme="udp")
        local = parse_address(bind, default_scheme="udp") if bind else None
    except ValueError as e:
        raise ConnectError("invalid_address", str(e)) from e

    s = socket.socket(family_for(addr.host), socket.SOCK_DGRAM)
    if local is not None:
        try:
            s.bind(local.hostport)
        except OSError as e:
            s.close()
            raise BindError("bind_failed", f"bind {local.uri} failed: {e}") from e

    try:
        s.connect(addr.hostport)
    except OSError as e:
        s.close()
        raise ConnectError("dial_failed", f"udp connect to {addr.uri} failed: {e}") from e

    return UdpConnection(s, peer=format_peer("udp", s.getpeername()), max_datagram=max_datagram)


def bind_udp(address: str) -> tuple[socket.socket, Address]:
    try:
        addr = parse_address(address, default_scheme="udp")
    except ValueError as e:
        raise BindError("invalid_address", str(e)) from e

    s = socket.socket(family_for(addr.host), socket.SOCK_DGRAM)
    try:
        s.bind(addr.hostport)
    except OSError as e:
        s.close()
        raise BindError("bind_failed", f"bind {addr.uri} failed: {e}") from e

    host, port = s.getsockname()[:2]
    return s, Address(scheme="udp", host=str(host), port=int(port))
