# src/easysocket/net/transport_ws.py
"""
EasySocket — WebSocket Transport (websockets)

Each WebSocket message carries one or more newline-terminated frames, so
both connection types are datagram-style: the message boundary also
terminates a trailing frame. Frames are sent as text messages when they
are valid UTF-8 and as binary messages otherwise.

Client side uses websockets.sync.client.connect().

Server side keeps the accept loop in EasySocketServer. The accepted TCP
socket is driven here through the sans-I/O ServerProtocol:
  - accept_ws(): read the upgrade request, answer it, fail closed
  - WsServerConnection: blocking recv() feeds the protocol, assembled
    messages come out of recv_chunk(); writes go through the same
    protocol under a lock
"""

from __future__ import annotations

import socket
import threading
from collections import deque
from typing import Any, Deque, List, Optional

from websockets import ServerProtocol
from websockets.exceptions import (
    ConnectionClosed,
    ConnectionClosedOK,
    InvalidHandshake,
    InvalidState,
    InvalidURI,
    ProtocolError,
)
from websockets.frames import Opcode
from websockets.protocol import State
from websockets.sync.client import connect as ws_connect

from easysocket.errors import ConnectError, HandshakeError, ReadError, WriteError
from easysocket.net.transport import TransportKind, parse_address
from easysocket.net.transport_tcp import shutdown_quietly

# normal closure, going away, no status code
GRACEFUL_CLOSE_CODES = frozenset({1000, 1001, 1005})


def _message_for(data: bytes):
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return data


# ---------------------------------------------------------------------
# Client side
# ---------------------------------------------------------------------

class WsConnection:
    def __init__(self, ws: Any, *, peer: str) -> None:
        self._ws = ws
        self._peer = peer
        self._closed = False

    @property
    def kind(self) -> TransportKind:
        return TransportKind.WS

    @property
    def peer(self) -> str:
        return self._peer

    @property
    def datagram(self) -> bool:
        return True

    @property
    def closed(self) -> bool:
        return self._closed

    def recv_chunk(self) -> Optional[bytes]:
        if self._closed:
            return None
        try:
            msg = self._ws.recv()
        except ConnectionClosedOK:
            return None
        except ConnectionClosed as e:
            if self._closed:
                return None
            raise ReadError("ws_closed_abnormally", f"websocket {self._peer} closed: {e}") from e
        except OSError as e:
            if self._closed:
                return None
            raise ReadError("recv_failed", f"websocket read from {self._peer} failed: {e}") from e
        if isinstance(msg, str):
            return msg.encode("utf-8")
        return bytes(msg)

    def send_bytes(self, data: bytes) -> None:
        if self._closed:
            raise WriteError("closed", f"websocket {self._peer} is closed")
        try:
            self._ws.send(_message_for(data))
        except (ConnectionClosed, OSError) as e:
            raise WriteError("send_failed", f"websocket write to {self._peer} failed: {e}") from e

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._ws.close()


def dial_ws(address: str, *, timeout: float = 10.0) -> WsConnection:
    try:
        addr = parse_address(address, default_scheme="ws")
    except ValueError as e:
        raise ConnectError("invalid_address", str(e)) from e

    try:
        ws = ws_connect(addr.uri, open_timeout=timeout or None)
    except InvalidURI as e:
        raise ConnectError("invalid_address", str(e)) from e
    except InvalidHandshake as e:
        raise HandshakeError("handshake_rejected", f"websocket upgrade to {addr.uri} rejected: {e}") from e
    except OSError as e:
        raise ConnectError("dial_failed", f"connect to {addr.uri} failed: {e}") from e

    return WsConnection(ws, peer=addr.uri)


# ---------------------------------------------------------------------
# Server side
# ---------------------------------------------------------------------

def _flush(sock: socket.socket, protocol: ServerProtocol) -> None:
    for chunk in protocol.data_to_send():
        if chunk:
            sock.sendall(chunk)
        else:
            # b"" asks for a half-close
            try:
                sock.shutdown(socket.SHUT_WR)
            except OSError:
                pass


class WsServerConnection:
    def __init__(
        self,
        sock: socket.socket,
        protocol: ServerProtocol,
        *,
        peer: str,
        recv_bytes: int = 65536,
    ) -> None:
        self._sock = sock
        self._protocol = protocol
        self._peer = peer
        self._recv_bytes = int(recv_bytes)

        self._lock = threading.Lock()
        self._messages: Deque[bytes] = deque()
        self._parts: List[bytes] = []
        self._eof = False
        self._closed = False

    @property
    def kind(self) -> TransportKind:
        return TransportKind.WS

    @property
    def peer(self) -> str:
        return self._peer

    @property
    def datagram(self) -> bool:
        return True

    @property
    def closed(self) -> bool:
        return self._closed

    def _collect(self, events: list) -> None:
        for frame in events:
            if frame.opcode in (Opcode.TEXT, Opcode.BINARY):
                self._parts = [bytes(frame.data)]
            elif frame.opcode is Opcode.CONT:
                self._parts.append(bytes(frame.data))
            else:
                continue
            if frame.fin:
                self._messages.append(b"".join(self._parts))
                self._parts = []

    def _finished(self) -> Optional[bytes]:
        if self._closed:
            return None
        close = self._protocol.close_rcvd
        if close is not None and close.code in GRACEFUL_CLOSE_CODES:
            return None
        code = close.code if close is not None else 1006
        raise ReadError("ws_closed_abnormally", f"websocket {self._peer} closed with code {code}")

    def recv_chunk(self) -> Optional[bytes]:
        while True:
            if self._messages:
                return self._messages.popleft()
            if self._closed:
                return None
            if self._eof or self._protocol.close_rcvd is not None:
                return self._finished()

            try:
                data = self._sock.recv(self._recv_bytes)
                with self._lock:
                    if data:
                        self._protocol.receive_data(data)
                    else:
                        self._eof = True
                        self._protocol.receive_eof()
                    events = self._protocol.events_received()
                    _flush(self._sock, self._protocol)
            except OSError as e:
                if self._closed:
                    return None
                raise ReadError("recv_failed", f"websocket read from {self._peer} failed: {e}") from e
            self._collect(events)

    def send_bytes(self, data: bytes) -> None:
        if self._closed:
            raise WriteError("closed", f"websocket {self._peer} is closed")
        message = _message_for(data)
        try:
            with self._lock:
                if isinstance(message, str):
                    self._protocol.send_text(data)
                else:
                    self._protocol.send_binary(data)
                _flush(self._sock, self._protocol)
        except (InvalidState, ProtocolError, OSError) as e:
            raise WriteError("send_failed", f"websocket write to {self._peer} failed: {e}") from e

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        with self._lock:
            if self._protocol.state is State.OPEN:
                try:
                    self._protocol.send_close(1000)
                    _flush(self._sock, self._protocol)
                except OSError:
                    pass
        shutdown_quietly(self._sock)


def accept_ws(
    sock: socket.socket,
    *,
    peer: str,
    timeout: float = 10.0,
    recv_bytes: int = 65536,
) -> WsServerConnection:
    """Run the server side of the opening handshake on an accepted socket."""
    protocol = ServerProtocol()
    request = None
    sock.settimeout(timeout or None)
    try:
        while request is None:
            data = sock.recv(recv_bytes)
            if data:
                protocol.receive_data(data)
            else:
                protocol.receive_eof()
            events = protocol.events_received()
            if events:
                request = events[0]
            if request is None and (protocol.handshake_exc is not None or not data):
                _flush(sock, protocol)
                reason = protocol.handshake_exc or "connection closed before upgrade"
                raise HandshakeError("handshake_failed", f"websocket handshake with {peer} failed: {reason}")

        response = protocol.accept(request)
        protocol.send_response(response)
        _flush(sock, protocol)
        if protocol.state is not State.OPEN:
            raise HandshakeError(
                "handshake_failed",
                f"websocket handshake with {peer} failed: {protocol.handshake_exc or response.status_code}",
            )
    except HandshakeError:
        shutdown_quietly(sock)
        raise
    except OSError as e:
        shutdown_quietly(sock)
        raise HandshakeError("handshake_failed", f"websocket handshake with {peer} failed: {e}") from e

    sock.settimeout(None)
    return WsServerConnection(sock, protocol, peer=peer, recv_bytes=recv_bytes)
