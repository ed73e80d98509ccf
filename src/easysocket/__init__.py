"""
EasySocket — event-driven sockets over TCP, UDP, WebSocket and HTTP.

    from easysocket import EasySocket, EasySocketServer

    server = EasySocketServer()

    def setup(sock):
        sock.on("ping", lambda _frame: sock.emit("pong"))
        sock.listen()

    server.on("connection", setup)
    server.listen_tcp("127.0.0.1:7000")
"""

from __future__ import annotations

from easysocket.errors import (
    BindError,
    ConnectError,
    EasySocketError,
    FrameTooLarge,
    HandshakeError,
    ReadError,
    WriteError,
)
from easysocket.http.client import http_get, http_post
from easysocket.net.registry import EventRegistry, ExactEventRegistry, PrefixEventRegistry
from easysocket.net.server import EasySocketServer
from easysocket.net.sockets import EasySocket
from easysocket.net.transport import TransportKind

__all__ = [
    "EasySocket",
    "EasySocketServer",
    "EventRegistry",
    "ExactEventRegistry",
    "PrefixEventRegistry",
    "TransportKind",
    "http_get",
    "http_post",
    "EasySocketError",
    "ConnectError",
    "BindError",
    "HandshakeError",
    "ReadError",
    "FrameTooLarge",
    "WriteError",
]

__version__ = "0.1.0"
