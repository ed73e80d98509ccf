# src/easysocket/http/serve.py
"""
uvicorn runner bound to a socket we opened ourselves.

Binding first lets bind failures surface as BindError (uvicorn would log
and exit the process) and lets callers read the ephemeral port.
"""

from __future__ import annotations

import socket

import uvicorn
from fastapi import FastAPI

from easysocket.net.transport import Address
from easysocket.net.transport_tcp import bind_listener


class HttpListener:
    def __init__(self, app: FastAPI, sock: socket.socket, address: Address) -> None:
        self._sock = sock
        self.address = address
        self._server = uvicorn.Server(
            uvicorn.Config(app, log_level="warning", access_log=False, lifespan="off")
        )

    @classmethod
    def bind(cls, app: FastAPI, address: str, *, backlog: int = 128) -> "HttpListener":
        sock, bound = bind_listener(address, scheme="http", backlog=backlog)
        return cls(app, sock, bound)

    @property
    def started(self) -> bool:
        return bool(self._server.started)

    def run(self) -> None:
        """Blocking; returns after stop()."""
        self._server.run(sockets=[self._sock])

    async def serve(self) -> None:
        await self._server.serve(sockets=[self._sock])

    def stop(self) -> None:
        self._server.should_exit = True
