# src/easysocket/net/sockets.py
"""
EasySocket — the event-driven socket

One EasySocket owns one Connection (TCP stream, WebSocket, connected UDP
client, server-side UDP peer, or an in-memory pair) and one EventRegistry.

  - emit(event, payload=None) writes one frame
  - on(event, handler) / onmessage(handler) register handlers
  - listen() reads frames and dispatches them on the calling thread until
    the connection ends; run it on its own thread to keep working
  - id() is assigned at construction, before any handshake

Lifecycle: Dispatching -> Closed, no way back. listen() closes the socket
on every exit path (graceful end, ReadError, handler exception).
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from easysocket.config import EasySocketConfig, load_config
from easysocket.errors import ReadError, WriteError
from easysocket.net.codec import BytesLike, decode_stream, encode_frame, join_event, split_frames
from easysocket.net.identity import Identity, next_client_id
from easysocket.net.net_logging import log_event
from easysocket.net.registry import EventRegistry, ExactEventRegistry, Handler
from easysocket.net.transport import Connection, TransportKind
from easysocket.net.transport_tcp import dial_tcp
from easysocket.net.transport_udp import dial_udp
from easysocket.net.transport_ws import dial_ws

_log = logging.getLogger("easysocket.net")


class EasySocket:
    def __init__(
        self,
        conn: Connection,
        *,
        ident: Optional[Identity] = None,
        registry: Optional[EventRegistry] = None,
        cfg: Optional[EasySocketConfig] = None,
        passive: bool = False,
        on_close: Optional[Callable[["EasySocket"], None]] = None,
    ) -> None:
        self._conn = conn
        self._id = next_client_id() if ident is None else ident
        self._registry: EventRegistry = registry if registry is not None else ExactEventRegistry()
        self._cfg = cfg or load_config()
        # passive sockets are fed by a server loop via deliver()
        self._passive = bool(passive)
        self._on_close = on_close

        self._wlock = threading.Lock()
        self._state_lock = threading.Lock()
        self._listening = False
        self._closed = False

        log_event(_log, "socket_open", level=logging.DEBUG, id=self._id, kind=conn.kind.value, peer=conn.peer)

    # -------------------------
    # constructors
    # -------------------------

    @classmethod
    def tcp(cls, address: str, *, cfg: Optional[EasySocketConfig] = None, registry: Optional[EventRegistry] = None) -> "EasySocket":
        cfg = cfg or load_config()
        conn = dial_tcp(address, timeout=cfg.connect_timeout_s, recv_bytes=cfg.recv_bytes)
        return cls(conn, registry=registry, cfg=cfg)

    @classmethod
    def ws(cls, address: str, *, cfg: Optional[EasySocketConfig] = None, registry: Optional[EventRegistry] = None) -> "EasySocket":
        cfg = cfg or load_config()
        conn = dial_ws(address, timeout=cfg.connect_timeout_s)
        return cls(conn, registry=registry, cfg=cfg)

    @classmethod
    def udp(
        cls,
        peer: str,
        *,
        bind: Optional[str] = None,
        cfg: Optional[EasySocketConfig] = None,
        registry: Optional[EventRegistry] = None,
    ) -> "EasySocket":
        cfg = cfg or load_config()
        conn = dial_udp(peer, bind=bind, max_datagram=cfg.udp_max_datagram)
        return cls(conn, registry=registry, cfg=cfg)

    # -------------------------
    # identity / state
    # -------------------------

    def id(self) -> Identity:
        return self._id

    @property
    def kind(self) -> TransportKind:
        return self._conn.kind

    @property
    def peer(self) -> str:
        return self._conn.peer

    @property
    def connection(self) -> Connection:
        return self._conn

    @property
    def registry(self) -> EventRegistry:
        return self._registry

    @property
    def closed(self) -> bool:
        return self._closed

    def __repr__(self) -> str:
        return f"EasySocket(id={self._id}, kind={self._conn.kind.value}, peer={self._conn.peer!r})"

    # -------------------------
    # handlers
    # -------------------------

    def on(self, event_name: str, handler: Handler) -> None:
        self._registry.on(event_name, handler)

    def onmessage(self, handler: Handler) -> None:
        self._registry.onmessage(handler)

    # -------------------------
    # I/O
    # -------------------------

    def emit(self, event_name: BytesLike, payload: Optional[BytesLike] = None) -> None:
        data = encode_frame(join_event(event_name, payload))
        if self._closed:
            raise WriteError("closed", f"socket {self._id} is closed")
        try:
            with self._wlock:
                self._conn.send_bytes(data)
        except WriteError as e:
            log_event(_log, "socket_write_failed", level=logging.WARNING, id=self._id, peer=self.peer, code=e.code)
            raise

    def deliver(self, datagram: bytes) -> int:
        """Dispatch every frame of one datagram. Returns handlers invoked."""
        if self._closed:
            return 0
        invoked = 0
        for frame in split_frames(datagram):
            if self._closed:
                break
            invoked += self._registry.dispatch(frame)
        return invoked

    def listen(self) -> None:
        if self._passive:
            return

        with self._state_lock:
            if self._listening:
                raise RuntimeError(f"socket {self._id} is already listening")
            self._listening = True

        reason = "eof"
        try:
            if self._conn.datagram:
                self._listen_messages()
            else:
                self._listen_stream()
        except ReadError as e:
            reason = e.code
            log_event(_log, "socket_read_failed", level=logging.WARNING, id=self._id, peer=self.peer, code=e.code)
            raise
        except Exception as e:
            reason = f"handler_error:{type(e).__name__}"
            raise
        finally:
            with self._state_lock:
                self._listening = False
            self._close(reason)

    def _read(self) -> bytes:
        return self._conn.recv_chunk() or b""

    def _listen_stream(self) -> None:
        for frame in decode_stream(self._read, max_frame_bytes=self._cfg.max_frame_bytes):
            self._registry.dispatch(frame)

    def _listen_messages(self) -> None:
        while True:
            msg = self._conn.recv_chunk()
            if msg is None:
                return
            self.deliver(msg)

    # -------------------------
    # lifecycle
    # -------------------------

    def close(self) -> None:
        self._close("local_close")

    def _close(self, reason: str) -> None:
        with self._state_lock:
            if self._closed:
                return
            self._closed = True
        self._conn.close()
        log_event(_log, "socket_closed", id=self._id, peer=self.peer, reason=reason)
        if self._on_close is not None:
            self._on_close(self)

    def __enter__(self) -> "EasySocket":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
