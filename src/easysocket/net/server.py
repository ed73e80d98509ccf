# src/easysocket/net/server.py
"""
EasySocket — Server

Accepts connections for one transport and hands each one, wrapped in an
EasySocket with a fresh identity, to the "connection" handlers.

Per connection:
  Accepted -> HandshakeIfNeeded -> Dispatching -> Closed

accept_mode:
  - "inline" (default): setup handlers run on the accept thread, before the
    next accept. A slow handler delays later accepts.
  - "thread": each accepted socket's setup runs on its own daemon thread.

UDP has no accept: the first datagram from a new source address creates a
logical socket and fires "connection"; every datagram from that address is
then dispatched through that socket's registry by the receive loop. Once
that socket is closed, the next datagram from the address starts over with
a new socket.

A handler that raises while the server runs it (setup, UDP dispatch)
closes only its socket; the loop logs "socket_handler_failed"
and keeps going.

close() stops the running loop; the listen_* call then returns normally.
"""

from __future__ import annotations

import logging
import socket
import threading
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from easysocket.config import ACCEPT_MODES, EasySocketConfig, load_config
from easysocket.errors import HandshakeError, ReadError
from easysocket.http.app import HttpRoute, RouteHandler, create_app
from easysocket.http.serve import HttpListener
from easysocket.net.identity import IdentityAllocator
from easysocket.net.net_logging import log_event
from easysocket.net.registry import ExactEventRegistry
from easysocket.net.sockets import EasySocket
from easysocket.net.transport import Address, TransportKind, format_peer
from easysocket.net.transport_tcp import TcpConnection, bind_listener, shutdown_quietly
from easysocket.net.transport_udp import UdpPeerConnection, bind_udp
from easysocket.net.transport_ws import accept_ws

CONNECTION_EVENT = "connection"

ConnectionHandler = Callable[[EasySocket], None]

_log = logging.getLogger("easysocket.net")


class EasySocketServer:
    def __init__(self, *, cfg: Optional[EasySocketConfig] = None, accept_mode: Optional[str] = None) -> None:
        self._cfg = cfg or load_config()
        mode = (accept_mode or self._cfg.accept_mode).strip().lower()
        if mode not in ACCEPT_MODES:
            raise ValueError(f"accept_mode must be one of {ACCEPT_MODES}, got {mode!r}")
        self.accept_mode = mode

        self._registry = ExactEventRegistry()
        self._ids = IdentityAllocator()
        self._routes: List[HttpRoute] = []

        self._lock = threading.Lock()
        self._sockets: Dict[int, EasySocket] = {}
        self._udp_peers: Dict[Tuple, EasySocket] = {}
        self._udp_keys: Dict[int, Tuple] = {}

        self._kind: Optional[TransportKind] = None
        self._address: Optional[Address] = None
        self._listener: Optional[socket.socket] = None
        self._http: Optional[HttpListener] = None
        self._ready = threading.Event()
        self._closing = threading.Event()

    # -------------------------
    # registration
    # -------------------------

    def on(self, event_name: str, handler: ConnectionHandler) -> None:
        if event_name != CONNECTION_EVENT:
            raise ValueError(f"server only supports the {CONNECTION_EVENT!r} event, got {event_name!r}")
        self._registry.on(event_name, handler)  # type: ignore[arg-type]

    def route(self, path: str, handler: RouteHandler, methods: Iterable[str] = ("GET",)) -> None:
        """Register a plain-text HTTP route served by listen_http()."""
        self._routes.append(HttpRoute(path=path, handler=handler, methods=tuple(methods)))

    # -------------------------
    # state
    # -------------------------

    @property
    def kind(self) -> Optional[TransportKind]:
        return self._kind

    @property
    def address(self) -> Optional[Tuple[str, int]]:
        if self._address is None:
            return None
        return self._address.hostport

    def wait_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the server is bound (and, for HTTP, serving)."""
        return self._ready.wait(timeout)

    def sockets(self) -> List[EasySocket]:
        with self._lock:
            return [s for s in self._sockets.values() if not s.closed]

    # -------------------------
    # TCP / WebSocket
    # -------------------------

    def listen_tcp(self, address: str) -> None:
        self._accept_loop(address, TransportKind.TCP)

    def listen_ws(self, address: str) -> None:
        self._accept_loop(address, TransportKind.WS)

    def _accept_loop(self, address: str, kind: TransportKind) -> None:
        listener, bound = bind_listener(address, scheme=kind.value, backlog=self._cfg.listen_backlog)
        self._bound(kind, bound, listener=listener)

        try:
            while not self._closing.is_set():
                try:
                    client, sockaddr = listener.accept()
                except OSError as e:
                    if self._closing.is_set():
                        return
                    if isinstance(e, (ConnectionAbortedError, InterruptedError)):
                        continue
                    raise ReadError("accept_failed", f"accept on {bound.uri} failed: {e}") from e

                peer = format_peer(kind.value, sockaddr)
                try:
                    conn = self._wrap_stream(kind, client, peer)
                except HandshakeError as e:
                    log_event(_log, "ws_handshake_failed", level=logging.WARNING, peer=peer, code=e.code)
                    continue

                self._on_connection(self._adopt(conn))
        finally:
            shutdown_quietly(listener)

    def _wrap_stream(self, kind: TransportKind, client: socket.socket, peer: str):
        client.settimeout(None)
        if kind == TransportKind.WS:
            return accept_ws(client, peer=peer, timeout=self._cfg.connect_timeout_s, recv_bytes=self._cfg.recv_bytes)
        return TcpConnection(client, peer=peer, recv_bytes=self._cfg.recv_bytes)

    # -------------------------
    # UDP
    # -------------------------

    def listen_udp(self, address: str) -> None:
        sock, bound = bind_udp(address)
        self._bound(TransportKind.UDP, bound, listener=sock)

        try:
            while not self._closing.is_set():
                try:
                    data, sockaddr = sock.recvfrom(self._cfg.udp_max_datagram)
                except OSError as e:
                    if self._closing.is_set():
                        return
                    raise ReadError("recv_failed", f"udp read on {bound.uri} failed: {e}") from e
                if self._closing.is_set():
                    return
                if not sockaddr:
                    continue

                key = tuple(sockaddr[:2])
                with self._lock:
                    peer_sock = self._udp_peers.get(key)
                if peer_sock is None or peer_sock.closed:
                    conn = UdpPeerConnection(sock, sockaddr=sockaddr)
                    peer_sock = self._adopt(conn, passive=True)
                    with self._lock:
                        self._udp_peers[key] = peer_sock
                        self._udp_keys[peer_sock.id()] = key
                    log_event(_log, "udp_peer_new", id=peer_sock.id(), peer=conn.peer)
                    # UDP setup always runs inline so the first datagram
                    # reaches the handlers it registers.
                    if not self._run_setup(peer_sock):
                        continue

                self._guarded(peer_sock, peer_sock.deliver, data)
        finally:
            shutdown_quietly(sock)

    # -------------------------
    # HTTP
    # -------------------------

    def _http_listener(self, address: str) -> HttpListener:
        app = create_app(self._routes, cfg=self._cfg)
        listener = HttpListener.bind(app, address, backlog=self._cfg.listen_backlog)
        self._http = listener
        self._kind = TransportKind.HTTP
        self._address = listener.address
        log_event(_log, "server_bound", kind="http", address=listener.address.uri)
        threading.Thread(target=self._mark_http_ready, name="easysocket-http-ready", daemon=True).start()
        return listener

    def _mark_http_ready(self) -> None:
        listener = self._http
        while listener is not None and not listener.started and not self._closing.is_set():
            self._closing.wait(0.01)
        self._ready.set()

    def listen_http(self, address: str) -> None:
        """Blocking; serves the registered routes until close()."""
        self._http_listener(address).run()

    async def serve_http(self, address: str) -> None:
        await self._http_listener(address).serve()

    # -------------------------
    # shared plumbing
    # -------------------------

    def _bound(self, kind: TransportKind, bound: Address, *, listener: socket.socket) -> None:
        self._kind = kind
        self._address = bound
        self._listener = listener
        log_event(_log, "server_bound", kind=kind.value, address=bound.uri)
        self._ready.set()

    def _adopt(self, conn, *, passive: bool = False) -> EasySocket:
        sock = EasySocket(conn, ident=self._ids.next_id(), cfg=self._cfg, passive=passive, on_close=self._forget)
        with self._lock:
            self._sockets[sock.id()] = sock
        log_event(_log, "connection_accepted", id=sock.id(), kind=conn.kind.value, peer=conn.peer)
        return sock

    def _forget(self, sock: EasySocket) -> None:
        with self._lock:
            self._sockets.pop(sock.id(), None)
            key = self._udp_keys.pop(sock.id(), None)
            if key is not None and self._udp_peers.get(key) is sock:
                del self._udp_peers[key]

    def _on_connection(self, sock: EasySocket) -> None:
        if self.accept_mode == "thread":
            t = threading.Thread(
                target=self._run_setup,
                args=(sock,),
                name=f"easysocket-setup-{sock.id()}",
                daemon=True,
            )
            t.start()
            return
        self._run_setup(sock)

    def _run_setup(self, sock: EasySocket) -> bool:
        return self._guarded(sock, self._setup, sock)

    def _setup(self, sock: EasySocket) -> None:
        for handler in self._registry.match(CONNECTION_EVENT):
            handler(sock)

    def _guarded(self, sock: EasySocket, fn: Callable, *args) -> bool:
        """Run fn on the server's behalf; a raise closes only this socket."""
        try:
            fn(*args)
        except Exception as e:
            log_event(
                _log,
                "socket_handler_failed",
                level=logging.ERROR,
                id=sock.id(),
                peer=sock.peer,
                error=f"{type(e).__name__}: {e}",
            )
            sock.close()
            return False
        return True

    def close(self) -> None:
        """Stop the running loop and close every accepted socket."""
        self._closing.set()
        if self._http is not None:
            self._http.stop()
        if self._listener is not None:
            shutdown_quietly(self._listener)

        with self._lock:
            socks = list(self._sockets.values())
            self._sockets.clear()
            self._udp_peers.clear()
            self._udp_keys.clear()
        for s in socks:
            s.close()
        log_event(_log, "server_closed", kind=self._kind.value if self._kind else None)

    def __enter__(self) -> "EasySocketServer":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


__all__ = ["EasySocketServer", "CONNECTION_EVENT"]
