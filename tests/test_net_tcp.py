from __future__ import annotations

import socket
import threading
import time
from typing import List

import pytest

from easysocket.errors import BindError, ConnectError
from easysocket.net.server import EasySocketServer
from easysocket.net.sockets import EasySocket
from easysocket.net.transport import TransportKind


def _start_tcp(spawn, server: EasySocketServer):
    w = spawn(server.listen_tcp, "127.0.0.1:0")
    assert server.wait_ready(5)
    host, port = server.address
    return w, f"{host}:{port}"


def _free_port() -> int:
    s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    s.bind(("127.0.0.1", 0))
    port = s.getsockname()[1]
    s.close()
    return port


def test_tcp_ping_pong(spawn) -> None:
    server = EasySocketServer()

    def setup(sock: EasySocket) -> None:
        sock.on("ping", lambda _f: sock.emit("pong"))
        threading.Thread(target=sock.listen, daemon=True).start()

    server.on("connection", setup)
    w, addr = _start_tcp(spawn, server)

    client = EasySocket.tcp(addr)
    got: List[str] = []
    done = threading.Event()

    def on_message(frame: str) -> None:
        got.append(frame)
        done.set()

    client.onmessage(on_message)
    cw = spawn(client.listen)
    try:
        client.emit("ping")
        assert done.wait(5)
        time.sleep(0.05)
        assert got == ["pong"]
        assert client.kind == TransportKind.TCP
    finally:
        client.close()
        server.close()

    w.join(timeout=5)
    cw.join(timeout=5)
    assert w.error is None
    assert cw.error is None


def test_accepted_connections_get_increasing_ids(spawn) -> None:
    server = EasySocketServer()
    ids: List[int] = []
    seen = threading.Semaphore(0)

    def setup(sock: EasySocket) -> None:
        ids.append(sock.id())
        seen.release()

    server.on("connection", setup)
    w, addr = _start_tcp(spawn, server)

    clients = []
    try:
        for _ in range(3):
            clients.append(EasySocket.tcp(addr))
            assert seen.acquire(timeout=5)
        assert ids == sorted(ids)
        assert len(set(ids)) == 3
        assert len(server.sockets()) == 3
    finally:
        for c in clients:
            c.close()
        server.close()
    w.join(timeout=5)


def test_server_payload_frames_reach_client_in_order(spawn) -> None:
    server = EasySocketServer()

    def setup(sock: EasySocket) -> None:
        for i in range(50):
            sock.emit("n", str(i))

    server.on("connection", setup)
    w, addr = _start_tcp(spawn, server)

    client = EasySocket.tcp(addr)
    got: List[str] = []
    done = threading.Event()

    def on_message(frame: str) -> None:
        got.append(frame)
        if len(got) == 50:
            done.set()

    client.onmessage(on_message)
    cw = spawn(client.listen)
    try:
        assert done.wait(5)
        assert got == [f"n {i}" for i in range(50)]
    finally:
        client.close()
        server.close()
    cw.join(timeout=5)
    w.join(timeout=5)


def test_embedded_newline_arrives_as_two_frames(spawn) -> None:
    server = EasySocketServer()
    got: List[str] = []
    done = threading.Event()

    def setup(sock: EasySocket) -> None:
        def on_message(frame: str) -> None:
            got.append(frame)
            if len(got) == 2:
                done.set()

        sock.onmessage(on_message)
        threading.Thread(target=sock.listen, daemon=True).start()

    server.on("connection", setup)
    w, addr = _start_tcp(spawn, server)

    client = EasySocket.tcp(addr)
    try:
        client.emit("note", "first\nsecond")
        assert done.wait(5)
        assert got == ["note first", "second"]
    finally:
        client.close()
        server.close()
    w.join(timeout=5)


def test_peer_close_ends_server_side_listen(spawn) -> None:
    server = EasySocketServer()
    ended = threading.Event()

    def setup(sock: EasySocket) -> None:
        def run() -> None:
            sock.listen()
            ended.set()

        threading.Thread(target=run, daemon=True).start()

    server.on("connection", setup)
    w, addr = _start_tcp(spawn, server)
    try:
        client = EasySocket.tcp(addr)
        client.close()
        assert ended.wait(5)
    finally:
        server.close()
    w.join(timeout=5)


def test_thread_accept_mode_does_not_block_on_slow_setup(spawn) -> None:
    server = EasySocketServer(accept_mode="thread")
    release = threading.Event()
    ids: List[int] = []
    second = threading.Event()

    def setup(sock: EasySocket) -> None:
        ids.append(sock.id())
        if len(ids) == 1:
            release.wait(5)
        else:
            second.set()

    server.on("connection", setup)
    w, addr = _start_tcp(spawn, server)
    a = b = None
    try:
        a = EasySocket.tcp(addr)
        time.sleep(0.1)
        b = EasySocket.tcp(addr)
        assert second.wait(5)
    finally:
        release.set()
        for c in (a, b):
            if c is not None:
                c.close()
        server.close()
    w.join(timeout=5)


def test_connect_refused_raises_connect_error() -> None:
    with pytest.raises(ConnectError) as ei:
        EasySocket.tcp(f"127.0.0.1:{_free_port()}")
    assert ei.value.code == "dial_failed"


def test_invalid_address_raises_connect_error() -> None:
    with pytest.raises(ConnectError) as ei:
        EasySocket.tcp("no-port-here")
    assert ei.value.code == "invalid_address"


def test_address_in_use_raises_bind_error() -> None:
    holder = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    holder.bind(("127.0.0.1", 0))
    holder.listen(1)
    port = holder.getsockname()[1]
    try:
        with pytest.raises(BindError):
            EasySocketServer().listen_tcp(f"127.0.0.1:{port}")
    finally:
        holder.close()


def test_server_close_stops_accept_loop(spawn) -> None:
    server = EasySocketServer()
    w, _addr = _start_tcp(spawn, server)
    server.close()
    w.join(timeout=5)
    assert not w.is_alive()
    assert w.error is None


def test_server_rejects_unknown_events() -> None:
    with pytest.raises(ValueError):
        EasySocketServer().on("message", lambda s: None)
    with pytest.raises(ValueError):
        EasySocketServer(accept_mode="pool")


def test_closed_connections_are_released(spawn) -> None:
    server = EasySocketServer()

    def setup(sock: EasySocket) -> None:
        threading.Thread(target=sock.listen, daemon=True).start()

    server.on("connection", setup)
    w, addr = _start_tcp(spawn, server)
    try:
        for _ in range(20):
            EasySocket.tcp(addr).close()

        deadline = time.monotonic() + 5
        while server._sockets and time.monotonic() < deadline:
            time.sleep(0.02)
        assert server._sockets == {}
        assert server.sockets() == []
    finally:
        server.close()
    w.join(timeout=5)
    assert w.error is None


def test_failing_setup_closes_only_that_connection(spawn) -> None:
    server = EasySocketServer()
    calls: List[int] = []
    served = threading.Event()

    def setup(sock: EasySocket) -> None:
        calls.append(sock.id())
        if len(calls) == 1:
            raise ValueError("first setup fails")
        served.set()

    server.on("connection", setup)
    w, addr = _start_tcp(spawn, server)

    first = EasySocket.tcp(addr)
    second = EasySocket.tcp(addr)
    try:
        assert served.wait(5)
        assert calls == [1, 2]
        assert w.is_alive()
    finally:
        first.close()
        second.close()
        server.close()
    w.join(timeout=5)
    assert w.error is None
