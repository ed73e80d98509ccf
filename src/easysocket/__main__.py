# src/easysocket/__main__.py
"""
EasySocket CLI

  python -m easysocket serve tcp --bind 127.0.0.1:7000
  python -m easysocket serve http --bind 127.0.0.1:8080
  python -m easysocket send tcp 127.0.0.1:7000 ping --wait

`serve` runs an echo server: every frame a peer sends is emitted back to
it (HTTP: POST /echo returns the body). `send` emits one event and, with
--wait, prints the first frame received before exiting.
"""

from __future__ import annotations

import argparse
import sys
import threading
from typing import List, Optional

from easysocket.env import load_dotenv_if_present
from easysocket.errors import EasySocketError

TRANSPORTS = ("tcp", "udp", "ws", "http")


def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    ap = argparse.ArgumentParser(prog="easysocket", description="Event-driven sockets over TCP/UDP/WebSocket/HTTP")
    sub = ap.add_subparsers(dest="cmd", required=True)

    sp = sub.add_parser("serve", help="run an echo server")
    sp.add_argument("transport", choices=TRANSPORTS)
    sp.add_argument("--bind", default="127.0.0.1:7000", help="host:port to bind")
    sp.add_argument("--accept-mode", choices=("inline", "thread"), default=None)

    sd = sub.add_parser("send", help="emit one event")
    sd.add_argument("transport", choices=TRANSPORTS[:3])
    sd.add_argument("address")
    sd.add_argument("event")
    sd.add_argument("payload", nargs="?", default=None)
    sd.add_argument("--wait", action="store_true", help="print the first frame received")
    sd.add_argument("--timeout", type=float, default=5.0)

    return ap.parse_args(argv)


def _serve(args: argparse.Namespace) -> int:
    from easysocket.net.server import EasySocketServer

    server = EasySocketServer(accept_mode=args.accept_mode)

    if args.transport == "http":
        server.route("/echo", lambda body: body, methods=("POST",))
        server.listen_http(args.bind)
        return 0

    def setup(sock) -> None:
        sock.onmessage(lambda frame: sock.emit(frame))
        if args.transport == "udp":
            return
        threading.Thread(target=sock.listen, name=f"easysocket-echo-{sock.id()}", daemon=True).start()

    server.on("connection", setup)
    listen = {"tcp": server.listen_tcp, "udp": server.listen_udp, "ws": server.listen_ws}[args.transport]
    try:
        listen(args.bind)
    except KeyboardInterrupt:
        server.close()
    return 0


def _send(args: argparse.Namespace) -> int:
    from easysocket.net.sockets import EasySocket

    dial = {"tcp": EasySocket.tcp, "udp": EasySocket.udp, "ws": EasySocket.ws}[args.transport]
    sock = dial(args.address)

    if not args.wait:
        sock.emit(args.event, args.payload)
        sock.close()
        return 0

    got: List[str] = []
    done = threading.Event()

    def _first(frame: str) -> None:
        got.append(frame)
        done.set()
        sock.close()

    sock.onmessage(_first)
    t = threading.Thread(target=sock.listen, name="easysocket-send", daemon=True)
    t.start()
    sock.emit(args.event, args.payload)

    if not done.wait(args.timeout):
        sock.close()
        print("no reply", file=sys.stderr)
        return 1
    print(got[0])
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    # Load .env early so EASYSOCKET_* vars exist before anything reads them.
    load_dotenv_if_present()

    from easysocket.net.net_logging import configure_logging

    configure_logging()
    args = _parse_args(argv)
    try:
        if args.cmd == "serve":
            return _serve(args)
        return _send(args)
    except EasySocketError as e:
        print(f"error: {e.code}: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
