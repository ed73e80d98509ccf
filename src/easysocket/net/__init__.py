# src/easysocket/net/__init__.py
"""
EasySocket — Network package

  - codec: newline framing (encode / incremental decode / datagram split)
  - registry: event name -> handlers dispatch, pluggable matching
  - identity: thread-safe monotonically increasing socket ids
  - transport: abstract Connection interface + address parsing
  - transport_tcp / transport_udp / transport_ws / transport_memory: backends
  - sockets: EasySocket (emit / on / onmessage / listen)
  - server: EasySocketServer (TCP / UDP / WebSocket accept loops, HTTP)

Higher layers should depend on sockets + server and keep transport
details out of application code.
"""

from __future__ import annotations

__all__ = [
    "codec",
    "registry",
    "identity",
    "transport",
    "transport_tcp",
    "transport_udp",
    "transport_ws",
    "transport_memory",
    "sockets",
    "server",
]
