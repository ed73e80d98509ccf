# src/easysocket/errors.py
"""
EasySocket — Error taxonomy

Every transport-level failure surfaces at the call site that triggered it:
  - ConnectError:   dial failed (unreachable, refused, timeout)
  - BindError:      address in use / permission denied / bad address
  - HandshakeError: WebSocket upgrade rejected
  - ReadError:      stream closed abnormally or I/O fault during listen()
  - WriteError:     emit() on a dead connection

Each error carries a short machine-readable `code` next to the message.
No retries happen inside the library.
"""

from __future__ import annotations


class EasySocketError(RuntimeError):
    def __init__(self, code: str, msg: str) -> None:
        super().__init__(msg)
        self.code = code


class ConnectError(EasySocketError):
    pass


class BindError(EasySocketError):
    pass


class HandshakeError(EasySocketError):
    pass


class ReadError(EasySocketError):
    pass


class FrameTooLarge(ReadError):
    """Raised when a partial frame grows past the configured bound."""

    def __init__(self, size: int, limit: int) -> None:
        super().__init__("frame_too_large", f"frame exceeds {limit} bytes (buffered {size})")
        self.size = size
        self.limit = limit


class WriteError(EasySocketError):
    pass


__all__ = [
    "EasySocketError",
    "ConnectError",
    "BindError",
    "HandshakeError",
    "ReadError",
    "FrameTooLarge",
    "WriteError",
]
