from __future__ import annotations

import queue
import threading
from typing import Optional, Tuple

from easysocket.errors import WriteError
from easysocket.net.transport import TransportKind


class MemoryConnection:
    """
    In-process stream connection used for unit tests.

    - Does not open sockets
    - Chunks arrive exactly as the other end sent them, so tests can
      split frames across arbitrary boundaries
    - close() on either end ends the stream for both
    """

    def __init__(self, *, peer: str) -> None:
        self._peer = peer
        self._inbox: "queue.Queue[Optional[bytes]]" = queue.Queue()
        self._other: Optional[MemoryConnection] = None
        self._closed = False
        self._lock = threading.Lock()

    @property
    def kind(self) -> TransportKind:
        return TransportKind.MEMORY

    @property
    def peer(self) -> str:
        return self._peer

    @property
    def datagram(self) -> bool:
        return False

    @property
    def closed(self) -> bool:
        return self._closed

    def recv_chunk(self) -> Optional[bytes]:
        if self._closed and self._inbox.empty():
            return None
        return self._inbox.get()

    def send_bytes(self, data: bytes) -> None:
        other = self._other
        if self._closed or other is None or other.closed:
            raise WriteError("closed", f"memory connection to {self._peer} is closed")
        other._inbox.put(bytes(data))

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._inbox.put(None)
        other = self._other
        if other is not None:
            other.close()


def memory_pair(a: str = "mem://a", b: str = "mem://b") -> Tuple[MemoryConnection, MemoryConnection]:
    left = MemoryConnection(peer=b)
    right = MemoryConnection(peer=a)
    left._other = right
    right._other = left
    return left, right
