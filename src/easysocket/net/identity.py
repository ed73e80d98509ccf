from __future__ import annotations

import threading

Identity = int


class IdentityAllocator:
    """Hands out strictly increasing, never reused ids. Safe across threads."""

    def __init__(self, start: int = 1) -> None:
        self._lock = threading.Lock()
        self._next = int(start)

    def next_id(self) -> Identity:
        with self._lock:
            ident = self._next
            self._next += 1
            return ident

    def peek(self) -> Identity:
        with self._lock:
            return self._next


_client_ids = IdentityAllocator()


def next_client_id() -> Identity:
    """Ids for dialed (client-side) sockets, shared by the whole process."""
    return _client_ids.next_id()
