# src/easysocket/net/registry.py
"""
EasySocket — Event Registry

Routes one incoming frame to zero or more handlers:
  - event name -> ordered handler list (registration order = call order)
  - one default slot, used when no name matches

Matching is pluggable through the EventRegistry protocol. The default
ExactEventRegistry compares the whole frame to the event name;
PrefixEventRegistry also accepts "<name> <payload>" frames.

Handler exceptions are not caught here; they propagate to the caller of
dispatch() (normally EasySocket.listen()).
"""

from __future__ import annotations

import threading
from typing import Callable, Dict, List, Optional, Protocol, Union, runtime_checkable

from easysocket.net.codec import EVENT_SEPARATOR, frame_text

Handler = Callable[[str], None]


@runtime_checkable
class EventRegistry(Protocol):
    def on(self, event_name: str, handler: Handler) -> None: ...
    def onmessage(self, handler: Handler) -> None: ...
    def match(self, text: str) -> List[Handler]: ...
    def dispatch(self, frame: Union[bytes, str]) -> int: ...


class ExactEventRegistry:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._handlers: Dict[str, List[Handler]] = {}
        self._default: Optional[Handler] = None

    def on(self, event_name: str, handler: Handler) -> None:
        if not isinstance(event_name, str):
            raise TypeError("event_name must be str")
        if not callable(handler):
            raise TypeError("handler must be callable")
        with self._lock:
            self._handlers.setdefault(event_name, []).append(handler)

    def onmessage(self, handler: Handler) -> None:
        if not callable(handler):
            raise TypeError("handler must be callable")
        with self._lock:
            self._default = handler

    def _named(self, text: str) -> List[Handler]:
        return list(self._handlers.get(text, ()))

    def match(self, text: str) -> List[Handler]:
        with self._lock:
            named = self._named(text)
            if named:
                return named
            if self._default is not None:
                return [self._default]
            return []

    def dispatch(self, frame: Union[bytes, str]) -> int:
        text = frame if isinstance(frame, str) else frame_text(bytes(frame))
        # snapshot taken under the lock, handlers run outside it
        handlers = self.match(text)
        for handler in handlers:
            handler(text)
        return len(handlers)


class PrefixEventRegistry(ExactEventRegistry):
    """Exact match first, then "<name> <payload>" frames by their event word."""

    def _named(self, text: str) -> List[Handler]:
        exact = self._handlers.get(text)
        if exact:
            return list(exact)
        sep = EVENT_SEPARATOR.decode("ascii")
        if sep not in text:
            return []
        head = text.split(sep, 1)[0]
        return list(self._handlers.get(head, ()))
