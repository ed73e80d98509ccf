# src/easysocket/net/codec.py
"""
EasySocket — Frame Codec (newline-delimited)

Frame format:
  <content>\n

Where content is an event name, optionally followed by a single space and
a payload. There is no escaping and no length prefix: a payload carrying
its own newline is written verbatim and the receiver sees it as several
frames.

The codec is byte-transparent. Text decoding (lossy, U+FFFD replacement)
only happens in frame_text(), at the point a caller interprets a frame.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterator, List, Optional, Tuple, Union

from easysocket.errors import FrameTooLarge
from easysocket.net.net_logging import log_event

FRAME_DELIMITER = b"\n"
EVENT_SEPARATOR = b" "

BytesLike = Union[bytes, bytearray, str]

_log = logging.getLogger("easysocket.net")


def to_bytes(data: BytesLike) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    raise TypeError(f"expected str or bytes, got {type(data).__name__}")


def frame_text(frame: bytes) -> str:
    return frame.decode("utf-8", errors="replace")


# ---------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------

def encode_frame(payload: BytesLike) -> bytes:
    return to_bytes(payload) + FRAME_DELIMITER


def join_event(event: BytesLike, payload: Optional[BytesLike] = None) -> bytes:
    content = to_bytes(event)
    if payload is None:
        return content
    return content + EVENT_SEPARATOR + to_bytes(payload)


def split_event(frame: BytesLike) -> Tuple[str, Optional[str]]:
    """Split "<event> <payload>" at the first separator.

    A frame without a separator is an event with no payload.
    """
    text = frame if isinstance(frame, str) else frame_text(bytes(frame))
    sep = EVENT_SEPARATOR.decode("ascii")
    if sep not in text:
        return text, None
    event, payload = text.split(sep, 1)
    return event, payload


# ---------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------

class FrameDecoder:
    """Incremental splitter; one instance per connection."""

    def __init__(self, *, max_frame_bytes: int = 0) -> None:
        self.max_frame_bytes = int(max_frame_bytes)
        self._buf = bytearray()

    @property
    def pending(self) -> bytes:
        return bytes(self._buf)

    def feed(self, chunk: bytes) -> List[bytes]:
        out: List[bytes] = []
        if not chunk:
            return out

        self._buf.extend(chunk)
        start = 0
        while True:
            idx = self._buf.find(FRAME_DELIMITER, start)
            if idx < 0:
                break
            out.append(bytes(self._buf[start:idx]))
            start = idx + len(FRAME_DELIMITER)
        if start:
            del self._buf[:start]

        if self.max_frame_bytes and len(self._buf) > self.max_frame_bytes:
            size = len(self._buf)
            self._buf.clear()
            raise FrameTooLarge(size, self.max_frame_bytes)
        return out

    def flush(self) -> Optional[bytes]:
        if not self._buf:
            return None
        tail = bytes(self._buf)
        self._buf.clear()
        return tail


def decode_stream(read: Callable[[], bytes], *, max_frame_bytes: int = 0) -> Iterator[bytes]:
    """Lazily yield frames from a blocking read() callable.

    read() returning b"" marks end of stream. Exceptions raised by read()
    propagate to the consumer and end the sequence.
    """
    decoder = FrameDecoder(max_frame_bytes=max_frame_bytes)
    while True:
        chunk = read()
        if not chunk:
            break
        for frame in decoder.feed(chunk):
            yield frame

    tail = decoder.flush()
    if tail is not None:
        log_event(_log, "frame_truncated", level=logging.DEBUG, dropped_bytes=len(tail))


def split_frames(datagram: bytes) -> List[bytes]:
    """Split a self-contained datagram; its end also terminates a frame."""
    decoder = FrameDecoder()
    frames = decoder.feed(datagram)
    tail = decoder.flush()
    if tail is not None:
        frames.append(tail)
    return frames
