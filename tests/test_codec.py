from __future__ import annotations

import pytest

from easysocket.errors import FrameTooLarge, ReadError
from easysocket.net.codec import (
    FrameDecoder,
    decode_stream,
    encode_frame,
    frame_text,
    join_event,
    split_event,
    split_frames,
)


def _reader(chunks):
    it = iter(list(chunks) + [b""])
    return lambda: next(it)


def test_encode_appends_single_delimiter() -> None:
    assert encode_frame("ping") == b"ping\n"
    assert encode_frame(b"") == b"\n"


@pytest.mark.parametrize("payload", [b"ping", b"hello world", b"", "héllo".encode("utf-8"), b"\xff\xfe raw"])
def test_decode_of_encode_returns_payload(payload: bytes) -> None:
    assert list(decode_stream(_reader([encode_frame(payload)]))) == [payload]


def test_frames_survive_every_chunk_boundary() -> None:
    wire = b"f1\nsecond frame\nf3\n"
    expected = [b"f1", b"second frame", b"f3"]

    for i in range(len(wire) + 1):
        for j in range(i, len(wire) + 1):
            chunks = [c for c in (wire[:i], wire[i:j], wire[j:]) if c]
            assert list(decode_stream(_reader(chunks))) == expected, (i, j)


def test_byte_at_a_time() -> None:
    wire = b"a\nbb\nccc\n"
    chunks = [wire[k : k + 1] for k in range(len(wire))]
    assert list(decode_stream(_reader(chunks))) == [b"a", b"bb", b"ccc"]


def test_decoder_keeps_partial_tail() -> None:
    dec = FrameDecoder()
    assert dec.feed(b"one\ntw") == [b"one"]
    assert dec.pending == b"tw"
    assert dec.feed(b"o\n") == [b"two"]
    assert dec.pending == b""
    assert dec.flush() is None


def test_stream_end_drops_unterminated_tail() -> None:
    assert list(decode_stream(_reader([b"done\npartial"]))) == [b"done"]


def test_embedded_newline_splits_into_two_frames() -> None:
    wire = encode_frame(join_event("note", "line1\nline2"))
    assert list(decode_stream(_reader([wire]))) == [b"note line1", b"line2"]


def test_read_errors_propagate_from_stream() -> None:
    calls = iter([b"ok\n"])

    def read() -> bytes:
        try:
            return next(calls)
        except StopIteration:
            raise ReadError("recv_failed", "boom")

    gen = decode_stream(read)
    assert next(gen) == b"ok"
    with pytest.raises(ReadError):
        next(gen)


def test_max_frame_bytes_bounds_partial_frame() -> None:
    dec = FrameDecoder(max_frame_bytes=4)
    assert dec.feed(b"abcd") == []
    with pytest.raises(FrameTooLarge) as ei:
        dec.feed(b"e")
    assert ei.value.code == "frame_too_large"
    assert isinstance(ei.value, ReadError)


def test_max_frame_bytes_allows_complete_frames_in_large_chunks() -> None:
    dec = FrameDecoder(max_frame_bytes=4)
    assert dec.feed(b"abc\nabc\nabc\n") == [b"abc", b"abc", b"abc"]


def test_split_frames_terminates_tail_at_datagram_end() -> None:
    assert split_frames(b"hello\n") == [b"hello"]
    assert split_frames(b"hello") == [b"hello"]
    assert split_frames(b"a\nb") == [b"a", b"b"]
    assert split_frames(b"") == []


def test_join_and_split_event() -> None:
    assert join_event("ping") == b"ping"
    assert join_event("say", "hi there") == b"say hi there"
    assert split_event(b"say hi there") == ("say", "hi there")
    assert split_event("ping") == ("ping", None)


def test_frame_text_is_lossy_only_on_interpretation() -> None:
    raw = b"bad \xff byte"
    assert list(decode_stream(_reader([raw + b"\n"]))) == [raw]
    assert frame_text(raw) == "bad � byte"


def test_to_bytes_rejects_other_types() -> None:
    with pytest.raises(TypeError):
        encode_frame(123)  # type: ignore[arg-type]
