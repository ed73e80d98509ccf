from __future__ import annotations

import json
import logging

import pytest

from easysocket.net.net_logging import log_event
from easysocket.net.sockets import EasySocket
from easysocket.net.transport_memory import memory_pair


def test_log_event_is_single_json_line(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("easysocket.test")
    with caplog.at_level(logging.INFO, logger="easysocket.test"):
        log_event(logger, "thing_happened", peer="tcp://1.2.3.4:5", count=3)

    rec = json.loads(caplog.records[-1].getMessage())
    assert rec["event"] == "thing_happened"
    assert rec["peer"] == "tcp://1.2.3.4:5"
    assert rec["count"] == 3
    assert isinstance(rec["ts_ms"], int)


def test_log_event_falls_back_for_unserializable_fields(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("easysocket.test")
    with caplog.at_level(logging.INFO, logger="easysocket.test"):
        log_event(logger, "odd", obj=object())
    assert caplog.records[-1].getMessage().startswith("event=odd")


def test_socket_close_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    left, _right = memory_pair()
    sock = EasySocket(left)
    with caplog.at_level(logging.INFO, logger="easysocket.net"):
        sock.close()

    events = [json.loads(r.getMessage()) for r in caplog.records if r.name == "easysocket.net"]
    closed = [e for e in events if e["event"] == "socket_closed"]
    assert closed and closed[-1]["id"] == sock.id()
    assert closed[-1]["reason"] == "local_close"
