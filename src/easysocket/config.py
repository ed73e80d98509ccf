# src/easysocket/config.py
"""
EasySocket — Runtime configuration

All knobs come from EASYSOCKET_* environment variables (optionally seeded
from a .env file, see easysocket.env). Invalid values fall back to defaults
instead of failing at import time.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

ACCEPT_MODES = ("inline", "thread")


def _env_str(name: str, default: str = "") -> str:
    v = os.environ.get(name)
    return str(default if v is None else v).strip()


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, str(default)))
    except Exception:
        return int(default)


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.environ.get(name, str(default)))
    except Exception:
        return float(default)


def _env_bool(name: str, default: bool) -> bool:
    raw = str(os.environ.get(name, "")).strip().lower()
    if not raw:
        return bool(default)
    if raw in {"1", "true", "yes", "y", "on"}:
        return True
    if raw in {"0", "false", "no", "n", "off"}:
        return False
    return bool(default)


@dataclass(frozen=True, slots=True)
class EasySocketConfig:
    recv_bytes: int = 65536
    # 0 disables the bound
    max_frame_bytes: int = 1_000_000
    udp_max_datagram: int = 65535
    connect_timeout_s: float = 10.0
    accept_mode: str = "inline"
    listen_backlog: int = 128
    log_level: str = "INFO"
    log_requests: bool = True


def load_config() -> EasySocketConfig:
    accept_mode = _env_str("EASYSOCKET_ACCEPT_MODE", "inline").lower()
    if accept_mode not in ACCEPT_MODES:
        accept_mode = "inline"

    return EasySocketConfig(
        recv_bytes=max(1, _env_int("EASYSOCKET_RECV_BYTES", 65536)),
        max_frame_bytes=max(0, _env_int("EASYSOCKET_MAX_FRAME_BYTES", 1_000_000)),
        udp_max_datagram=max(1, min(65535, _env_int("EASYSOCKET_UDP_MAX_DATAGRAM", 65535))),
        connect_timeout_s=max(0.0, _env_float("EASYSOCKET_CONNECT_TIMEOUT_S", 10.0)),
        accept_mode=accept_mode,
        listen_backlog=max(1, _env_int("EASYSOCKET_LISTEN_BACKLOG", 128)),
        log_level=(_env_str("EASYSOCKET_LOG_LEVEL", "INFO").upper() or "INFO"),
        log_requests=_env_bool("EASYSOCKET_LOG_REQUESTS", True),
    )
