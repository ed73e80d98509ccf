from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict, Optional

from easysocket.config import load_config


Json = Dict[str, Any]


def _now_ms() -> int:
    return int(time.time() * 1000)


def configure_logging(level_name: Optional[str] = None) -> None:
    """Configure stdlib logging for JSONL output (stderr).

    - Level from the argument, else EasySocketConfig.log_level.
    - Safe to call multiple times.
    - Keeps handlers the host application already installed.
    """
    if level_name is None:
        level_name = load_config().log_level
    level = getattr(logging, level_name.strip().upper(), logging.INFO)

    root = logging.getLogger()
    if getattr(root, "_easysocket_configured", False):  # type: ignore[attr-defined]
        root.setLevel(level)
        return

    if root.handlers:
        root.setLevel(level)
        setattr(root, "_easysocket_configured", True)  # type: ignore[attr-defined]
        return

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s"))

    root.handlers = [handler]
    root.setLevel(level)
    setattr(root, "_easysocket_configured", True)  # type: ignore[attr-defined]


def log_event(logger: logging.Logger, event: str, *, level: int = logging.INFO, **fields: Any) -> None:
    """Emit a single JSONL log event."""
    if not logger.isEnabledFor(level):
        return
    payload: Json = {"ts_ms": _now_ms(), "event": str(event)}
    payload.update(fields)
    try:
        logger.log(level, json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False))
    except (TypeError, ValueError):
        parts = [f"event={event}"] + [f"{k}={fields.get(k)!r}" for k in sorted(fields.keys())]
        logger.log(level, " ".join(parts))
