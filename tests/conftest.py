from __future__ import annotations

import sys
import threading
from pathlib import Path
from typing import Any, Callable, List, Optional

import pytest

# Ensure local "src/" takes precedence over any globally-installed "easysocket" package.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

src_str = str(SRC)
if src_str not in sys.path:
    sys.path.insert(0, src_str)


class Worker(threading.Thread):
    """Daemon thread that keeps whatever its target raised."""

    def __init__(self, target: Callable[..., Any], args: tuple) -> None:
        super().__init__(daemon=True)
        self._fn = target
        self._fn_args = args
        self.error: Optional[BaseException] = None

    def run(self) -> None:
        try:
            self._fn(*self._fn_args)
        except BaseException as e:  # recorded for the test to assert on
            self.error = e


@pytest.fixture
def spawn():
    workers: List[Worker] = []

    def _spawn(target: Callable[..., Any], *args: Any) -> Worker:
        w = Worker(target, args)
        w.start()
        workers.append(w)
        return w

    yield _spawn

    for w in workers:
        w.join(timeout=5)
