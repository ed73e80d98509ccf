# src/easysocket/http/app.py
"""
EasySocket — HTTP application factory

The HTTP listener is a thin collaborator: callers register plain-text
routes (handler(body) -> str) and this module turns them into a FastAPI
app. Sync handlers run in the threadpool so a slow handler never blocks
the event loop.

Built-in routes (only when the caller does not claim the path):
  - GET /         -> "Hello, HTTP!"
  - GET /healthz  -> HealthResponse JSON
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Tuple

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from starlette.concurrency import run_in_threadpool

from easysocket.config import EasySocketConfig, load_config
from easysocket.http.schemas import HealthResponse
from easysocket.http.structured_logging import RequestLogMiddleware

RouteHandler = Callable[[str], Optional[str]]


@dataclass(frozen=True, slots=True)
class HttpRoute:
    path: str
    handler: RouteHandler
    methods: Tuple[str, ...] = ("GET",)


def _now_ms() -> int:
    return int(time.time() * 1000)


def _endpoint_for(handler: RouteHandler):
    async def _endpoint(request: Request) -> PlainTextResponse:
        body = (await request.body()).decode("utf-8", errors="replace")
        out = await run_in_threadpool(handler, body)
        return PlainTextResponse("" if out is None else str(out))

    return _endpoint


def create_app(routes: Iterable[HttpRoute] = (), *, cfg: Optional[EasySocketConfig] = None) -> FastAPI:
    cfg = cfg or load_config()
    routes = list(routes)

    app = FastAPI(title="EasySocket HTTP", docs_url=None, redoc_url=None, openapi_url=None)
    app.add_middleware(RequestLogMiddleware, enabled=cfg.log_requests)

    paths = [r.path for r in routes]
    for route in routes:
        app.add_api_route(
            route.path,
            _endpoint_for(route.handler),
            methods=[m.upper() for m in route.methods],
            response_class=PlainTextResponse,
        )

    if "/" not in paths:

        @app.get("/", response_class=PlainTextResponse)
        def hello() -> str:
            return "Hello, HTTP!"

    if "/healthz" not in paths:

        @app.get("/healthz", response_model=HealthResponse)
        def healthz() -> HealthResponse:
            return HealthResponse(ts_ms=_now_ms(), routes=paths)

    return app
