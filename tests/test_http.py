from __future__ import annotations

import httpx
import pytest
from fastapi.testclient import TestClient

from easysocket.errors import ConnectError
from easysocket.http.app import HttpRoute, create_app
from easysocket.http.client import base_url, http_get, http_post
from easysocket.net.server import EasySocketServer


def test_builtin_routes() -> None:
    app = create_app()
    with TestClient(app) as client:
        r = client.get("/")
        assert r.status_code == 200
        assert r.text == "Hello, HTTP!"

        h = client.get("/healthz")
        assert h.status_code == 200
        body = h.json()
        assert body["ok"] is True
        assert body["service"] == "easysocket"
        assert body["routes"] == []


def test_caller_routes_receive_body_and_return_text() -> None:
    routes = [
        HttpRoute("/upper", lambda body: body.upper(), ("POST",)),
        HttpRoute("/", lambda _body: "custom root"),
        HttpRoute("/none", lambda _body: None),
    ]
    with TestClient(create_app(routes)) as client:
        r = client.post("/upper", content="shout")
        assert r.status_code == 200
        assert r.text == "SHOUT"
        assert r.headers["content-type"].startswith("text/plain")
        assert r.headers.get("x-request-id")

        assert client.get("/").text == "custom root"
        assert client.get("/none").text == ""
        assert client.get("/healthz").json()["routes"] == ["/upper", "/", "/none"]

        assert client.get("/upper").status_code == 405
        assert client.get("/missing").status_code == 404


def test_request_id_header_is_echoed() -> None:
    with TestClient(create_app()) as client:
        r = client.get("/", headers={"x-request-id": "abc123"})
        assert r.headers["x-request-id"] == "abc123"


def _mock_transport() -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/missing":
            return httpx.Response(404, text="not here")
        return httpx.Response(200, text=f"{request.method} {request.url.path} {request.content.decode()}")

    return httpx.MockTransport(handler)


def test_http_get_and_post_return_raw_text() -> None:
    mt = _mock_transport()
    assert http_get("127.0.0.1:8080", "/a", transport=mt) == "GET /a "
    assert http_post("http://127.0.0.1:8080", "b", "payload", transport=mt) == "POST /b payload"
    assert http_get("127.0.0.1:8080", "/missing", transport=mt) == "not here"


def test_http_connect_failure_raises_connect_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(ConnectError):
        http_get("127.0.0.1:1", "/", transport=httpx.MockTransport(handler))


def test_base_url_forms() -> None:
    assert base_url("127.0.0.1:80") == "http://127.0.0.1:80"
    assert base_url("http://localhost:8080") == "http://localhost:8080"
    assert base_url("[::1]:9000") == "http://[::1]:9000"
    with pytest.raises(ConnectError):
        base_url("localhost")


def test_listen_http_serves_registered_routes(spawn) -> None:
    server = EasySocketServer()
    server.route("/echo", lambda body: body, methods=("POST",))

    w = spawn(server.listen_http, "127.0.0.1:0")
    try:
        assert server.wait_ready(10)
        host, port = server.address
        assert http_post(f"{host}:{port}", "/echo", "round trip") == "round trip"
        assert http_get(f"{host}:{port}", "/") == "Hello, HTTP!"
    finally:
        server.close()
    w.join(timeout=10)
    assert not w.is_alive()
    assert w.error is None
