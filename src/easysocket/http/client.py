# src/easysocket/http/client.py
"""Minimal HTTP client: raw response text, no status handling."""

from __future__ import annotations

from typing import Optional, Union

import httpx

from easysocket.errors import ConnectError, ReadError
from easysocket.net.transport import parse_address


def base_url(address: str) -> str:
    try:
        addr = parse_address(address, default_scheme="http")
    except ValueError as e:
        raise ConnectError("invalid_address", str(e)) from e
    host = f"[{addr.host}]" if ":" in addr.host else addr.host
    return f"http://{host}:{addr.port}"


def _request(
    method: str,
    address: str,
    path: str,
    *,
    body: Union[str, bytes, None] = None,
    timeout: float = 10.0,
    transport: Optional[httpx.BaseTransport] = None,
) -> str:
    if not path.startswith("/"):
        path = "/" + path
    url = base_url(address) + path
    try:
        with httpx.Client(timeout=timeout, transport=transport) as client:
            resp = client.request(method, url, content=body)
    except (httpx.ConnectError, httpx.ConnectTimeout) as e:
        raise ConnectError("dial_failed", f"{method} {url} failed: {e}") from e
    except httpx.TransportError as e:
        raise ReadError("http_failed", f"{method} {url} failed: {e}") from e
    return resp.text


def http_get(address: str, path: str = "/", **kwargs) -> str:
    return _request("GET", address, path, **kwargs)


def http_post(address: str, path: str, body: Union[str, bytes], **kwargs) -> str:
    return _request("POST", address, path, body=body, **kwargs)
