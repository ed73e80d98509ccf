"""
EasySocket — HTTP surface

  - app: FastAPI app built from caller-supplied plain-text routes
  - serve: uvicorn runner on a pre-bound socket
  - client: http_get / http_post returning raw response text
  - structured_logging: per-request JSONL middleware
"""

from __future__ import annotations

from easysocket.http.app import HttpRoute, create_app
from easysocket.http.client import http_get, http_post
from easysocket.http.serve import HttpListener

__all__ = ["HttpRoute", "create_app", "http_get", "http_post", "HttpListener"]
