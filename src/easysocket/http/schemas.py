"""Pydantic response schemas for the built-in HTTP routes."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    ok: bool = True
    service: str = "easysocket"
    ts_ms: int = Field(..., description="Server clock, unix milliseconds")
    routes: List[str] = Field(default_factory=list, description="Caller-registered paths")
