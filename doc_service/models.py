"""Pydantic response schemas for the document service HTTP surface."""

from __future__ import annotations

from pydantic import BaseModel

# -- Health -------------------------------------------------------------------


class HealthResponse(BaseModel):
    status: str
    version: str | None = None
    error: str | None = None
