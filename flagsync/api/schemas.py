"""
FlagSync — API request/response schemas (Pydantic).
"""

from __future__ import annotations

from typing import Dict

from pydantic import BaseModel


class ToggleRequest(BaseModel):
    """Body for ``PUT /api/flags/{project_id}``."""
    value: bool


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
    uptime_seconds: float
    projects_loaded: int
    metrics: Dict[str, int]
