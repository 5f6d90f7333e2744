"""
FlagSync — Router registration.

Import and call ``register_routes(app)`` once in ``flagsync.app``.

  GET  /api/flags               — full refresh: reconcile, then load every project
  GET  /api/flags/cached        — current in-memory table, no backend calls
  PUT  /api/flags/{project_id}  — toggle one project's flag
  GET  /api/health              — status + operator counters
"""

from __future__ import annotations

import logging
import time
from typing import List

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request

from flagsync import __version__
from flagsync.api.schemas import HealthResponse, ToggleRequest
from flagsync.domain.errors import AttachmentNotFound, ReconciliationFailed, TransportError
from flagsync.domain.models import FlagState
from flagsync.metrics import metrics_snapshot
from flagsync.state_store import FlagStateStore

logger = logging.getLogger(__name__)

_START_TIME: float = time.time()


def get_store(request: Request) -> FlagStateStore:
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Flag store not initialised")
    return store


# ---------------------------------------------------------------------------
# Flag endpoints
# ---------------------------------------------------------------------------

flag_router = APIRouter(prefix="/api/flags", tags=["flags"])


@flag_router.get("", response_model=List[FlagState])
async def list_flags(store: FlagStateStore = Depends(get_store)):
    """Reconcile the Flag field and return every project's current value."""
    try:
        return await store.refresh()
    except ReconciliationFailed as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    except TransportError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc


@flag_router.get("/cached", response_model=List[FlagState])
async def cached_flags(store: FlagStateStore = Depends(get_store)):
    return store.states()


@flag_router.put("/{project_id}", response_model=FlagState)
async def set_flag(
    project_id: str,
    body: ToggleRequest,
    store: FlagStateStore = Depends(get_store),
):
    try:
        return await store.toggle(project_id, body.value)
    except AttachmentNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except TransportError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc


# ---------------------------------------------------------------------------
# System
# ---------------------------------------------------------------------------

system_router = APIRouter(tags=["system"])


@system_router.get("/api/health", response_model=HealthResponse)
async def health_check(request: Request):
    store = getattr(request.app.state, "store", None)
    return HealthResponse(
        version=__version__,
        uptime_seconds=round(time.time() - _START_TIME, 1),
        projects_loaded=len(store.states()) if store is not None else 0,
        metrics=metrics_snapshot(),
    )


def register_routes(app: FastAPI) -> None:
    """Mount all routers onto ``app``."""
    app.include_router(flag_router)
    app.include_router(system_router)
    logger.info("Routes registered: %d total", len(app.routes))
